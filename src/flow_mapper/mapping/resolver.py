"""Resolution of class names in data flow schemas to host classes."""

import importlib
import inspect
import logging
from typing import Callable, Dict, List, Optional, Union, overload

from ..exceptions import ClassResolutionError


logger = logging.getLogger(__name__)


class ClassRegistry:
    """
    Maps schema class names to host classes.

    Explicit registrations win; otherwise a dotted import path
    (``package.module.Class`` or ``package.module:Class``) is tried.
    """

    def __init__(self, allow_import: bool = True):
        self.allow_import = allow_import
        self._classes: Dict[str, type] = {}

    @overload
    def register(self, klass: type, name: Optional[str] = None) -> type: ...

    @overload
    def register(self, klass: None = None, name: Optional[str] = None) -> Callable[[type], type]: ...

    def register(
        self, klass: Optional[type] = None, name: Optional[str] = None
    ) -> Union[type, Callable[[type], type]]:
        """
        Register a host class, directly or as a class decorator.

        Args:
            klass: Class to register
            name: Schema name for the class, defaults to its __name__
        """
        if klass is None:
            return lambda cls: self.register(cls, name=name)

        if not inspect.isclass(klass):
            raise TypeError(f"Only classes can be registered, got {klass!r}")

        self._classes[name or klass.__name__] = klass
        return klass

    def unregister(self, name: str) -> bool:
        return self._classes.pop(name, None) is not None

    def resolve(self, name: str) -> type:
        """
        Resolve a schema class name.

        Raises:
            ClassResolutionError: If the name is not registered or importable
        """
        if not isinstance(name, str) or not name.strip():
            raise ClassResolutionError(f"Invalid class name in flow schema: {name!r}")

        klass = self._classes.get(name)
        if klass is not None:
            return klass

        if self.allow_import:
            klass = self._import(name)
            if klass is not None:
                return klass

        raise ClassResolutionError(f"Class '{name}' is not registered or importable")

    def registered_names(self) -> List[str]:
        return sorted(self._classes)

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def _import(self, name: str) -> Optional[type]:
        if ":" in name:
            module_name, _, attribute = name.partition(":")
        elif "." in name:
            module_name, _, attribute = name.rpartition(".")
        else:
            return None

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            logger.debug(f"Could not import module {module_name} for class {name}: {e}")
            return None

        candidate = getattr(module, attribute, None)
        return candidate if inspect.isclass(candidate) else None
