"""
Reflection of host classes into operator descriptors.

Each reflector handles one operator family and works on both SQLAlchemy
mapped classes and plain Python classes (dataclasses, pydantic models,
annotated classes).
"""

import dataclasses
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Set

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper, RelationshipDirection

from .operators import OperatorDescriptor, OperatorKind, is_valid_operator_name


logger = logging.getLogger(__name__)

# Members contributed by these modules belong to the ORM or model framework,
# not to the host class.
_LIBRARY_MODULE_PREFIXES = ("sqlalchemy", "pydantic", "builtins", "typing", "abc")


def _mapper_for(klass: type) -> Optional[Mapper]:
    """Return the SQLAlchemy mapper for klass, or None for unmapped classes."""
    return sa_inspect(klass, raiseerr=False)


def _is_library_class(klass: type) -> bool:
    return klass is object or klass.__module__.split(".")[0] in _LIBRARY_MODULE_PREFIXES


class OperatorReflector(ABC):
    """Base class for reflectors that enumerate one family of operators."""

    @abstractmethod
    def reflect(self, klass: type, seen: Set[str]) -> List[OperatorDescriptor]:
        """
        Enumerate operators on klass in declaration order.

        Args:
            klass: Host class to reflect
            seen: Names already catalogued by earlier reflectors

        Returns:
            Descriptors for names not already in ``seen``
        """


class AttributeReflector(OperatorReflector):
    """Columns of mapped classes; fields, annotations and settable properties otherwise."""

    def reflect(self, klass: type, seen: Set[str]) -> List[OperatorDescriptor]:
        mapper = _mapper_for(klass)
        if mapper is not None:
            names: Iterable[str] = [prop.key for prop in mapper.column_attrs]
        else:
            names = self._plain_attribute_names(klass)

        return _descriptors(names, OperatorKind.ATTRIBUTE, seen)

    def _plain_attribute_names(self, klass: type) -> List[str]:
        names: List[str] = []

        if dataclasses.is_dataclass(klass):
            names.extend(f.name for f in dataclasses.fields(klass))
        elif isinstance(getattr(klass, "model_fields", None), dict):
            names.extend(klass.model_fields.keys())
        else:
            for base in reversed(klass.__mro__):
                if _is_library_class(base):
                    continue
                names.extend(inspect.get_annotations(base).keys())

        for base in reversed(klass.__mro__):
            if _is_library_class(base):
                continue
            for name, value in vars(base).items():
                if isinstance(value, property) and value.fset is not None:
                    names.append(name)

        return names


class AssociationReflector(OperatorReflector):
    """Relationships of SQLAlchemy mapped classes, classified by direction."""

    def reflect(self, klass: type, seen: Set[str]) -> List[OperatorDescriptor]:
        mapper = _mapper_for(klass)
        if mapper is None:
            return []

        descriptors = []
        for relationship in mapper.relationships:
            name = relationship.key
            if name in seen or not is_valid_operator_name(name):
                continue
            seen.add(name)
            descriptors.append(
                OperatorDescriptor(name, self.classify(relationship.direction, relationship.uselist))
            )
        return descriptors

    @staticmethod
    def classify(direction: RelationshipDirection, uselist: Optional[bool]) -> OperatorKind:
        if direction is RelationshipDirection.MANYTOONE:
            return OperatorKind.BELONGS_TO
        if uselist is False:
            return OperatorKind.HAS_ONE
        return OperatorKind.HAS_MANY


class MethodReflector(OperatorReflector):
    """Public instance methods defined on the class and its own bases."""

    def reflect(self, klass: type, seen: Set[str]) -> List[OperatorDescriptor]:
        names = []
        for base in klass.__mro__:
            if _is_library_class(base):
                continue
            for name, value in vars(base).items():
                if name.startswith("_") or not inspect.isfunction(value):
                    continue
                names.append(name)

        return _descriptors(names, OperatorKind.METHOD, seen)


def _descriptors(names: Iterable[str], kind: OperatorKind, seen: Set[str]) -> List[OperatorDescriptor]:
    descriptors = []
    for name in names:
        if name in seen or name.startswith("_") or not is_valid_operator_name(name):
            continue
        seen.add(name)
        descriptors.append(OperatorDescriptor(name, kind))
    return descriptors


class ReflectionProvider:
    """
    Runs the operator reflectors against a host class.

    Catalog order is attributes, then associations, then (optionally)
    instance methods. The first reflector to claim a name wins.
    """

    def __init__(
        self,
        reflectors: Optional[Sequence[OperatorReflector]] = None,
        method_reflector: Optional[OperatorReflector] = None,
    ):
        self.reflectors = list(reflectors) if reflectors is not None else [
            AttributeReflector(),
            AssociationReflector(),
        ]
        self.method_reflector = method_reflector or MethodReflector()

    def reflect(self, klass: type, include_instance_methods: bool = False) -> List[OperatorDescriptor]:
        """
        Enumerate all operators of klass.

        Args:
            klass: Host class to reflect
            include_instance_methods: Also catalogue public instance methods

        Returns:
            Ordered list of unique operator descriptors
        """
        if not inspect.isclass(klass):
            raise TypeError(f"Expected a class to reflect, got {klass!r}")

        seen: Set[str] = set()
        descriptors: List[OperatorDescriptor] = []

        reflectors = list(self.reflectors)
        if include_instance_methods:
            reflectors.append(self.method_reflector)

        for reflector in reflectors:
            descriptors.extend(reflector.reflect(klass, seen))

        logger.debug(f"Reflected {len(descriptors)} operators on {klass.__name__}")
        return descriptors
