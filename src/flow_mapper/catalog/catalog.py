"""
Operator catalog and the per-class catalog cache.

A catalog holds the reflected operators of one host class, in catalog
order and indexed by name. Catalogs are expensive to build, so they are
cached per class and rebuilt only on an explicit reload.
"""

import logging
import threading
from typing import Dict, Iterator, List, Optional, Union

from ..exceptions import InvalidOperatorName, UnsupportedOperatorKind
from .operators import OperatorDescriptor, OperatorKind, is_valid_operator_name
from .reflection import ReflectionProvider


logger = logging.getLogger(__name__)


class OperatorCatalog:
    """Ordered, name-indexed set of operators for one host class."""

    def __init__(
        self,
        klass: type,
        descriptors: Optional[List[OperatorDescriptor]] = None,
        include_instance_methods: bool = False,
    ):
        self.klass = klass
        self.include_instance_methods = include_instance_methods
        self._descriptors: List[OperatorDescriptor] = []
        self._index: Dict[str, int] = {}
        self._lock = threading.RLock()

        for descriptor in descriptors or []:
            if descriptor.name in self._index:
                continue
            self._index[descriptor.name] = len(self._descriptors)
            self._descriptors.append(descriptor)

    def search(self, name: str) -> Optional[OperatorDescriptor]:
        """Exact-name lookup. Returns None when the operator is not catalogued."""
        with self._lock:
            position = self._index.get(name)
            return self._descriptors[position] if position is not None else None

    def insert(
        self,
        name: str,
        kind: Union[str, OperatorKind] = OperatorKind.METHOD,
        reclassify: bool = False,
    ) -> OperatorDescriptor:
        """
        Add an operator that reflection did not find, e.g. a computed column.

        Args:
            name: Operator name, an identifier or dotted path
            kind: Operator kind
            reclassify: Replace the kind of an existing operator instead of
                rejecting a conflicting kind

        Returns:
            The inserted descriptor, or the existing one for a repeat insert

        Raises:
            UnsupportedOperatorKind: If kind is unsupported, or conflicts with
                the catalogued kind and reclassify is False
            InvalidOperatorName: If name is not a valid operator path
        """
        operator_kind = OperatorKind.parse(kind)

        if not is_valid_operator_name(name):
            raise InvalidOperatorName(f"Invalid operator name: {name!r}")

        with self._lock:
            position = self._index.get(name)

            if position is None:
                descriptor = OperatorDescriptor(name, operator_kind)
                self._index[name] = len(self._descriptors)
                self._descriptors.append(descriptor)
                logger.debug(f"Inserted operator {name} ({operator_kind.value}) on {self.class_name}")
                return descriptor

            existing = self._descriptors[position]
            if existing.kind is operator_kind:
                return existing

            if not reclassify:
                raise UnsupportedOperatorKind(
                    operator_kind.value,
                    f"Operator '{name}' on {self.class_name} is already catalogued as "
                    f"{existing.kind.value}, cannot declare it as {operator_kind.value}",
                )

            descriptor = existing.with_kind(operator_kind)
            self._descriptors[position] = descriptor
            logger.info(
                f"Reclassified operator {name} on {self.class_name}: "
                f"{existing.kind.value} -> {operator_kind.value}"
            )
            return descriptor

    def by_kind(self, kind: Union[str, OperatorKind]) -> List[OperatorDescriptor]:
        """All operators of one kind, in catalog order."""
        operator_kind = OperatorKind.parse(kind)
        with self._lock:
            return [d for d in self._descriptors if d.kind is operator_kind]

    def names(self) -> List[str]:
        with self._lock:
            return [d.name for d in self._descriptors]

    def descriptors(self) -> List[OperatorDescriptor]:
        with self._lock:
            return list(self._descriptors)

    @property
    def class_name(self) -> str:
        return self.klass.__name__

    def __iter__(self) -> Iterator[OperatorDescriptor]:
        return iter(self.descriptors())

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __repr__(self) -> str:
        return f"OperatorCatalog(class={self.class_name}, operators={len(self)})"


class CatalogCache:
    """
    Process-wide cache of operator catalogs keyed by class.

    Builds for one class are serialized by a per-class lock and run outside
    the cache lock. The finished catalog is swapped in atomically, so
    readers see either the old catalog or the new one, and concurrent
    first requests for a class all get the same catalog.
    """

    def __init__(self, provider: Optional[ReflectionProvider] = None):
        self.provider = provider or ReflectionProvider()
        self._catalogs: Dict[type, OperatorCatalog] = {}
        self._build_locks: Dict[type, threading.Lock] = {}
        self._lock = threading.Lock()

    def catalog(
        self,
        klass: type,
        reload: bool = False,
        include_instance_methods: bool = False,
    ) -> OperatorCatalog:
        """
        Get the cached catalog for klass, building it on first use.

        Args:
            klass: Host class
            reload: Force a rebuild from reflection
            include_instance_methods: Catalogue public instance methods too

        Returns:
            OperatorCatalog for klass
        """
        with self._lock:
            cached = self._catalogs.get(klass)

        if not reload and self._covers(cached, include_instance_methods):
            return cached

        with self._build_lock(klass):
            with self._lock:
                current = self._catalogs.get(klass)

            # Another caller installed a catalog while this one waited
            if current is not cached and self._covers(current, include_instance_methods):
                return current
            cached = current

            logger.info(f"Cataloguing operators for {klass.__name__}")

            if cached is not None:
                include_instance_methods = include_instance_methods or cached.include_instance_methods

            descriptors = self.provider.reflect(klass, include_instance_methods=include_instance_methods)

            # Widening keeps operators inserted or reclassified since the cached build
            if cached is not None and not reload:
                descriptors = self._overlay(descriptors, cached.descriptors())

            catalog = OperatorCatalog(
                klass, descriptors, include_instance_methods=include_instance_methods
            )

            with self._lock:
                self._catalogs[klass] = catalog

        return catalog

    @staticmethod
    def _covers(catalog: Optional[OperatorCatalog], include_instance_methods: bool) -> bool:
        return catalog is not None and (catalog.include_instance_methods or not include_instance_methods)

    @staticmethod
    def _overlay(
        reflected: List[OperatorDescriptor], previous: List[OperatorDescriptor]
    ) -> List[OperatorDescriptor]:
        """Reflected order, previous descriptors winning by name, previous-only ones appended."""
        by_name = {descriptor.name: descriptor for descriptor in previous}
        merged = [by_name.pop(descriptor.name, descriptor) for descriptor in reflected]
        merged.extend(by_name.values())
        return merged

    def _build_lock(self, klass: type) -> threading.Lock:
        with self._lock:
            return self._build_locks.setdefault(klass, threading.Lock())

    def invalidate(self, klass: type) -> bool:
        """Drop the cached catalog for klass. Returns True if one was cached."""
        with self._lock:
            return self._catalogs.pop(klass, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._catalogs.clear()

    def __contains__(self, klass: object) -> bool:
        with self._lock:
            return klass in self._catalogs

    def __len__(self) -> int:
        with self._lock:
            return len(self._catalogs)

    def __repr__(self) -> str:
        return f"CatalogCache(classes={len(self)})"


_global_catalog_cache: Optional[CatalogCache] = None


def get_catalog_cache() -> CatalogCache:
    """Get the shared catalog cache, creating it on first use."""
    global _global_catalog_cache
    if _global_catalog_cache is None:
        _global_catalog_cache = CatalogCache()
    return _global_catalog_cache


def set_catalog_cache(cache: CatalogCache) -> None:
    """Replace the shared catalog cache."""
    global _global_catalog_cache
    _global_catalog_cache = cache
