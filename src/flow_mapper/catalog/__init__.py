"""
Operator catalog components for Flow Mapper.

Reflects host classes into typed operator descriptors and caches the
resulting catalogs per class.
"""

from .catalog import CatalogCache, OperatorCatalog, get_catalog_cache, set_catalog_cache
from .operators import ASSOCIATION_KINDS, OperatorDescriptor, OperatorKind, is_valid_operator_name
from .reflection import (
    AssociationReflector,
    AttributeReflector,
    MethodReflector,
    OperatorReflector,
    ReflectionProvider,
)

__all__ = [
    # Operators
    "OperatorKind",
    "OperatorDescriptor",
    "ASSOCIATION_KINDS",
    "is_valid_operator_name",
    # Reflection
    "OperatorReflector",
    "AttributeReflector",
    "AssociationReflector",
    "MethodReflector",
    "ReflectionProvider",
    # Catalog
    "OperatorCatalog",
    "CatalogCache",
    "get_catalog_cache",
    "set_catalog_cache",
]
