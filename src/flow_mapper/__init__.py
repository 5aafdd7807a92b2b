"""
Flow Mapper - maps tabular import sources and export targets onto
operators of a host object model, driven by a declarative schema.
"""

__version__ = "0.1.0"

from .catalog import CatalogCache, OperatorCatalog, OperatorDescriptor, OperatorKind
from .exceptions import (
    ClassResolutionError,
    ConfigFormatError,
    FlowMapperError,
    InvalidOperatorName,
    MappingDefinitionError,
    OperatorResolutionWarning,
    UnsupportedOperatorKind,
)
from .mapping import (
    ClassRegistry,
    DataFlowSchema,
    DeferredBinding,
    HeaderRegistry,
    NodeCollection,
    NodeContext,
    ResolvedBinding,
)
from .transformation import TransformationRegistry, TransformationRuleSet

__all__ = [
    "__version__",
    "DataFlowSchema",
    "ClassRegistry",
    "NodeCollection",
    "NodeContext",
    "HeaderRegistry",
    "ResolvedBinding",
    "DeferredBinding",
    "OperatorKind",
    "OperatorDescriptor",
    "OperatorCatalog",
    "CatalogCache",
    "TransformationRuleSet",
    "TransformationRegistry",
    "FlowMapperError",
    "ConfigFormatError",
    "ClassResolutionError",
    "UnsupportedOperatorKind",
    "InvalidOperatorName",
    "MappingDefinitionError",
    "OperatorResolutionWarning",
]
