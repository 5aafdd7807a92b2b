"""
Mapping components for Flow Mapper.

This package provides the data flow schema parser and the node
collection it produces: ordered headers paired with method bindings.
"""

from .binder import HeaderBinder, normalize_header
from .binding import DeferredBinding, MethodBinding, ResolvedBinding
from .failures import FailureLog, LoadFailure
from .headers import HeaderDescriptor, HeaderRegistry
from .nodes import NodeCollection, NodeCollectionBuilder, NodeContext
from .resolver import ClassRegistry
from .schema import (
    DataFlowSchema,
    HeadingSpec,
    NodeSpec,
    create_template_environment,
    load_document,
    render_template,
)

__all__ = [
    # Schema parsing
    "DataFlowSchema",
    "NodeSpec",
    "HeadingSpec",
    "render_template",
    "load_document",
    "create_template_environment",
    "ClassRegistry",
    # Nodes
    "HeaderDescriptor",
    "HeaderRegistry",
    "MethodBinding",
    "ResolvedBinding",
    "DeferredBinding",
    "NodeContext",
    "NodeCollection",
    "NodeCollectionBuilder",
    # Downstream consumers
    "HeaderBinder",
    "normalize_header",
    "FailureLog",
    "LoadFailure",
]
