"""
Exception hierarchy for Flow Mapper.

Structural and resolution errors abort a schema build. Operator lookups
that can degrade to a deferred binding are reported through
``OperatorResolutionWarning`` instead of being raised.
"""

from typing import Optional


class FlowMapperError(Exception):
    """Base exception for mapping operations."""
    pass


class ConfigFormatError(FlowMapperError):
    """Raised when a data flow schema document is structurally invalid."""
    pass


class ClassResolutionError(FlowMapperError):
    """Raised when a class name in a schema does not resolve to a known class."""
    pass


class UnsupportedOperatorKind(FlowMapperError):
    """Raised for an operator kind outside the supported set, or a kind conflict."""

    def __init__(self, kind: object, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or f"Unsupported operator kind: {kind!r}")


class InvalidOperatorName(FlowMapperError):
    """Raised when an operator name is not a dotted identifier path."""
    pass


class MappingDefinitionError(FlowMapperError):
    """Raised when a column cannot be mapped onto an operator of the host class."""
    pass


class OperatorResolutionWarning(UserWarning):
    """
    An explicitly named operator could not be found or inserted.

    The node keeps its header and falls back to a deferred binding.
    """

    def __init__(self, position: int, source: str, operator: str, reason: str):
        self.position = position
        self.source = source
        self.operator = operator
        self.reason = reason
        super().__init__(
            f"Node {position} ({source}): operator '{operator}' unresolved - {reason}"
        )
