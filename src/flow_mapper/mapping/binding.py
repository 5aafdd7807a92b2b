"""
Method bindings between header positions and operators.

A binding is either resolved (it carries an operator) or deferred (it
carries only the header source and position, and a later consumer such
as the header binder resolves it).
"""

from dataclasses import dataclass
from typing import Optional

from ..catalog.operators import OperatorDescriptor


@dataclass(frozen=True)
class MethodBinding:
    """Base binding: a header position and the source it was created from."""

    position: int
    source: str

    def __post_init__(self) -> None:
        if type(self) is MethodBinding:
            raise TypeError("MethodBinding is abstract; use ResolvedBinding or DeferredBinding")

    @property
    def is_resolved(self) -> bool:
        return False

    @property
    def operator(self) -> Optional[OperatorDescriptor]:
        return None


@dataclass(frozen=True)
class ResolvedBinding(MethodBinding):
    """Binding wired to a catalogued operator."""

    operator_descriptor: OperatorDescriptor

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.operator_descriptor, OperatorDescriptor):
            raise TypeError(
                f"A resolved binding requires an operator, got {self.operator_descriptor!r}"
            )

    @property
    def is_resolved(self) -> bool:
        return True

    @property
    def operator(self) -> OperatorDescriptor:
        return self.operator_descriptor


@dataclass(frozen=True)
class DeferredBinding(MethodBinding):
    """Header-only binding whose operator is resolved by a later consumer."""

    def resolve(self, operator: OperatorDescriptor) -> ResolvedBinding:
        """Produce the resolved counterpart of this binding."""
        return ResolvedBinding(self.position, self.source, operator)
