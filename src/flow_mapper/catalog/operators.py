"""
Operator kinds and descriptors.

An operator is a named accessor on a host class (column, association or
method) that a tabular column can be mapped onto.
"""

import keyword
import operator as _operator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Union

from ..exceptions import InvalidOperatorName, UnsupportedOperatorKind


class OperatorKind(str, Enum):
    """Closed set of operator kinds a catalog can hold."""

    ATTRIBUTE = "attribute"
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    METHOD = "method"

    @classmethod
    def parse(cls, value: Union[str, "OperatorKind"]) -> "OperatorKind":
        """
        Convert configuration text into an OperatorKind.

        Args:
            value: Kind name (case-insensitive) or an OperatorKind

        Returns:
            Matching OperatorKind

        Raises:
            UnsupportedOperatorKind: If the value is not a supported kind
        """
        if isinstance(value, OperatorKind):
            return value
        if not isinstance(value, str):
            raise UnsupportedOperatorKind(value)

        normalized = value.strip().lower()
        if normalized in _LEGACY_ALIASES:
            normalized = _LEGACY_ALIASES[normalized]

        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedOperatorKind(value)

    @classmethod
    def values(cls) -> List[str]:
        return [kind.value for kind in cls]

    @property
    def is_association(self) -> bool:
        return self in ASSOCIATION_KINDS


_LEGACY_ALIASES = {"assignment": "attribute"}

ASSOCIATION_KINDS = frozenset(
    {OperatorKind.BELONGS_TO, OperatorKind.HAS_ONE, OperatorKind.HAS_MANY}
)


def is_valid_operator_name(name: object) -> bool:
    """Check a name is an identifier or a dotted path of identifiers."""
    if not isinstance(name, str) or not name:
        return False
    return all(
        part.isidentifier() and not keyword.iskeyword(part) for part in name.split(".")
    )


@dataclass(frozen=True)
class OperatorDescriptor:
    """
    A named operator on a host class, tagged with its kind.

    The read accessor is resolved once when the descriptor is created, so
    consumers never dispatch on the operator name at call time.
    """

    name: str
    kind: OperatorKind
    _reader: Callable[[Any], Any] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        if not is_valid_operator_name(self.name):
            raise InvalidOperatorName(f"Invalid operator name: {self.name!r}")
        object.__setattr__(self, "kind", OperatorKind.parse(self.kind))
        object.__setattr__(self, "_reader", self._build_reader())

    @property
    def is_association(self) -> bool:
        return self.kind.is_association

    def read(self, instance: Any) -> Any:
        """Read the operator's value from an instance of the host class."""
        return self._reader(instance)

    def with_kind(self, kind: Union[str, OperatorKind]) -> "OperatorDescriptor":
        """Return a copy of this descriptor reclassified to another kind."""
        return OperatorDescriptor(self.name, OperatorKind.parse(kind))

    def _build_reader(self) -> Callable[[Any], Any]:
        getter = _operator.attrgetter(self.name)
        if self.kind is OperatorKind.METHOD:
            return lambda instance: getter(instance)()
        return getter
