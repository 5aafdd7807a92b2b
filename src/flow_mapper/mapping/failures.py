"""Collectable failures for downstream row-level processing."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional


@dataclass(frozen=True)
class LoadFailure:
    """A single recoverable failure, e.g. no owner record matched a row."""

    message: str
    row: Optional[int] = None
    source: Optional[str] = None
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "row": self.row,
            "source": self.source,
            "recorded_at": self.recorded_at.isoformat(),
        }


class FailureLog:
    """Accumulates failures so a batch can finish and report them together."""

    def __init__(self) -> None:
        self._failures: List[LoadFailure] = []

    def failure(self, message: str, row: Optional[int] = None, source: Optional[str] = None) -> LoadFailure:
        entry = LoadFailure(message=message, row=row, source=source)
        self._failures.append(entry)
        return entry

    @property
    def failures(self) -> List[LoadFailure]:
        return list(self._failures)

    @property
    def has_failures(self) -> bool:
        return bool(self._failures)

    def for_row(self, row: int) -> List[LoadFailure]:
        return [f for f in self._failures if f.row == row]

    def clear(self) -> None:
        self._failures.clear()

    def __len__(self) -> int:
        return len(self._failures)

    def __iter__(self) -> Iterator[LoadFailure]:
        return iter(list(self._failures))
