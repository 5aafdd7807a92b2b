"""Column header descriptors and the ordered header registry."""

from dataclasses import dataclass
from typing import Iterator, List, Optional


@dataclass(frozen=True)
class HeaderDescriptor:
    """A column header: where the data comes from and how it is presented."""

    source: str
    presentation: Optional[str]
    position: int

    @property
    def label(self) -> str:
        """Header text for export: the presentation when set, else the source."""
        return self.presentation if self.presentation is not None else self.source


class HeaderRegistry:
    """
    Ordered sequence of column headers.

    Order defines output column order on export and matching order on
    import, so positions are assigned on append and never change.
    """

    def __init__(self) -> None:
        self._headers: List[HeaderDescriptor] = []
        self._frozen = False

    def add(self, source: str, presentation: Optional[str] = None) -> HeaderDescriptor:
        """Append a header at the next position."""
        if self._frozen:
            raise RuntimeError("Header registry is read-only once its node collection is built")

        header = HeaderDescriptor(
            source=str(source),
            presentation=str(presentation) if presentation is not None else None,
            position=len(self._headers),
        )
        self._headers.append(header)
        return header

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def sources(self) -> List[str]:
        return [header.source for header in self._headers]

    def labels(self) -> List[str]:
        return [header.label for header in self._headers]

    def headers(self) -> List[HeaderDescriptor]:
        return list(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __iter__(self) -> Iterator[HeaderDescriptor]:
        return iter(list(self._headers))

    def __getitem__(self, position: int) -> HeaderDescriptor:
        return self._headers[position]

    def __repr__(self) -> str:
        return f"HeaderRegistry(headers={self.sources()})"
