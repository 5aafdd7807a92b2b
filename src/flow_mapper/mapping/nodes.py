"""
Node contexts and the node collection.

A node pairs one header with one binding. The collection is assembled by
``NodeCollectionBuilder`` in private buffers and published only once the
node/header invariants hold, so callers never see a half-built collection.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from ..catalog.catalog import OperatorCatalog
from ..catalog.operators import OperatorDescriptor
from ..exceptions import FlowMapperError, OperatorResolutionWarning
from .binding import DeferredBinding, MethodBinding, ResolvedBinding
from .headers import HeaderDescriptor, HeaderRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeContext:
    """One ordered row of a node collection."""

    index: int
    binding: MethodBinding
    header: HeaderDescriptor

    @property
    def is_resolved(self) -> bool:
        return self.binding.is_resolved

    @property
    def operator(self) -> Optional[OperatorDescriptor]:
        return self.binding.operator


class NodeCollection:
    """
    Read-only, ordered collection of nodes for one host class.

    The collection takes ownership of ``headers`` and freezes it. Usually
    created through ``NodeCollectionBuilder``.
    """

    def __init__(
        self,
        catalog: OperatorCatalog,
        headers: HeaderRegistry,
        nodes: Sequence[NodeContext],
        warnings: Sequence[OperatorResolutionWarning] = (),
    ):
        """
        Raises:
            FlowMapperError: If nodes and headers are out of step
        """
        nodes = tuple(nodes)
        self._check_invariants(nodes, headers)

        self.catalog = catalog
        self.headers = headers
        self._nodes: Tuple[NodeContext, ...] = nodes
        self._warnings: Tuple[OperatorResolutionWarning, ...] = tuple(warnings)
        self.headers.freeze()

    @staticmethod
    def _check_invariants(nodes: Sequence[NodeContext], headers: HeaderRegistry) -> None:
        if len(nodes) != len(headers):
            raise FlowMapperError(
                f"Node collection inconsistent: {len(nodes)} nodes, {len(headers)} headers"
            )

        for i, (node, header) in enumerate(zip(nodes, headers)):
            if not node.index == i == header.position == node.binding.position:
                raise FlowMapperError(
                    f"Node collection inconsistent at {i}: node index {node.index}, "
                    f"header position {header.position}"
                )
            if node.header != header:
                raise FlowMapperError(f"Node collection inconsistent at {i}: header mismatch")

    @property
    def klass(self) -> type:
        return self.catalog.klass

    @property
    def nodes(self) -> Tuple[NodeContext, ...]:
        return self._nodes

    @property
    def warnings(self) -> Tuple[OperatorResolutionWarning, ...]:
        return self._warnings

    def sources(self) -> List[str]:
        return self.headers.sources()

    def labels(self) -> List[str]:
        return self.headers.labels()

    def bindings(self) -> List[MethodBinding]:
        return [node.binding for node in self._nodes]

    def resolved(self) -> List[NodeContext]:
        return [node for node in self._nodes if node.is_resolved]

    def deferred(self) -> List[NodeContext]:
        return [node for node in self._nodes if not node.is_resolved]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeContext]:
        return iter(self._nodes)

    def __getitem__(self, index: int) -> NodeContext:
        return self._nodes[index]

    def __repr__(self) -> str:
        return (
            f"NodeCollection(class={self.catalog.class_name}, nodes={len(self._nodes)}, "
            f"resolved={len(self.resolved())}, warnings={len(self._warnings)})"
        )


class NodeCollectionBuilder:
    """
    Assembles headers and bindings in lock-step for one catalog.

    Nothing is visible to callers until ``build`` succeeds.
    """

    def __init__(self, catalog: OperatorCatalog):
        self.catalog = catalog
        self._headers = HeaderRegistry()
        self._nodes: List[NodeContext] = []
        self._warnings: List[OperatorResolutionWarning] = []
        self._built = False

    @property
    def next_index(self) -> int:
        return len(self._nodes)

    def add_resolved(
        self, source: str, operator: OperatorDescriptor, presentation: Optional[str] = None
    ) -> NodeContext:
        index = self.next_index
        return self._append(ResolvedBinding(index, source, operator), presentation)

    def add_deferred(self, source: str, presentation: Optional[str] = None) -> NodeContext:
        index = self.next_index
        return self._append(DeferredBinding(index, source), presentation)

    def warn(self, warning: OperatorResolutionWarning) -> None:
        logger.warning(str(warning))
        self._warnings.append(warning)

    def build(self) -> NodeCollection:
        """
        Validate the invariants and publish the collection.

        Raises:
            FlowMapperError: If nodes and headers are out of step
        """
        if self._built:
            raise FlowMapperError("Node collection has already been built")

        collection = NodeCollection(self.catalog, self._headers, self._nodes, self._warnings)
        self._built = True
        return collection

    def _append(self, binding: MethodBinding, presentation: Optional[str]) -> NodeContext:
        if self._built:
            raise FlowMapperError("Node collection has already been built")

        header = self._headers.add(binding.source, presentation=presentation)
        node = NodeContext(index=binding.position, binding=binding, header=header)
        self._nodes.append(node)
        return node
