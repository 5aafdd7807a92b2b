"""
Header binder.

Downstream consumer that resolves deferred bindings against the operator
catalog by case-insensitive header matching, as inbound loaders do when a
file's column headers only loosely follow the host class's operator names.
"""

import logging
import re
from typing import Dict, List, Optional

from ..catalog.catalog import OperatorCatalog
from ..catalog.operators import OperatorDescriptor
from ..exceptions import MappingDefinitionError
from .binding import DeferredBinding, MethodBinding
from .failures import FailureLog
from .nodes import NodeCollection


logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s\-]+")


def normalize_header(text: str) -> str:
    """Normalize header text for matching: ``" Project Title"`` -> ``"project_title"``."""
    return _SEPARATORS.sub("_", text.strip()).lower()


class HeaderBinder:
    """Matches header text to catalogued operators."""

    def __init__(self, catalog: OperatorCatalog):
        self.catalog = catalog
        self._index: Dict[str, OperatorDescriptor] = {}
        for descriptor in catalog:
            self._index.setdefault(normalize_header(descriptor.name), descriptor)

    def find_operator(self, header: str) -> Optional[OperatorDescriptor]:
        """Exact match first, then normalized match."""
        return self.catalog.search(header) or self._index.get(normalize_header(header))

    def require_operator(self, header: str) -> OperatorDescriptor:
        """
        Find the operator for a header or fail.

        Raises:
            MappingDefinitionError: If no operator matches the header
        """
        descriptor = self.find_operator(header)
        if descriptor is None:
            raise MappingDefinitionError(
                f"Failed to map '{header}' to an operator on {self.catalog.class_name}"
            )
        return descriptor

    def bind(self, collection: NodeCollection, failures: Optional[FailureLog] = None) -> List[MethodBinding]:
        """
        Resolve the deferred bindings of a collection.

        The collection itself is left untouched; a new list of bindings is
        returned in node order. Headers that match no operator keep their
        deferred binding and are recorded in ``failures`` when given.
        """
        bindings: List[MethodBinding] = []

        for node in collection:
            binding = node.binding
            if isinstance(binding, DeferredBinding):
                descriptor = self.find_operator(binding.source)
                if descriptor is not None:
                    binding = binding.resolve(descriptor)
                else:
                    logger.info(f"No operator on {self.catalog.class_name} matches header '{binding.source}'")
                    if failures is not None:
                        failures.failure(
                            f"No operator matches header '{binding.source}'", source=binding.source
                        )
            bindings.append(binding)

        return bindings
