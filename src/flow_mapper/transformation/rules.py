"""
Transformation rules applied to catalog-derived operators.

Rule sets remove unwanted operators before class-only node generation.
They are configured per class from the ``transformations`` key of the
class section of a data flow schema.
"""

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from ..catalog.operators import OperatorDescriptor, OperatorKind
from ..exceptions import ConfigFormatError


logger = logging.getLogger(__name__)

INTERNAL_COLUMNS = ("id", "created_at", "updated_at")


@dataclass(frozen=True)
class TransformationRuleSet:
    """Name and kind exclusion rules for one host class."""

    class_name: str
    remove: FrozenSet[str] = field(default_factory=frozenset)
    remove_kinds: FrozenSet[OperatorKind] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        class_name: str,
        remove: Optional[Iterable[str]] = None,
        remove_kinds: Optional[Iterable[Any]] = None,
    ) -> "TransformationRuleSet":
        """Create a rule set, validating kinds against OperatorKind."""
        return cls(
            class_name=class_name,
            remove=frozenset(str(name) for name in remove or []),
            remove_kinds=frozenset(OperatorKind.parse(kind) for kind in remove_kinds or []),
        )

    def excludes(self, descriptor: OperatorDescriptor) -> bool:
        """Check whether a descriptor is filtered out by this rule set."""
        if descriptor.kind in self.remove_kinds:
            return True
        return any(fnmatch.fnmatchcase(descriptor.name, pattern) for pattern in self.remove)

    def apply(self, descriptors: Iterable[OperatorDescriptor]) -> List[OperatorDescriptor]:
        """Filter descriptors, preserving their order."""
        kept = []
        for descriptor in descriptors:
            if self.excludes(descriptor):
                logger.debug(f"Removed operator {descriptor.name} from {self.class_name}")
                continue
            kept.append(descriptor)
        return kept

    def merged_with(self, other: "TransformationRuleSet") -> "TransformationRuleSet":
        return TransformationRuleSet(
            class_name=self.class_name,
            remove=self.remove | other.remove,
            remove_kinds=self.remove_kinds | other.remove_kinds,
        )

    @property
    def is_empty(self) -> bool:
        return not self.remove and not self.remove_kinds


class TransformationRegistry:
    """
    Holds the active rule set for each configured class.

    Global removals (from the mapping configuration) are merged into every
    rule set handed out.
    """

    SECTION_KEY = "transformations"

    def __init__(
        self,
        remove_columns: Optional[Iterable[str]] = None,
        remove_internal_columns: bool = False,
    ):
        global_remove = list(remove_columns or [])
        if remove_internal_columns:
            global_remove.extend(INTERNAL_COLUMNS)

        self._global_remove = frozenset(global_remove)
        self._rule_sets: Dict[str, TransformationRuleSet] = {}

    def parse_section(
        self, class_name: str, section: Optional[Mapping[str, Any]]
    ) -> TransformationRuleSet:
        """
        Read the rule set for a class from its raw schema section without activating it.

        Args:
            class_name: Class name as written in the schema
            section: Raw class section (may be None)

        Returns:
            The class's own rule set, without global removals

        Raises:
            ConfigFormatError: If the transformations value is malformed
            UnsupportedOperatorKind: If remove_kinds names an unknown kind
        """
        raw = section.get(self.SECTION_KEY) if isinstance(section, Mapping) else None

        if raw is None:
            return TransformationRuleSet.build(class_name)

        if not isinstance(raw, Mapping):
            raise ConfigFormatError(
                f"Bad syntax in flow schema - {self.SECTION_KEY} for {class_name} should be a mapping"
            )
        return TransformationRuleSet.build(
            class_name,
            remove=self._as_list(raw.get("remove"), "remove", class_name),
            remove_kinds=self._as_list(raw.get("remove_kinds"), "remove_kinds", class_name),
        )

    def activate(self, rule_set: TransformationRuleSet) -> None:
        """Make rule_set the active rule set for its class."""
        self._rule_sets[rule_set.class_name] = rule_set
        logger.debug(f"Configured transformations for {rule_set.class_name}: {rule_set}")

    def configure_from_section(
        self, class_name: str, section: Optional[Mapping[str, Any]]
    ) -> TransformationRuleSet:
        """Parse and activate the rule set for a class, returning it with global removals."""
        self.activate(self.parse_section(class_name, section))
        return self.for_class(class_name)

    def for_class(self, class_name: str) -> TransformationRuleSet:
        """Get the active rule set for a class, including global removals."""
        rule_set = self._rule_sets.get(class_name) or TransformationRuleSet.build(class_name)
        return self.with_globals(rule_set)

    def with_globals(self, rule_set: TransformationRuleSet) -> TransformationRuleSet:
        return rule_set.merged_with(
            TransformationRuleSet(class_name=rule_set.class_name, remove=self._global_remove)
        )

    def reset(self, class_name: Optional[str] = None) -> None:
        if class_name is None:
            self._rule_sets.clear()
        else:
            self._rule_sets.pop(class_name, None)

    @staticmethod
    def _as_list(value: Any, key: str, class_name: str) -> List[Any]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return list(value)
        raise ConfigFormatError(
            f"Bad syntax in flow schema - transformations.{key} for {class_name} should be a sequence"
        )
