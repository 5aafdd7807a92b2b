"""Transformation rules applied to catalogued operators."""

from .rules import INTERNAL_COLUMNS, TransformationRegistry, TransformationRuleSet

__all__ = ["TransformationRuleSet", "TransformationRegistry", "INTERNAL_COLUMNS"]
