"""Rule-based pre-classification."""

from __future__ import annotations

from .engine import DEFAULT_CONFIDENCE_THRESHOLD, RuleEngine
from .table import DEFAULT_RULES, default_rules, validate_rules

__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "DEFAULT_RULES",
    "RuleEngine",
    "default_rules",
    "validate_rules",
]
