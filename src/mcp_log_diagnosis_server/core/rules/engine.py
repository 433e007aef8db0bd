"""Rule evaluation and best-match selection."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..errors import InvalidConfigError
from ..models import Rule, RuleMatch
from .table import DEFAULT_RULES, validate_rules

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.8


def _highest(matches: Sequence[RuleMatch], *, min_confidence: float) -> RuleMatch | None:
    """Strictly highest confidence >= min_confidence; ties keep table order."""
    best: RuleMatch | None = None
    for m in matches:
        if m.confidence < min_confidence:
            continue
        if best is None or m.confidence > best.confidence:
            best = m
    return best


@dataclass(frozen=True, slots=True)
class RuleEngine:
    """Evaluates a read-only rule table; holds no per-request state."""

    rules: Sequence[Rule] = DEFAULT_RULES
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise InvalidConfigError("confidence_threshold must be between 0 and 1")
        object.__setattr__(self, "rules", validate_rules(self.rules))

    def evaluate(self, text: str) -> list[RuleMatch]:
        """Return every matching rule, in table order."""
        matches: list[RuleMatch] = []
        for rule in self.rules:
            if rule.matches(text):
                logger.debug("rule matched: %s (confidence=%.2f)", rule.id, rule.confidence)
                matches.append(
                    RuleMatch(rule_id=rule.id, confidence=rule.confidence, result=rule.result)
                )
        return matches

    def best_match(self, matches: Sequence[RuleMatch]) -> RuleMatch | None:
        """Highest-confidence match that clears the threshold, if any."""
        return _highest(matches, min_confidence=self.confidence_threshold)

    def best_effort_match(self, matches: Sequence[RuleMatch]) -> RuleMatch | None:
        """Highest-confidence match regardless of the threshold."""
        return _highest(matches, min_confidence=0.0)

    def should_use_rule_result(self, matches: Sequence[RuleMatch]) -> bool:
        return self.best_match(matches) is not None

    def get_rule(self, rule_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None
