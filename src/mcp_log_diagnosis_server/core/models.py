"""Core data models for log diagnosis."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

SOURCE_AI = "ai"
SOURCE_RULES_PREFIX = "rules:"
SOURCE_RULES_FALLBACK_PREFIX = "rules_fallback:"


class Severity(str, Enum):
    """Impact level of a diagnosed issue."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class AnalysisResult(BaseModel):
    """Canonical diagnosis produced by rules, the reasoning engine, or fallback.

    Every source goes through the same constraints: non-blank text fields, at
    least one action, no blank list items, and an exact severity literal.
    """

    model_config = ConfigDict(frozen=True)

    error_type: NonBlankStr = Field(
        description="Category of the error, e.g. 'docker_build_failure'."
    )
    severity: Severity = Field(description="Low, Medium or High.")
    root_cause: NonBlankStr = Field(description="Concise explanation of why the error occurred.")
    suggested_actions: tuple[NonBlankStr, ...] = Field(
        min_length=1, description="Specific steps to fix the issue."
    )
    prevention_tips: tuple[NonBlankStr, ...] = Field(
        default=(), description="How to prevent the issue in the future."
    )

    @field_validator("prevention_tips", mode="before")
    @classmethod
    def _null_tips(cls, value: Any) -> Any:
        return () if value is None else value


@dataclass(frozen=True, slots=True)
class Rule:
    """Pre-classification rule with a pre-computed diagnosis."""

    id: str
    name: str
    description: str
    keywords: tuple[str, ...]
    patterns: tuple[re.Pattern[str], ...]
    confidence: float
    result: AnalysisResult

    def matches(self, text: str) -> bool:
        """Return True if any keyword or pattern occurs in text."""
        lowered = text.lower()
        # Keywords first: substring checks are cheaper than regex scans.
        for kw in self.keywords:
            if kw.lower() in lowered:
                return True
        for pattern in self.patterns:
            if pattern.search(text):
                return True
        return False


@dataclass(frozen=True, slots=True)
class RuleMatch:
    """A rule that matched a single request's log."""

    rule_id: str
    confidence: float
    result: AnalysisResult


@dataclass(frozen=True, slots=True)
class SanitizationStats:
    """Diagnostics about a sanitize() call (not part of the response)."""

    original_size: int
    sanitized_size: int
    truncated: bool
    secrets_masked: int


class AnalysisRequest(BaseModel):
    log: str = Field(description="Raw log content to diagnose.")


class AnalysisResponse(BaseModel):
    """Envelope returned for every request, successful or not."""

    success: bool
    result: AnalysisResult | None = None
    error: str | None = None
    source: str | None = None
    processed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def resolved(cls, result: AnalysisResult, *, source: str) -> AnalysisResponse:
        return cls(success=True, result=result, source=source)

    @classmethod
    def failed(cls, error: str) -> AnalysisResponse:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable dict; absent optional fields are omitted."""
        return self.model_dump(mode="json", exclude_none=True)


def rules_source(rule_id: str) -> str:
    return f"{SOURCE_RULES_PREFIX}{rule_id}"


def rules_fallback_source(rule_id: str) -> str:
    return f"{SOURCE_RULES_FALLBACK_PREFIX}{rule_id}"
