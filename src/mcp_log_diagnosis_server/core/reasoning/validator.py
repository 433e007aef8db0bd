"""Strict schema checks for reasoning output."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..errors import InvalidReasoningResponse
from ..models import AnalysisResult


def _to_reasoning_error(exc: ValidationError) -> InvalidReasoningResponse:
    first = exc.errors(include_url=False)[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else ""
    where = ".".join(str(p) for p in loc) or "result"
    return InvalidReasoningResponse(
        f"{where}: {first['msg']} (got {first.get('input')!r})",
        op=f"validate_{field}" if field else "validate",
    )


class ResponseValidator:
    """Checks a candidate diagnosis and returns it as an AnalysisResult."""

    def validate(self, candidate: AnalysisResult | Mapping[str, Any] | None) -> AnalysisResult:
        if isinstance(candidate, AnalysisResult):
            return candidate
        if not isinstance(candidate, Mapping):
            raise InvalidReasoningResponse(
                f"result must be an object, got {type(candidate).__name__}", op="validate"
            )
        try:
            return AnalysisResult.model_validate(dict(candidate))
        except ValidationError as exc:
            raise _to_reasoning_error(exc) from exc
