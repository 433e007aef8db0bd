"""Reasoning client capability interface."""

from __future__ import annotations

from typing import Protocol

from ..errors import (
    DiagnosisError,
    RateLimited,
    ReasoningRequestError,
    ReasoningUnavailable,
)
from ..models import AnalysisResult


class ReasoningClient(Protocol):
    """External structured-reasoning service.

    Implementations retry transient failures internally and raise a
    DiagnosisError subclass once no further attempt will be made.
    """

    async def analyze(self, log: str) -> AnalysisResult:
        """Return a validated diagnosis for an already sanitized log."""
        ...

    async def health_check(self) -> None:
        """Raise ReasoningUnavailable if the service cannot be reached."""
        ...

    async def aclose(self) -> None:
        """Release network resources held by the client."""
        ...


def error_for_status(status_code: int, detail: str = "", *, op: str) -> DiagnosisError:
    """Map a non-success HTTP status to the matching pipeline error."""
    detail = detail[:200]
    if status_code == 429:
        return RateLimited(op=op)
    if status_code >= 500:
        return ReasoningUnavailable(f"service returned status {status_code}", op=op)
    if status_code in (401, 403):
        return ReasoningRequestError(
            f"authentication failed (status {status_code}): check your API key", op=op
        )
    if status_code == 404:
        return ReasoningRequestError("model not found: check the configured model name", op=op)
    if status_code == 400:
        return ReasoningRequestError(f"bad request: {detail}", op=op)
    return ReasoningRequestError(f"service returned status {status_code}: {detail}", op=op)
