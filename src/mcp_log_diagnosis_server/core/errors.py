"""Error taxonomy for the diagnosis pipeline.

Retryable errors are retried inside reasoning clients and never escape them
as "retryable"; callers only see the final failure.
"""

from __future__ import annotations


class DiagnosisError(Exception):
    """Base error carrying the failing operation and a retry hint."""

    default_message = "diagnosis failed"
    retryable = False

    def __init__(self, message: str | None = None, *, op: str = "") -> None:
        self.op = op
        self.message = message or self.default_message
        super().__init__(f"{op}: {self.message}" if op else self.message)


class EmptyLogError(DiagnosisError):
    default_message = "log content is empty"


class LogTooLargeError(DiagnosisError):
    """Informational only: oversize logs are truncated, not rejected."""

    default_message = "log content exceeds maximum size"


class ReasoningTimeout(DiagnosisError):
    default_message = "reasoning service timeout"
    retryable = True


class ReasoningUnavailable(DiagnosisError):
    default_message = "reasoning service unavailable"
    retryable = True


class RateLimited(DiagnosisError):
    default_message = "rate limit exceeded"
    retryable = True


class InvalidReasoningResponse(DiagnosisError):
    default_message = "invalid reasoning response format"


class ReasoningRequestError(DiagnosisError):
    """Malformed request, authentication failure, or other non-retryable 4xx."""

    default_message = "reasoning request rejected"


class ReasoningCancelled(DiagnosisError):
    default_message = "reasoning cancelled"


class InvalidConfigError(ValueError):
    """Raised at startup when settings are malformed or out of range."""


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, DiagnosisError) and exc.retryable
