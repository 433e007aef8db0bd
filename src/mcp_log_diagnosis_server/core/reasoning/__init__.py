"""Reasoning engine clients, retry policy and response validation."""

from __future__ import annotations

import logging

from ..config import Provider, Settings
from .base import ReasoningClient, error_for_status
from .extraction import extract_json_object
from .retry import RetryPolicy, call_with_retry
from .stand_in import STAND_IN_RESULT, StandInReasoningClient
from .validator import ResponseValidator

logger = logging.getLogger(__name__)


def build_reasoning_client(settings: Settings) -> ReasoningClient:
    """Pick the reasoning strategy once, at startup."""
    if settings.uses_stand_in:
        logger.warning("running with the stand-in reasoning client; responses are simulated")
        return StandInReasoningClient()

    if settings.provider is Provider.OPENAI:
        from .openai_compat import OpenAICompatReasoningClient

        return OpenAICompatReasoningClient(settings)

    from .gemini import GeminiReasoningClient

    return GeminiReasoningClient(settings)


__all__ = [
    "STAND_IN_RESULT",
    "ReasoningClient",
    "ResponseValidator",
    "RetryPolicy",
    "StandInReasoningClient",
    "build_reasoning_client",
    "call_with_retry",
    "error_for_status",
    "extract_json_object",
]
