"""Deterministic reasoning stand-in used when no provider is configured."""

from __future__ import annotations

import logging

from ..models import AnalysisResult, Severity

logger = logging.getLogger(__name__)

STAND_IN_RESULT = AnalysisResult(
    error_type="mock_error",
    severity=Severity.MEDIUM,
    root_cause=(
        "This is a stand-in response. Enable real analysis by setting "
        "LOG_DIAGNOSIS_AI_MOCK_MODE=false and configuring a provider."
    ),
    suggested_actions=(
        "Set LOG_DIAGNOSIS_AI_API_KEY (or GEMINI_API_KEY) for the chosen provider",
        "Set LOG_DIAGNOSIS_AI_MOCK_MODE=false to enable real analysis",
    ),
    prevention_tips=("Use a real reasoning provider for production analysis",),
)


class StandInReasoningClient:
    """Always succeeds with a fixed advisory result; performs no I/O."""

    async def analyze(self, log: str) -> AnalysisResult:
        logger.debug("stand-in analysis (log_length=%s)", len(log))
        return STAND_IN_RESULT

    async def health_check(self) -> None:
        return None

    async def aclose(self) -> None:
        return None
