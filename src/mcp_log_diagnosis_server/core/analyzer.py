"""End-to-end diagnosis pipeline.

Order of trust:
    1) a rule match at or above the confidence threshold
    2) the reasoning engine, once its output passes validation
    3) after a reasoning failure, the best rule match at any confidence
Anything else becomes a failure envelope; reasoning errors never escape.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from .config import Settings
from .errors import DiagnosisError, EmptyLogError, LogTooLargeError, ReasoningCancelled
from .models import (
    SOURCE_AI,
    AnalysisRequest,
    AnalysisResponse,
    AnalysisResult,
    rules_fallback_source,
    rules_source,
)
from .reasoning import ReasoningClient, ResponseValidator, build_reasoning_client
from .rules import RuleEngine
from .sanitizer import Sanitizer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Analyzer:
    reasoning: ReasoningClient
    engine: RuleEngine = field(default_factory=RuleEngine)
    sanitizer: Sanitizer = field(default_factory=Sanitizer)
    validator: ResponseValidator = field(default_factory=ResponseValidator)
    enable_rules: bool = True

    async def analyze(
        self, request: AnalysisRequest, *, timeout: float | None = None
    ) -> AnalysisResponse:
        """Diagnose one log; always returns an envelope.

        ``timeout`` bounds the reasoning stage (retries and backoff included).
        When it expires the request degrades exactly like a reasoning failure.
        """
        started = time.monotonic()
        log = request.log
        logger.debug("starting analysis (log_length=%s)", len(log))

        if self.sanitizer.is_empty(log):
            return AnalysisResponse.failed(str(EmptyLogError()))

        if self.sanitizer.is_too_large(log):
            logger.warning(
                "%s, truncating (size=%s, max=%s)",
                LogTooLargeError.default_message,
                len(log.encode("utf-8")),
                self.sanitizer.max_size,
            )

        cleaned, stats = self.sanitizer.sanitize(log)
        logger.debug(
            "log sanitized (original=%s, sanitized=%s, secrets=%s, truncated=%s)",
            stats.original_size,
            stats.sanitized_size,
            stats.secrets_masked,
            stats.truncated,
        )

        if self.enable_rules:
            matches = self.engine.evaluate(cleaned)
            best = self.engine.best_match(matches)
            if best is not None:
                logger.info(
                    "using rule-based result (rule=%s, confidence=%.2f, %.3fs)",
                    best.rule_id,
                    best.confidence,
                    time.monotonic() - started,
                )
                return AnalysisResponse.resolved(best.result, source=rules_source(best.rule_id))
            if matches:
                logger.debug(
                    "%s rule match(es) below threshold, consulting reasoning engine",
                    len(matches),
                )

        try:
            result = await self._reason(cleaned, timeout=timeout)
        except DiagnosisError as exc:
            logger.error(
                "reasoning failed after %.3fs: %s", time.monotonic() - started, exc
            )
            return self._fallback(cleaned, exc)
        except Exception as exc:
            logger.exception("reasoning client raised an unexpected error")
            return self._fallback(cleaned, exc)

        logger.info(
            "reasoning analysis completed (error_type=%s, severity=%s, %.3fs)",
            result.error_type,
            result.severity.value,
            time.monotonic() - started,
        )
        return AnalysisResponse.resolved(result, source=SOURCE_AI)

    async def _reason(self, log: str, *, timeout: float | None) -> AnalysisResult:
        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                candidate = await self.reasoning.analyze(log)
        except TimeoutError as exc:
            if not deadline.expired():
                raise
            raise ReasoningCancelled("deadline exceeded", op="context_cancelled") from exc
        return self.validator.validate(candidate)

    def _fallback(self, log: str, exc: Exception) -> AnalysisResponse:
        if self.enable_rules:
            # Deliberately accepts matches below the confidence threshold.
            best = self.engine.best_effort_match(self.engine.evaluate(log))
            if best is not None:
                logger.info(
                    "using rule-based fallback after reasoning failure (rule=%s, confidence=%.2f)",
                    best.rule_id,
                    best.confidence,
                )
                return AnalysisResponse.resolved(
                    best.result, source=rules_fallback_source(best.rule_id)
                )
        return AnalysisResponse.failed(str(exc) or type(exc).__name__)

    async def health_check(self) -> None:
        await self.reasoning.health_check()

    async def aclose(self) -> None:
        await self.reasoning.aclose()


def build_analyzer(settings: Settings, *, reasoning: ReasoningClient | None = None) -> Analyzer:
    """Wire the pipeline from settings; strategies are chosen here only."""
    return Analyzer(
        reasoning=reasoning or build_reasoning_client(settings),
        engine=RuleEngine(confidence_threshold=settings.rule_confidence_threshold),
        sanitizer=Sanitizer(max_size=settings.max_log_size),
        enable_rules=settings.enable_rules,
    )
