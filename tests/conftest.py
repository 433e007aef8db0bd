from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from mcp_log_diagnosis_server.core.analyzer import Analyzer
from mcp_log_diagnosis_server.core.config import Provider, Settings
from mcp_log_diagnosis_server.core.models import AnalysisResult, Severity
from mcp_log_diagnosis_server.core.rules import RuleEngine
from mcp_log_diagnosis_server.core.sanitizer import Sanitizer

AI_RESULT = AnalysisResult(
    error_type="database_migration_failure",
    severity=Severity.HIGH,
    root_cause="Migration 0042 references a column that does not exist.",
    suggested_actions=("Fix the migration", "Re-run the deployment"),
    prevention_tips=("Run migrations against a staging copy first",),
)


class FakeReasoningClient:
    """Scripted reasoning client: each call pops the next outcome.

    An outcome is an AnalysisResult/dict (returned) or an exception (raised).
    The last outcome repeats once the script runs out.
    """

    def __init__(self, outcomes: Sequence[object] = (AI_RESULT,), *, delay_s: float = 0.0) -> None:
        self._outcomes = list(outcomes)
        self.delay_s = delay_s
        self.calls: list[str] = []
        self.health_error: Exception | None = None
        self.closed = False

    async def analyze(self, log: str):
        self.calls.append(log)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def health_check(self) -> None:
        if self.health_error is not None:
            raise self.health_error

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides) -> Settings:
        base = {
            "provider": Provider.GEMINI,
            "api_key": "test-key",
            "model": "gemini-2.0-flash",
            "ai_timeout_s": 5.0,
            "max_retries": 2,
        }
        base.update(overrides)
        return Settings(**base)

    return _make


@pytest.fixture
def make_analyzer() -> Callable[..., Analyzer]:
    def _make(
        reasoning: FakeReasoningClient | None = None,
        *,
        enable_rules: bool = True,
        threshold: float = 0.8,
        max_size: int = 50_000,
    ) -> Analyzer:
        return Analyzer(
            reasoning=reasoning or FakeReasoningClient(),
            engine=RuleEngine(confidence_threshold=threshold),
            sanitizer=Sanitizer(max_size=max_size),
            enable_rules=enable_rules,
        )

    return _make


@pytest.fixture
def write_log() -> Callable[[Path, str], None]:
    def _write(path: Path, text: str) -> None:
        path.write_text(text, encoding="utf-8")

    return _write


@pytest.fixture
def ai_result() -> AnalysisResult:
    return AI_RESULT


@pytest.fixture
def fake_reasoning() -> type[FakeReasoningClient]:
    return FakeReasoningClient
