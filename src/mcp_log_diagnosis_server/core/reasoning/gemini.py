"""Gemini-backed reasoning client (google-genai)."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors

from ..config import Settings
from ..errors import InvalidReasoningResponse, ReasoningTimeout, ReasoningUnavailable
from ..models import AnalysisResult
from .base import error_for_status
from .extraction import extract_json_object
from .prompt import build_system_prompt, build_user_prompt
from .retry import RetryPolicy, Sleep, call_with_retry
from .validator import ResponseValidator

logger = logging.getLogger(__name__)

_ANALYSIS_SCHEMA = AnalysisResult.model_json_schema()
_THINKING_MARKERS = ("2.5", "thinking", "reasoning")


def is_thinking_model(model: str) -> bool:
    """Thinking models spend output tokens on internal reasoning."""
    return any(marker in model for marker in _THINKING_MARKERS)


def output_token_budget(model: str, max_tokens: int) -> int:
    if is_thinking_model(model):
        return max(max_tokens * 4, 4096)
    return max_tokens


def _enum_name(value: Any) -> str:
    return str(getattr(value, "value", value) or "")


class GeminiReasoningClient:
    """Calls Gemini with a JSON response schema and validates the reply."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: Any | None = None,
        validator: ResponseValidator | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._model = settings.model
        self._timeout_s = settings.ai_timeout_s
        self._max_output_tokens = output_token_budget(settings.model, settings.max_tokens)
        self._policy = RetryPolicy(max_retries=settings.max_retries)
        self._validator = validator or ResponseValidator()
        self._sleep = sleep
        self._client = client if client is not None else genai.Client(api_key=settings.api_key)

    async def analyze(self, log: str) -> AnalysisResult:
        started = time.monotonic()
        logger.debug("starting Gemini analysis (log_length=%s)", len(log))

        result = await call_with_retry(
            lambda: self._attempt(log),
            policy=self._policy,
            sleep=self._sleep,
            op="gemini_analyze",
        )

        logger.debug(
            "Gemini analysis completed in %.2fs (error_type=%s)",
            time.monotonic() - started,
            result.error_type,
        )
        return result

    async def _attempt(self, log: str) -> AnalysisResult:
        text = await self._generate(log)
        return self._validator.validate(extract_json_object(text))

    async def _generate(self, log: str) -> str:
        try:
            async with asyncio.timeout(self._timeout_s):
                resp = await self._client.aio.models.generate_content(
                    model=self._model,
                    contents=build_user_prompt(log),
                    config={
                        "system_instruction": build_system_prompt(),
                        "response_mime_type": "application/json",
                        "response_json_schema": _ANALYSIS_SCHEMA,
                        "temperature": 0.1,
                        "top_p": 0.95,
                        "top_k": 40,
                        "max_output_tokens": self._max_output_tokens,
                    },
                )
        except TimeoutError as exc:
            raise ReasoningTimeout(op="gemini_timeout") from exc
        except genai_errors.APIError as exc:
            logger.warning("Gemini API error (status=%s): %s", exc.code, exc.message)
            raise error_for_status(exc.code or 0, exc.message or "", op="gemini_request") from exc
        except httpx.TimeoutException as exc:
            raise ReasoningTimeout(op="gemini_timeout") from exc
        except httpx.TransportError as exc:
            raise ReasoningUnavailable(str(exc), op="gemini_transport") from exc

        return self._response_text(resp)

    @staticmethod
    def _response_text(resp: Any) -> str:
        feedback = getattr(resp, "prompt_feedback", None)
        block_reason = _enum_name(getattr(feedback, "block_reason", None))
        if block_reason:
            raise InvalidReasoningResponse(f"prompt blocked: {block_reason}", op="content_blocked")

        candidates = getattr(resp, "candidates", None) or []
        if not candidates:
            raise InvalidReasoningResponse("no candidates in response", op="empty_response")

        finish_reason = _enum_name(getattr(candidates[0], "finish_reason", None))
        if finish_reason == "SAFETY":
            raise InvalidReasoningResponse(
                "response blocked by safety filter", op="safety_filter"
            )

        text = resp.text
        if not text:
            logger.warning("Gemini returned no text (finish_reason=%s)", finish_reason or "-")
            raise InvalidReasoningResponse("empty response text", op="empty_text")
        return text

    async def health_check(self) -> None:
        try:
            async with asyncio.timeout(self._timeout_s):
                await self._client.aio.models.get(model=self._model)
        except (TimeoutError, genai_errors.APIError, httpx.HTTPError) as exc:
            raise ReasoningUnavailable(str(exc) or None, op="health_check") from exc

    async def aclose(self) -> None:
        aclose = getattr(self._client.aio, "aclose", None)
        if aclose is not None:
            await aclose()
