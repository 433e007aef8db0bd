"""OpenAI-compatible chat-completions reasoning client (httpx)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..config import Settings
from ..errors import InvalidReasoningResponse, ReasoningTimeout, ReasoningUnavailable
from ..models import AnalysisResult
from .base import error_for_status
from .extraction import extract_json_object
from .prompt import build_system_prompt, build_user_prompt
from .retry import RetryPolicy, Sleep, call_with_retry
from .validator import ResponseValidator

logger = logging.getLogger(__name__)


class _Message(BaseModel):
    content: str | None = None


class _Choice(BaseModel):
    message: _Message | None = None


class _APIError(BaseModel):
    type: str = "error"
    message: str = ""


class _Completion(BaseModel):
    choices: list[_Choice] = Field(default_factory=list)
    error: _APIError | str | None = None


class OpenAICompatReasoningClient:
    """Talks to any ``/chat/completions`` endpoint that follows the OpenAI wire format."""

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        validator: ResponseValidator | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._model = settings.model
        self._max_tokens = settings.max_tokens
        self._policy = RetryPolicy(max_retries=settings.max_retries)
        self._validator = validator or ResponseValidator()
        self._sleep = sleep
        self._http = http_client or httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/"),
            timeout=settings.ai_timeout_s,
            headers={"Authorization": f"Bearer {settings.api_key}"},
        )

    def _payload(self, log: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": build_system_prompt()},
                {"role": "user", "content": build_user_prompt(log)},
            ],
            "max_tokens": self._max_tokens,
            "temperature": 0.1,
        }

    async def analyze(self, log: str) -> AnalysisResult:
        logger.debug("starting chat-completions analysis (log_length=%s)", len(log))
        payload = self._payload(log)
        return await call_with_retry(
            lambda: self._attempt(payload),
            policy=self._policy,
            sleep=self._sleep,
            op="openai_analyze",
        )

    async def _attempt(self, payload: dict[str, Any]) -> AnalysisResult:
        try:
            resp = await self._http.post("/chat/completions", json=payload)
        except httpx.TimeoutException as exc:
            raise ReasoningTimeout(op="ai_timeout") from exc
        except httpx.TransportError as exc:
            raise ReasoningUnavailable(str(exc), op="http_request") from exc

        if resp.status_code != httpx.codes.OK:
            raise error_for_status(resp.status_code, resp.text, op="ai_error")

        try:
            body = _Completion.model_validate_json(resp.content)
        except ValidationError as exc:
            raise InvalidReasoningResponse(
                "response body is not a chat completion", op="parse_response"
            ) from exc

        if isinstance(body.error, _APIError):
            raise InvalidReasoningResponse(
                f"{body.error.type}: {body.error.message}", op="ai_api_error"
            )
        if body.error:
            raise InvalidReasoningResponse(body.error, op="ai_api_error")

        if not body.choices:
            raise InvalidReasoningResponse("no choices in response", op="empty_response")

        message = body.choices[0].message
        content = message.content if message is not None else None
        if not content:
            raise InvalidReasoningResponse("empty response text", op="empty_text")

        return self._validator.validate(extract_json_object(content))

    async def health_check(self) -> None:
        try:
            resp = await self._http.get("/models")
        except httpx.HTTPError as exc:
            raise ReasoningUnavailable(str(exc) or None, op="health_check") from exc
        if resp.status_code != httpx.codes.OK:
            raise ReasoningUnavailable(f"status {resp.status_code}", op="health_check")

    async def aclose(self) -> None:
        await self._http.aclose()
