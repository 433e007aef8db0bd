from __future__ import annotations

import json

import httpx
import pytest

from mcp_log_diagnosis_server.core.config import Provider
from mcp_log_diagnosis_server.core.errors import (
    InvalidReasoningResponse,
    ReasoningRequestError,
    ReasoningUnavailable,
)
from mcp_log_diagnosis_server.core.models import Severity
from mcp_log_diagnosis_server.core.reasoning.openai_compat import OpenAICompatReasoningClient

RESULT = {
    "error_type": "npm_dependency_conflict",
    "severity": "Medium",
    "root_cause": "Peer dependency react@18 conflicts with react@17.",
    "suggested_actions": ["Align react versions", "Use --legacy-peer-deps temporarily"],
    "prevention_tips": ["Commit the lockfile"],
}


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class _Script:
    """Returns the scripted responses in order and records requests."""

    def __init__(self, responses: list[httpx.Response | Exception]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(make_settings, recording_sleep, script: _Script, **overrides):
    settings = make_settings(
        provider=Provider.OPENAI,
        model="gpt-4o-mini",
        base_url="https://api.test/v1",
        **overrides,
    )
    http = httpx.AsyncClient(
        base_url=settings.base_url, transport=httpx.MockTransport(script)
    )
    return OpenAICompatReasoningClient(settings, http_client=http, sleep=recording_sleep)


@pytest.mark.asyncio
async def test_analyze_success(make_settings, recording_sleep) -> None:
    script = _Script([httpx.Response(200, json=_completion(json.dumps(RESULT)))])
    client = _client(make_settings, recording_sleep, script)

    result = await client.analyze("npm ERR! ERESOLVE unable to resolve dependency tree")

    assert result.severity is Severity.MEDIUM
    assert result.error_type == "npm_dependency_conflict"
    request = script.requests[0]
    assert request.url.path == "/v1/chat/completions"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert "ERESOLVE" in body["messages"][1]["content"]
    await client.aclose()


@pytest.mark.asyncio
async def test_rate_limit_then_success(make_settings, recording_sleep) -> None:
    script = _Script(
        [
            httpx.Response(429, json={"error": {"message": "slow down"}}),
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json=_completion(json.dumps(RESULT))),
        ]
    )
    client = _client(make_settings, recording_sleep, script, max_retries=2)

    result = await client.analyze("log")

    assert result.error_type == "npm_dependency_conflict"
    assert len(script.requests) == 3
    assert recording_sleep.delays == [1.0, 4.0]


@pytest.mark.asyncio
async def test_unauthorized_is_fatal(make_settings, recording_sleep) -> None:
    script = _Script([httpx.Response(401, json={"error": {"message": "invalid api key"}})])
    client = _client(make_settings, recording_sleep, script)

    with pytest.raises(ReasoningRequestError):
        await client.analyze("log")

    assert len(script.requests) == 1
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_server_errors_exhaust_retries(make_settings, recording_sleep) -> None:
    script = _Script([httpx.Response(500, text="boom")])
    client = _client(make_settings, recording_sleep, script, max_retries=1)

    with pytest.raises(ReasoningUnavailable):
        await client.analyze("log")

    assert len(script.requests) == 2


@pytest.mark.asyncio
async def test_transport_error_is_retried(make_settings, recording_sleep) -> None:
    script = _Script(
        [
            httpx.ConnectError("refused"),
            httpx.Response(200, json=_completion(json.dumps(RESULT))),
        ]
    )
    client = _client(make_settings, recording_sleep, script)

    result = await client.analyze("log")

    assert result.error_type == "npm_dependency_conflict"
    assert recording_sleep.delays == [1.0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json=_completion("")),
        httpx.Response(200, json=_completion("I cannot help with that.")),
        httpx.Response(200, json={"error": {"type": "invalid_request", "message": "nope"}}),
        httpx.Response(200, json={"error": "quota exceeded"}),
        httpx.Response(200, json={"choices": ["text"]}),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json=_completion(json.dumps(RESULT | {"severity": "Critical"}))),
    ],
)
async def test_bad_replies_are_fatal(make_settings, recording_sleep, response) -> None:
    script = _Script([response])
    client = _client(make_settings, recording_sleep, script)

    with pytest.raises(InvalidReasoningResponse):
        await client.analyze("log")

    assert len(script.requests) == 1


@pytest.mark.asyncio
async def test_health_check(make_settings, recording_sleep) -> None:
    ok = _client(make_settings, recording_sleep, _Script([httpx.Response(200, json={"data": []})]))
    await ok.health_check()

    down = _client(make_settings, recording_sleep, _Script([httpx.Response(502)]))
    with pytest.raises(ReasoningUnavailable):
        await down.health_check()
