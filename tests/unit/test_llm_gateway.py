from __future__ import annotations

from typing import Any, Dict, List

import httpx
import pytest

from agents.types import AgentEvaluation, ScoreOnly
from config import LlmRoute
from llm_gateway import LlmGatewayError, LlmOutputError, LlmTimeoutError, call


class FakeResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        return self._payload


class FakeClient:
    def __init__(self, replies: List[FakeResponse]) -> None:
        self._replies = list(replies)
        self.requests: List[Dict[str, Any]] = []

    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> FakeResponse:
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return self._replies.pop(0)


def _reply(content: str) -> FakeResponse:
    return FakeResponse(200, {"choices": [{"message": {"content": content}}]})


def _route(**overrides: Any) -> LlmRoute:
    data: Dict[str, Any] = {
        "name": "scorer",
        "base_url": "http://llm.local",
        "endpoint": "/v1/chat/completions",
        "model": "m",
        "timeout_s": 2.0,
        "max_retries": 1,
    }
    data.update(overrides)
    return LlmRoute(**data)


def test_call_validates_fenced_json() -> None:
    client = FakeClient([_reply('```json\n{"score": 6, "feedback": "ok", "nextQuestion": "Why?"}\n```')])

    result = call("task", AgentEvaluation, cfg=_route(temperature=0.2), client=client)

    assert result.score == 6
    assert result.next_question == "Why?"
    request = client.requests[0]
    assert request["url"] == "http://llm.local/v1/chat/completions"
    assert request["json"]["temperature"] == 0.2
    assert request["json"]["messages"][0]["role"] == "system"


def test_call_retries_then_succeeds() -> None:
    client = FakeClient([_reply("not json"), _reply('{"score": 3, "nextQuestion": "Again?"}')])

    result = call("task", AgentEvaluation, cfg=_route(), client=client)

    assert result.score == 3
    assert len(client.requests) == 2
    assert "failed validation" in client.requests[1]["json"]["messages"][-1]["content"]


def test_call_rejects_empty_next_question() -> None:
    client = FakeClient([_reply('{"score": 3, "nextQuestion": ""}')] * 2)
    with pytest.raises(LlmOutputError):
        call("task", AgentEvaluation, cfg=_route(), client=client)


def test_call_uses_raw_adapter() -> None:
    client = FakeClient([_reply("8")])
    assert call("task", ScoreOnly, cfg=_route(), client=client).score == 8


def test_call_raises_on_error_status() -> None:
    client = FakeClient([FakeResponse(500, {"error": "boom"})])
    with pytest.raises(LlmGatewayError):
        call("task", AgentEvaluation, cfg=_route(), client=client)


def test_call_sends_api_key_from_env(monkeypatch) -> None:
    monkeypatch.setenv("BOUNCER_TEST_KEY", "secret")
    client = FakeClient([_reply('{"score": 5, "nextQuestion": "Q?"}')])

    call("task", AgentEvaluation, cfg=_route(api_key_env="BOUNCER_TEST_KEY"), client=client)

    assert client.requests[0]["headers"]["Authorization"] == "Bearer secret"


def test_call_maps_transport_timeout() -> None:
    class SlowClient:
        def post(self, url, *, json, headers, timeout):
            raise httpx.ReadTimeout("read timed out")

    with pytest.raises(LlmTimeoutError):
        call("task", AgentEvaluation, cfg=_route(), client=SlowClient())


def test_call_accepts_content_parts() -> None:
    client = FakeClient(
        [FakeResponse(200, {"choices": [{"message": {"content": [{"type": "text", "text": '{"score": 2, '}, {"type": "text", "text": '"nextQuestion": "Hm?"}'}]}}]})]
    )
    assert call("task", AgentEvaluation, cfg=_route(), client=client).score == 2
