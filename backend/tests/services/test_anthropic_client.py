"""Resilient Anthropic Client — retry policy, error mapping and the overall deadline."""

import asyncio
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from mathcoach.core.errors import CollaboratorError
from mathcoach.infrastructure.anthropic_client import ResilientAnthropicClient

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status: int, headers: dict | None = None):
    response = httpx.Response(status, request=_REQUEST, headers=headers or {})
    return cls(f"status {status}", response=response, body=None)


def _response(text: str):
    return SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text=text),
            SimpleNamespace(type="tool_use", text="ignored"),
        ],
        usage=SimpleNamespace(input_tokens=10, output_tokens=5),
    )


class ScriptedMessages:
    def __init__(self, outcomes, delay: float = 0.0):
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(outcomes, delay: float = 0.0, deadline: float = 5.0):
    client = ResilientAnthropicClient(
        api_key="test-key", max_retries=2, base_delay_ms=1, max_delay_ms=5,
        call_deadline_seconds=deadline,
    )
    messages = ScriptedMessages(outcomes, delay)
    client.client = SimpleNamespace(messages=messages)
    return client, messages


async def _complete(client):
    return await client.complete_text(
        model="test-model", max_tokens=100, system="sys",
        messages=[{"role": "user", "content": "hi"}], collaborator="dialogue",
    )


async def test_text_blocks_joined():
    client, messages = _client([_response('{"feedback": "好"}')])
    assert await _complete(client) == '{"feedback": "好"}'
    assert messages.calls == 1


async def test_connection_error_retried_then_succeeds():
    client, messages = _client([
        anthropic.APIConnectionError(request=_REQUEST),
        _status_error(anthropic.InternalServerError, 500),
        _response("ok"),
    ])
    assert await _complete(client) == "ok"
    assert messages.calls == 3


async def test_transient_errors_exhaust_retries():
    client, messages = _client([anthropic.APIConnectionError(request=_REQUEST)])
    with pytest.raises(CollaboratorError) as exc:
        await _complete(client)
    assert exc.value.error_type == "connection_error"
    assert messages.calls == 3


async def test_rate_limit_exhausted_carries_retry_after():
    client, _ = _client([
        _status_error(anthropic.RateLimitError, 429, {"retry-after": "0.001"}),
    ])
    with pytest.raises(CollaboratorError) as exc:
        await _complete(client)
    assert exc.value.error_type == "rate_limit"
    assert exc.value.context.retry_after_ms == 1


async def test_client_error_fails_immediately():
    client, messages = _client([_status_error(anthropic.BadRequestError, 400)])
    with pytest.raises(CollaboratorError) as exc:
        await _complete(client)
    assert exc.value.error_type == "client_error"
    assert messages.calls == 1


async def test_sdk_timeout_not_retried():
    client, messages = _client([anthropic.APITimeoutError(request=_REQUEST)])
    with pytest.raises(CollaboratorError) as exc:
        await _complete(client)
    assert exc.value.error_type == "timeout"
    assert messages.calls == 1


async def test_overall_deadline_maps_to_timeout():
    client, _ = _client([_response("late")], delay=0.5, deadline=0.05)
    with pytest.raises(CollaboratorError) as exc:
        await _complete(client)
    assert exc.value.error_type == "timeout"
