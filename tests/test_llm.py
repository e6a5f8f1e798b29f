"""Tests for LLM providers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from curator.llm import get_provider_for_task
from curator.llm.openai_compat import OpenAICompatibleProvider
from curator.llm.pricing import estimate_cost


@pytest.fixture
def openai_provider():
    return OpenAICompatibleProvider(
        api_key="test-key",
        base_url="http://localhost:9999",
        default_model="test-model",
        max_retries=0,
    )


def _mock_openai_response(content="test response"):
    return {
        "choices": [{"message": {"content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20},
    }


def _mock_client(mock_client_cls, payload):
    mock_resp = MagicMock()
    mock_resp.json.return_value = payload
    mock_resp.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.post.return_value = mock_resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


@pytest.mark.asyncio
@patch("curator.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_complete(mock_client_cls, openai_provider):
    """OpenAI-compatible provider makes correct API call."""
    mock_client = _mock_client(mock_client_cls, _mock_openai_response("hello world"))

    response = await openai_provider.complete("test prompt", system="sys")

    assert response.text == "hello world"
    assert response.input_tokens == 10
    assert response.output_tokens == 20
    assert response.model == "test-model"

    call_args = mock_client.post.call_args
    assert call_args.args[0] == "http://localhost:9999/chat/completions"
    payload = call_args.kwargs["json"]
    assert payload["model"] == "test-model"
    assert len(payload["messages"]) == 2
    assert payload["messages"][0]["role"] == "system"
    assert payload["messages"][1]["content"] == "test prompt"
    assert "response_format" not in payload
    assert call_args.kwargs["headers"]["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
@patch("curator.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_no_system(mock_client_cls, openai_provider):
    """System message is omitted when empty."""
    mock_client = _mock_client(mock_client_cls, _mock_openai_response())

    await openai_provider.complete("prompt only")

    payload = mock_client.post.call_args.kwargs["json"]
    assert len(payload["messages"]) == 1
    assert payload["messages"][0]["role"] == "user"


@pytest.mark.asyncio
@patch("curator.llm.openai_compat.httpx.AsyncClient")
async def test_json_mode_requests_json_object(mock_client_cls):
    provider = OpenAICompatibleProvider(
        api_key="", base_url="http://localhost:9999/", default_model="m", json_mode=True,
    )
    mock_client = _mock_client(mock_client_cls, _mock_openai_response("{}"))

    await provider.complete("prompt", temperature=0.1, max_tokens=100)

    call_args = mock_client.post.call_args
    payload = call_args.kwargs["json"]
    assert payload["response_format"] == {"type": "json_object"}
    assert payload["max_tokens"] == 100
    assert "Authorization" not in call_args.kwargs["headers"]


@pytest.mark.asyncio
@patch("curator.llm.openai_compat.httpx.AsyncClient")
async def test_empty_completion_raises(mock_client_cls, openai_provider):
    _mock_client(mock_client_cls, _mock_openai_response(""))

    with pytest.raises(ValueError, match="Empty completion"):
        await openai_provider.complete("prompt")


def test_get_provider_for_task(sample_config):
    provider = get_provider_for_task(sample_config, "categorize")
    assert isinstance(provider, OpenAICompatibleProvider)
    assert provider.default_model == "gpt-4o-mini"
    assert provider.json_mode is True
    assert provider.max_retries == 0


def test_unknown_provider_type():
    config = {
        "llm": {
            "providers": {"x": {"type": "carrier-pigeon"}},
            "tasks": {"categorize": {"provider": "x"}},
        },
    }
    with pytest.raises(ValueError, match="Unknown LLM provider type"):
        get_provider_for_task(config, "categorize")


def test_estimate_cost_known_model():
    # 1M input + 1M output tokens at gpt-4o-mini rates
    assert estimate_cost(1_000_000, 1_000_000, "gpt-4o-mini") == pytest.approx(0.75)


def test_estimate_cost_unknown_model_uses_default_rates():
    assert estimate_cost(1000, 500, "some-local-model") == pytest.approx(
        estimate_cost(1000, 500, "gpt-4o-mini"),
    )


@pytest.mark.asyncio
@patch("curator.llm.openai_compat.httpx.AsyncClient")
async def test_truncated_completion_raises(mock_client_cls, openai_provider):
    payload = _mock_openai_response('{"articles": [{"id": "1", "newsCat')
    payload["choices"][0]["finish_reason"] = "length"
    _mock_client(mock_client_cls, payload)

    with pytest.raises(ValueError, match="truncated at max_tokens=50"):
        await openai_provider.complete("prompt", max_tokens=50)
