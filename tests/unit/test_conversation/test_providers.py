"""Unit tests for lights_agent.conversation.providers."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lights_agent.capabilities.registry import CapabilityDescriptor
from lights_agent.config import Settings
from lights_agent.conversation.providers import (
    AzureOpenAIProvider,
    ChatProvider,
    CompletionResult,
    FunctionCallLimitError,
    OpenAICompatibleProvider,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    build_provider,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_response(
    content: str | None = None,
    finish_reason: str = "stop",
    tool_calls: list[tuple[str, str, str]] | None = None,
    usage: tuple[int, int, int] | None = None,
) -> MagicMock:
    """Build a minimal chat.completions response object.

    Args:
        tool_calls: List of (id, name, raw_json_arguments) tuples.
        usage: (prompt_tokens, completion_tokens, total_tokens).
    """
    choice = MagicMock()
    choice.finish_reason = finish_reason
    choice.message.content = content
    if tool_calls:
        mocked_calls = []
        for id_, name, arguments in tool_calls:
            tc = MagicMock()
            tc.id = id_
            tc.function.name = name
            tc.function.arguments = arguments
            mocked_calls.append(tc)
        choice.message.tool_calls = mocked_calls
    else:
        choice.message.tool_calls = None

    response = MagicMock()
    response.choices = [choice]
    if usage is None:
        response.usage = None
    else:
        response.usage.prompt_tokens = usage[0]
        response.usage.completion_tokens = usage[1]
        response.usage.total_tokens = usage[2]
    return response


def _make_provider(mock_cls: MagicMock, **create_kwargs) -> OpenAICompatibleProvider:
    mock_client = MagicMock()
    mock_client.chat.completions.create = AsyncMock(**create_kwargs)
    mock_cls.return_value = mock_client
    return OpenAICompatibleProvider(
        base_url="http://localhost:11434/v1", model="llama3.1:8b", api_key="ollama"
    )


_LIST_LIGHTS = CapabilityDescriptor(
    name="list_lights",
    description="List lights.",
    parameters={"type": "object", "properties": {}, "required": []},
)


# ---------------------------------------------------------------------------
# CapabilityDescriptor
# ---------------------------------------------------------------------------


def test_descriptor_to_openai_format() -> None:
    fmt = _LIST_LIGHTS.to_openai_format()

    assert fmt["type"] == "function"
    assert fmt["function"]["name"] == "list_lights"
    assert fmt["function"]["description"] == "List lights."
    assert fmt["function"]["parameters"]["type"] == "object"


def test_descriptor_empty_parameters() -> None:
    descriptor = CapabilityDescriptor(name="ping", description="Ping.")
    assert descriptor.to_openai_format()["function"]["parameters"] == {}


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "exc",
    [
        ProviderRateLimitError("rate limited"),
        ProviderConnectionError("no route"),
        ProviderAPIError("server error", status_code=500),
        FunctionCallLimitError("too many calls"),
    ],
)
def test_errors_inherit_provider_error(exc: Exception) -> None:
    assert isinstance(exc, ProviderError)


def test_api_error_status_code_defaults_to_none() -> None:
    assert ProviderAPIError("unknown").status_code is None


# ---------------------------------------------------------------------------
# OpenAICompatibleProvider: construction
# ---------------------------------------------------------------------------


def test_provider_stores_config_and_builds_client() -> None:
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = OpenAICompatibleProvider(
            base_url="http://localhost:11434/v1",
            model="llama3.1:8b",
            api_key="ollama",
            temperature=0.5,
        )

    assert provider.base_url == "http://localhost:11434/v1"
    assert provider.model == "llama3.1:8b"
    assert provider.temperature == 0.5
    mock_cls.assert_called_once_with(
        base_url="http://localhost:11434/v1", api_key="ollama", max_retries=0
    )


def test_provider_satisfies_protocol() -> None:
    with patch("lights_agent.conversation.providers.AsyncOpenAI"):
        provider = OpenAICompatibleProvider(base_url="http://x", model="m", api_key="k")
    assert isinstance(provider, ChatProvider)


def test_azure_provider_builds_azure_client() -> None:
    with patch("lights_agent.conversation.providers.AsyncAzureOpenAI") as mock_cls:
        provider = AzureOpenAIProvider(
            endpoint="https://res.openai.azure.com/",
            deployment_name="gpt-4o",
            api_key="secret",
            api_version="2024-06-01",
        )

    assert provider.model == "gpt-4o"
    mock_cls.assert_called_once_with(
        azure_endpoint="https://res.openai.azure.com/",
        azure_deployment="gpt-4o",
        api_key="secret",
        api_version="2024-06-01",
        max_retries=0,
    )


def test_openai_client_does_not_retry() -> None:
    provider = OpenAICompatibleProvider(
        base_url="http://localhost:11434/v1", model="llama3.1:8b", api_key="ollama"
    )
    assert provider._client.max_retries == 0


def test_azure_client_does_not_retry() -> None:
    provider = AzureOpenAIProvider(
        endpoint="https://res.openai.azure.com/",
        deployment_name="gpt-4o",
        api_key="secret",
    )
    assert provider._client.max_retries == 0


def test_build_provider_defaults_to_azure() -> None:
    settings = Settings(
        _env_file=None, deployment_name="gpt-4o", endpoint="https://res", api_key="k"
    )
    with patch("lights_agent.conversation.providers.AsyncAzureOpenAI"):
        provider = build_provider(settings)
    assert isinstance(provider, AzureOpenAIProvider)


def test_build_provider_openai_flavor() -> None:
    settings = Settings(
        _env_file=None,
        deployment_name="llama3.1:8b",
        endpoint="http://localhost:11434/v1",
        api_key="ollama",
        api_flavor="openai",
        temperature=0.2,
    )
    with patch("lights_agent.conversation.providers.AsyncOpenAI"):
        provider = build_provider(settings)

    assert type(provider) is OpenAICompatibleProvider
    assert provider.temperature == 0.2


# ---------------------------------------------------------------------------
# OpenAICompatibleProvider: responses
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_complete_returns_final_text() -> None:
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=_mock_response(content="Hi there"))

    result = await provider.complete([{"role": "user", "content": "Hi"}], [])

    assert isinstance(result, CompletionResult)
    assert result.finish_reason == "stop"
    assert result.content == "Hi there"
    assert result.tool_calls == []
    assert result.raw_message == {"role": "assistant", "content": "Hi there"}


@pytest.mark.anyio
async def test_complete_sends_tools_with_auto_choice() -> None:
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=_mock_response(content="ok"))

    await provider.complete([{"role": "user", "content": "Hi"}], [_LIST_LIGHTS])

    kwargs = provider._client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "llama3.1:8b"
    assert kwargs["tools"] == [_LIST_LIGHTS.to_openai_format()]
    assert kwargs["tool_choice"] == "auto"


@pytest.mark.anyio
async def test_complete_omits_tools_when_none_registered() -> None:
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=_mock_response(content="ok"))

    await provider.complete([{"role": "user", "content": "Hi"}], [])

    kwargs = provider._client.chat.completions.create.call_args.kwargs
    assert "tools" not in kwargs
    assert "tool_choice" not in kwargs


@pytest.mark.anyio
async def test_complete_parses_tool_calls() -> None:
    response = _mock_response(
        finish_reason="tool_calls",
        tool_calls=[("call_1", "set_light_state", '{"id": 2, "is_on": true}')],
    )
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=response)

    result = await provider.complete([{"role": "user", "content": "Porch on"}], [])

    assert result.finish_reason == "tool_calls"
    assert len(result.tool_calls) == 1
    call = result.tool_calls[0]
    assert call.id == "call_1"
    assert call.name == "set_light_state"
    assert call.arguments == {"id": 2, "is_on": True}
    raw_call = result.raw_message["tool_calls"][0]
    assert raw_call["function"]["name"] == "set_light_state"
    assert json.loads(raw_call["function"]["arguments"]) == {"id": 2, "is_on": True}


@pytest.mark.anyio
async def test_complete_treats_tool_calls_as_tool_calls_even_when_reason_is_stop() -> None:
    response = _mock_response(
        finish_reason="stop", tool_calls=[("call_1", "list_lights", "{}")]
    )
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=response)

    result = await provider.complete([{"role": "user", "content": "lights?"}], [])

    assert result.finish_reason == "tool_calls"


@pytest.mark.anyio
async def test_complete_invalid_tool_arguments_become_empty_dict() -> None:
    response = _mock_response(
        finish_reason="tool_calls", tool_calls=[("call_1", "list_lights", "{not json")]
    )
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=response)

    result = await provider.complete([{"role": "user", "content": "lights?"}], [])

    assert result.tool_calls[0].arguments == {}


@pytest.mark.anyio
async def test_complete_records_usage() -> None:
    response = _mock_response(content="ok", usage=(80, 20, 100))
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=response)

    result = await provider.complete([{"role": "user", "content": "Hi"}], [])

    assert result.usage is not None
    assert result.usage.prompt_tokens == 80
    assert result.usage.completion_tokens == 20
    assert result.usage.total_tokens == 100


@pytest.mark.anyio
async def test_complete_usage_none_when_absent() -> None:
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, return_value=_mock_response(content="ok"))

    result = await provider.complete([{"role": "user", "content": "Hi"}], [])

    assert result.usage is None


# ---------------------------------------------------------------------------
# OpenAICompatibleProvider: error mapping
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_rate_limit_maps_to_provider_rate_limit_error() -> None:
    from openai import RateLimitError

    error = RateLimitError("rate limit", response=MagicMock(status_code=429), body={})
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, side_effect=error)

    with pytest.raises(ProviderRateLimitError):
        await provider.complete([{"role": "user", "content": "Hi"}], [])


@pytest.mark.anyio
async def test_connection_failure_maps_to_provider_connection_error() -> None:
    from openai import APIConnectionError

    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(
            mock_cls, side_effect=APIConnectionError(request=MagicMock())
        )

    with pytest.raises(ProviderConnectionError):
        await provider.complete([{"role": "user", "content": "Hi"}], [])


@pytest.mark.anyio
async def test_status_error_maps_to_provider_api_error() -> None:
    from openai import APIStatusError

    response = MagicMock()
    response.status_code = 401
    error = APIStatusError("Unauthorized", response=response, body={})
    with patch("lights_agent.conversation.providers.AsyncOpenAI") as mock_cls:
        provider = _make_provider(mock_cls, side_effect=error)

    with pytest.raises(ProviderAPIError) as exc_info:
        await provider.complete([{"role": "user", "content": "Hi"}], [])
    assert exc_info.value.status_code == 401
