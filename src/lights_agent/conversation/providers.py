"""
Chat-completion provider abstractions for the lights-agent conversation package.

Defines the ``ChatProvider`` Protocol so the ``FunctionCallingLoop`` can work
with any OpenAI-compatible backend without being tied to a specific vendor.

Two concrete implementations are provided:

- ``OpenAICompatibleProvider``: ``openai.AsyncOpenAI`` against any
  OpenAI-compatible base URL.
- ``AzureOpenAIProvider``: ``openai.AsyncAzureOpenAI`` against an Azure
  OpenAI resource, with the model identifier used as the deployment name.

Also provides the provider error hierarchy. Provider errors are fatal for the
conversation driver; nothing here retries.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncAzureOpenAI,
    AsyncOpenAI,
    RateLimitError,
)

from lights_agent.capabilities.registry import CapabilityDescriptor

if TYPE_CHECKING:
    from lights_agent.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Custom exception hierarchy
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """Base exception for all chat-completion provider errors."""


class ProviderRateLimitError(ProviderError):
    """Raised when the API returns a rate-limit or quota (429) response."""


class ProviderConnectionError(ProviderError):
    """Raised when the API endpoint cannot be reached."""


class ProviderAPIError(ProviderError):
    """Raised for other API errors (e.g., 5xx, authentication failures).

    Attributes:
        status_code: HTTP status code from the API, or ``None`` if unavailable.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FunctionCallLimitError(ProviderError):
    """Raised when the provider keeps requesting function calls past the limit."""


# ---------------------------------------------------------------------------
# Core data types
# ---------------------------------------------------------------------------


@dataclass
class ToolCall:
    """A capability invocation requested by the provider.

    Attributes:
        id: Unique call ID returned by the API (used to correlate the result).
        name: Name of the capability to invoke.
        arguments: Parsed JSON arguments dict.
    """

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class UsageStats:
    """Token usage recorded for a single completion call."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class CompletionResult:
    """Result of a single completion call.

    Attributes:
        finish_reason: ``"stop"`` for a final text response, ``"tool_calls"``
            when the model wants to invoke capabilities.
        content: Text response (populated when finish_reason == "stop").
        tool_calls: Requested invocations (populated when finish_reason
            == "tool_calls").
        raw_message: The assistant message dict, for the working transcript.
        usage: Token usage for this call, or ``None`` if unavailable.
    """

    finish_reason: str
    content: str | None
    tool_calls: list[ToolCall]
    raw_message: dict[str, Any]
    usage: UsageStats | None = None


# ---------------------------------------------------------------------------
# ChatProvider Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ChatProvider(Protocol):
    """Protocol for chat-completion backends used by ``FunctionCallingLoop``."""

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[CapabilityDescriptor],
    ) -> CompletionResult:
        """Send a completion request.

        Args:
            messages: The working transcript in OpenAI message format.
            tools: The capability descriptors the model may call.

        Returns:
            A ``CompletionResult`` describing the model's response.

        Raises:
            ProviderRateLimitError: If the API returns a 429 response.
            ProviderConnectionError: If the API endpoint cannot be reached.
            ProviderAPIError: For other API-level failures.
        """
        ...


# ---------------------------------------------------------------------------
# Concrete provider implementations
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """Provider backed by any OpenAI-compatible endpoint.

    Attributes:
        base_url: The API base URL.
        model: The model identifier.
        temperature: Sampling temperature (0.0 to 2.0).
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str,
        temperature: float = 0.7,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self._client = self._create_client(api_key)

    def _create_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(base_url=self.base_url, api_key=api_key, max_retries=0)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[CapabilityDescriptor],
    ) -> CompletionResult:
        """Call the API and return a structured ``CompletionResult``.

        Raises:
            ProviderRateLimitError: If the API returns a 429 response.
            ProviderConnectionError: If the API endpoint cannot be reached.
            ProviderAPIError: For other API-level failures (e.g. 4xx/5xx).
        """
        openai_tools = [t.to_openai_format() for t in tools] if tools else []

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if openai_tools:
            kwargs["tools"] = openai_tools
            kwargs["tool_choice"] = "auto"

        logger.debug(
            "Completion request: model=%s, messages=%d, tools=%d",
            self.model,
            len(messages),
            len(openai_tools),
        )

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except RateLimitError as exc:
            logger.warning("Provider rate limit exceeded: %s", exc)
            raise ProviderRateLimitError(f"Rate limit exceeded: {exc}") from exc
        except APIConnectionError as exc:
            logger.error("Provider connection failed: %s", exc)
            raise ProviderConnectionError(
                f"Could not connect to {self.base_url}: {exc}"
            ) from exc
        except APIStatusError as exc:
            logger.error("Provider API error %d: %s", exc.status_code, exc)
            raise ProviderAPIError(
                f"Provider returned status {exc.status_code}: {exc}",
                status_code=exc.status_code,
            ) from exc

        choice = response.choices[0]
        finish_reason = choice.finish_reason or "stop"
        message = choice.message

        tool_calls: list[ToolCall] = []
        if message.tool_calls:
            for tc in message.tool_calls:
                try:
                    args = json.loads(tc.function.arguments or "{}")
                except json.JSONDecodeError:
                    logger.warning(
                        "Unparseable arguments for %s: %r",
                        tc.function.name,
                        tc.function.arguments,
                    )
                    args = {}
                tool_calls.append(
                    ToolCall(id=tc.id, name=tc.function.name, arguments=args)
                )

        raw_message: dict[str, Any] = {"role": "assistant"}
        if message.content is not None:
            raw_message["content"] = message.content
        if tool_calls:
            raw_message["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments),
                    },
                }
                for tc in tool_calls
            ]
            # Some backends report "stop" even when tool calls are present.
            finish_reason = "tool_calls"

        usage: UsageStats | None = None
        if response.usage is not None:
            usage = UsageStats(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        logger.debug(
            "Completion response: finish_reason=%s, tool_calls=%d, tokens=%s",
            finish_reason,
            len(tool_calls),
            usage.total_tokens if usage else "n/a",
        )

        return CompletionResult(
            finish_reason=finish_reason,
            content=message.content,
            tool_calls=tool_calls,
            raw_message=raw_message,
            usage=usage,
        )


class AzureOpenAIProvider(OpenAICompatibleProvider):
    """Provider backed by an Azure OpenAI resource.

    ``model`` is the deployment name; ``base_url`` is the resource endpoint
    (e.g. ``https://my-resource.openai.azure.com/``).
    """

    def __init__(
        self,
        endpoint: str,
        deployment_name: str,
        api_key: str,
        api_version: str = "2024-06-01",
        temperature: float = 0.7,
    ) -> None:
        self.api_version = api_version
        super().__init__(
            base_url=endpoint,
            model=deployment_name,
            api_key=api_key,
            temperature=temperature,
        )

    def _create_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncAzureOpenAI(
            azure_endpoint=self.base_url,
            azure_deployment=self.model,
            api_key=api_key,
            api_version=self.api_version,
            max_retries=0,
        )


def build_provider(settings: Settings) -> OpenAICompatibleProvider:
    """Construct the provider selected by ``settings.api_flavor``."""
    if settings.api_flavor == "openai":
        return OpenAICompatibleProvider(
            base_url=settings.endpoint,
            model=settings.deployment_name,
            api_key=settings.api_key,
            temperature=settings.temperature,
        )
    return AzureOpenAIProvider(
        endpoint=settings.endpoint,
        deployment_name=settings.deployment_name,
        api_key=settings.api_key,
        api_version=settings.api_version,
        temperature=settings.temperature,
    )
