"""
FunctionCallingLoop: automatic function invocation for one conversation turn.

Given the session history and the capability registry, the loop asks the
provider for a reply, executes any capability calls the provider requests,
feeds the results back, and repeats until the provider produces final text.

Intermediate tool-call and tool-result messages live only in a working copy
of the transcript; the caller's ``ChatHistory`` is never touched here.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from lights_agent.capabilities.registry import CapabilityError, CapabilityRegistry
from lights_agent.conversation.history import ChatHistory, Message, Role
from lights_agent.conversation.providers import (
    ChatProvider,
    CompletionResult,
    FunctionCallLimitError,
    ToolCall,
)

logger = logging.getLogger(__name__)


class FunctionCallingLoop:
    """Runs the provider + capability-calling cycle for a single turn.

    Typical usage::

        loop = FunctionCallingLoop(provider=my_provider)
        history.add_user_message("What lights do I have?")
        reply = await loop.complete(history, registry)

    Attributes:
        provider: The chat-completion backend (any ``ChatProvider``).
        max_iterations: Maximum number of provider calls per turn. Default: 10.
        system_prompt: Optional system message prepended to every request.
    """

    def __init__(
        self,
        provider: ChatProvider,
        max_iterations: int = 10,
        system_prompt: str | None = None,
    ) -> None:
        self.provider = provider
        self.max_iterations = max_iterations
        self.system_prompt = system_prompt

    async def complete(
        self,
        history: ChatHistory,
        registry: CapabilityRegistry,
    ) -> Message:
        """Produce the assistant's next message for *history*.

        Args:
            history: The session transcript, ending with the user's message.
            registry: Capabilities the provider may call during this turn.

        Returns:
            An assistant ``Message`` with the provider's final text.

        Raises:
            FunctionCallLimitError: If ``max_iterations`` is exceeded before
                the provider produces a final response.
            ProviderError: Propagated from the provider unchanged.
        """
        descriptors = registry.get_descriptors()
        messages: list[dict[str, Any]] = []

        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})

        messages.extend(history.to_openai_messages())

        turn_start = time.monotonic()

        for iteration in range(self.max_iterations):
            logger.debug("Function-calling iteration %d/%d", iteration + 1, self.max_iterations)

            result: CompletionResult = await self.provider.complete(messages, descriptors)

            if result.finish_reason == "tool_calls" and result.tool_calls:
                messages.append(result.raw_message)
                for tc in result.tool_calls:
                    function_result = await self._invoke(registry, tc)
                    messages.append(function_result.to_openai_format())
                continue

            if result.finish_reason != "stop":
                logger.warning(
                    "Unexpected finish_reason=%r; returning content as-is",
                    result.finish_reason,
                )
            logger.info(
                "Turn complete after %d provider call(s) in %.3fs",
                iteration + 1,
                time.monotonic() - turn_start,
            )
            return Message(role=Role.ASSISTANT, content=result.content or "")

        raise FunctionCallLimitError(
            f"Provider exceeded max_iterations={self.max_iterations} "
            "without reaching a final response."
        )

    async def _invoke(self, registry: CapabilityRegistry, tc: ToolCall) -> Message:
        """Execute one requested call and wrap the outcome as a function message.

        Capability failures become ``{"error": ...}`` payloads so the provider
        can explain them to the user.
        """
        try:
            payload = await registry.invoke(tc.name, tc.arguments)
        except CapabilityError as exc:
            logger.warning("Capability %r failed: %s", tc.name, exc)
            payload = {"error": str(exc)}
        except Exception as exc:
            logger.error("Capability %r raised: %s", tc.name, exc, exc_info=True)
            payload = {"error": str(exc)}

        try:
            json.dumps(payload)
        except (TypeError, ValueError):
            payload = str(payload)

        return Message(role=Role.FUNCTION, content=payload, tool_call_id=tc.id)
