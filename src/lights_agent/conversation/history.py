"""
Chat history for a single conversation session.

``ChatHistory`` is an append-only transcript of immutable ``Message`` objects.
There is no API for removing or reordering messages; the driver appends one
user message and one assistant message per turn.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class Role(str, Enum):
    """Author of a message in the transcript."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


@dataclass(frozen=True)
class Message:
    """A single immutable entry in the conversation.

    Attributes:
        role: Who produced the message.
        content: Plain text, or a structured payload for ``Role.FUNCTION``
            messages carrying a capability result.
        tool_call_id: Correlates a function result with the provider's tool
            call. Only set for ``Role.FUNCTION`` messages.
    """

    role: Role
    content: Any
    tool_call_id: str | None = None

    @property
    def text(self) -> str:
        """Content rendered as text (structured payloads become JSON)."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content)

    def to_openai_format(self) -> dict[str, Any]:
        """Serialise to an OpenAI chat message dict."""
        if self.role is Role.FUNCTION:
            return {
                "role": "tool",
                "tool_call_id": self.tool_call_id,
                "content": self.text,
            }
        return {"role": self.role.value, "content": self.text}


class ChatHistory:
    """Ordered, append-only list of ``Message`` objects."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def add_message(self, message: Message) -> None:
        self._messages.append(message)

    def add_user_message(self, content: str) -> Message:
        message = Message(role=Role.USER, content=content)
        self._messages.append(message)
        return message

    def add_assistant_message(self, content: str) -> Message:
        message = Message(role=Role.ASSISTANT, content=content)
        self._messages.append(message)
        return message

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the transcript in append order."""
        return tuple(self._messages)

    def to_openai_messages(self) -> list[dict[str, Any]]:
        """Return the transcript as a fresh list of OpenAI message dicts."""
        return [m.to_openai_format() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]
