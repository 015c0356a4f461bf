"""
ConversationDriver: the interactive read-eval-print loop.

Reads one line of user input at a time, appends it to the session
``ChatHistory``, asks the ``FunctionCallingLoop`` for a reply, appends and
displays the reply. The session ends cleanly at end of input.
"""

from __future__ import annotations

import logging
from typing import Callable

from lights_agent.capabilities.registry import CapabilityRegistry
from lights_agent.conversation.history import ChatHistory
from lights_agent.conversation.loop import FunctionCallingLoop

logger = logging.getLogger(__name__)

USER_PROMPT = "User > "
ASSISTANT_PREFIX = "Assistant > "

# Returns the next input line, or None at end of input.
LineReader = Callable[[], str | None]
LineWriter = Callable[[str], None]


def read_stdin_line() -> str | None:
    """Prompt on stdout and read one line from stdin; ``None`` on EOF."""
    try:
        return input(USER_PROMPT)
    except EOFError:
        return None


class ConversationDriver:
    """Owns the session history and runs turns until input is exhausted.

    Attributes:
        loop: Produces the assistant reply for each turn.
        registry: Capabilities offered to the provider on every turn.
        history: The append-only session transcript.
    """

    def __init__(
        self,
        loop: FunctionCallingLoop,
        registry: CapabilityRegistry,
        read_line: LineReader = read_stdin_line,
        write: LineWriter = print,
        history: ChatHistory | None = None,
    ) -> None:
        self.loop = loop
        self.registry = registry
        self.history = history if history is not None else ChatHistory()
        self._read_line = read_line
        self._write = write

    async def run(self) -> int:
        """Run turns until end of input.

        Returns:
            Process exit code ``0`` when the session ends normally.

        Raises:
            ProviderError: Propagated from the provider; the session stops.
        """
        logger.info(
            "Session started with %d capabilities: %s",
            len(self.registry),
            ", ".join(d.name for d in self.registry.get_descriptors()),
        )
        turns = 0
        while True:
            user_input = self._read_line()
            if user_input is None or not user_input.strip():
                break

            await self.run_turn(user_input)
            turns += 1

        logger.info("Session ended after %d turn(s)", turns)
        return 0

    async def run_turn(self, user_input: str) -> str:
        """Process a single user line and return the displayed reply text."""
        self.history.add_user_message(user_input)
        reply = await self.loop.complete(self.history, self.registry)
        self.history.add_message(reply)
        self._write(ASSISTANT_PREFIX + reply.text)
        return reply.text
