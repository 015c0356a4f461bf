"""
Capability registry for the lights-agent function-calling loop.

Provides ``CapabilityRegistry``, a fixed table mapping capability names to a
``CapabilityDescriptor`` and an async handler. The table is built once at
startup and passed by reference to the loop.

Typical usage::

    from lights_agent.capabilities.registry import CapabilityRegistry
    from lights_agent.plugins.lights import LightsPlugin

    registry = CapabilityRegistry()
    LightsPlugin().register(registry)

    result = await registry.invoke("set_light_state", {"id": 2, "is_on": True})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from lights_agent.config import ConfigurationError

logger = logging.getLogger(__name__)

# Type alias for a single capability handler: async (args_dict) -> JSON-serialisable result
AsyncCapabilityHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class CapabilityError(Exception):
    """Base exception for failures the provider should see as a function result."""


class CapabilityNotFoundError(CapabilityError):
    """Raised when no capability is registered under the requested name."""


class CapabilityArgumentError(CapabilityError):
    """Raised when a capability receives missing or mistyped arguments."""


class ItemNotFoundError(CapabilityError):
    """Raised when a capability cannot find the domain object it was asked for."""


class DuplicateCapabilityError(ConfigurationError):
    """Raised when two capabilities are registered under the same name."""


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Describes a capability the provider may call.

    Attributes:
        name: The capability's unique name (used by the model to invoke it).
        description: Human-readable description shown in the tool prompt.
        parameters: JSON Schema dict describing the input parameters.
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_openai_format(self) -> dict[str, Any]:
        """Serialise to OpenAI tool definition format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class CapabilityRegistry:
    """Registry mapping capability names to their descriptors and async handlers.

    Use ``get_descriptors()`` to obtain the list of ``CapabilityDescriptor``
    objects sent to the provider, and ``invoke()`` to execute a call the
    provider requested.
    """

    def __init__(self) -> None:
        self._capabilities: dict[
            str, tuple[CapabilityDescriptor, AsyncCapabilityHandler]
        ] = {}

    def register(
        self,
        descriptor: CapabilityDescriptor,
        handler: AsyncCapabilityHandler,
    ) -> None:
        """Register a capability with its async handler.

        Args:
            descriptor: Name, description and parameter schema.
            handler: Async callable ``(args: dict) -> result`` returning a
                JSON-serialisable value.

        Raises:
            DuplicateCapabilityError: If the name is already registered. The
                existing registration is left in place.
        """
        if descriptor.name in self._capabilities:
            raise DuplicateCapabilityError(
                f"Capability {descriptor.name!r} is already registered."
            )
        self._capabilities[descriptor.name] = (descriptor, handler)
        logger.debug("Registered capability: %r", descriptor.name)

    async def invoke(self, name: str, args: dict[str, Any]) -> Any:
        """Look up *name* and call its handler with *args*.

        Raises:
            CapabilityNotFoundError: If *name* is not registered.
            CapabilityError: Propagated from the handler on domain failures.
        """
        entry = self._capabilities.get(name)
        if entry is None:
            raise CapabilityNotFoundError(f"Unknown capability: {name!r}")

        _descriptor, handler = entry
        logger.debug("Invoking capability %s(%s)", name, args)
        return await handler(args)

    def get_descriptors(self) -> list[CapabilityDescriptor]:
        """Return all registered descriptors (insertion order)."""
        return [descriptor for descriptor, _handler in self._capabilities.values()]

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: str) -> bool:
        return name in self._capabilities
