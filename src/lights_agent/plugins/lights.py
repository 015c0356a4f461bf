"""
Lights plugin: an in-memory set of lamps the assistant can list and switch.

The ``LightsPlugin`` class exposes:

- ``LightsPlugin.LIST_LIGHTS`` / ``LightsPlugin.SET_LIGHT_STATE``: the
  ``CapabilityDescriptor`` objects sent to the provider.
- ``list_lights()`` / ``set_light_state(light_id, is_on)``: the domain
  operations.
- ``register(registry)``: adds both capabilities to a ``CapabilityRegistry``.

The light set is fixed at construction; only ``is_on`` ever changes.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from lights_agent.capabilities.registry import (
    AsyncCapabilityHandler,
    CapabilityArgumentError,
    CapabilityDescriptor,
    CapabilityRegistry,
    ItemNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass
class Light:
    id: int
    name: str
    is_on: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def default_lights() -> list[Light]:
    """Return a fresh copy of the seed data."""
    return [
        Light(id=1, name="Table Lamp", is_on=False),
        Light(id=2, name="Porch light", is_on=False),
        Light(id=3, name="Chandelier", is_on=True),
    ]


class LightsPlugin:
    """Lists lights and changes their on/off state.

    Attributes:
        LIST_LIGHTS: Descriptor for the read-only listing capability.
        SET_LIGHT_STATE: Descriptor for the state-changing capability.
    """

    LIST_LIGHTS: CapabilityDescriptor = CapabilityDescriptor(
        name="list_lights",
        description="Gets a list of lights and their current state.",
        parameters={"type": "object", "properties": {}, "required": []},
    )

    SET_LIGHT_STATE: CapabilityDescriptor = CapabilityDescriptor(
        name="set_light_state",
        description="Changes the state of the light.",
        parameters={
            "type": "object",
            "properties": {
                "id": {
                    "type": "integer",
                    "description": "The id of the light to change.",
                },
                "is_on": {
                    "type": "boolean",
                    "description": "Whether the light should be on.",
                },
            },
            "required": ["id", "is_on"],
        },
    )

    def __init__(self, lights: Iterable[Light] | None = None) -> None:
        self._lights: dict[int, Light] = {}
        for light in default_lights() if lights is None else lights:
            if light.id in self._lights:
                raise ValueError(f"Duplicate light id: {light.id}")
            self._lights[light.id] = light

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_lights(self) -> list[Light]:
        return list(self._lights.values())

    def set_light_state(self, light_id: int, is_on: bool) -> Light:
        """Switch the light with *light_id* on or off.

        Returns:
            The updated ``Light``.

        Raises:
            ItemNotFoundError: If no light has *light_id*. No light changes.
        """
        light = self._lights.get(light_id)
        if light is None:
            raise ItemNotFoundError(f"No light with id {light_id}")
        light.is_on = is_on
        logger.info("Light %d (%s) is now %s", light.id, light.name, "on" if is_on else "off")
        return light

    def register(self, registry: CapabilityRegistry) -> None:
        """Add this plugin's capabilities to *registry*."""
        registry.register(self.LIST_LIGHTS, self._list_lights_entry())
        registry.register(self.SET_LIGHT_STATE, self._set_light_state_entry())

    # ------------------------------------------------------------------
    # Registry handlers
    # ------------------------------------------------------------------

    def _list_lights_entry(self) -> AsyncCapabilityHandler:
        async def _call(args: dict[str, Any]) -> list[dict[str, Any]]:
            return [light.to_dict() for light in self.list_lights()]

        return _call

    def _set_light_state_entry(self) -> AsyncCapabilityHandler:
        async def _call(args: dict[str, Any]) -> dict[str, Any]:
            light_id = args.get("id")
            is_on = args.get("is_on")
            # bool is a subclass of int; reject it as an id.
            if not isinstance(light_id, int) or isinstance(light_id, bool):
                raise CapabilityArgumentError("'id' must be an integer")
            if not isinstance(is_on, bool):
                raise CapabilityArgumentError("'is_on' must be a boolean")
            return self.set_light_state(light_id, is_on).to_dict()

        return _call
