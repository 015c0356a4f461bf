"""Example capability plugins."""

from lights_agent.plugins.lights import Light, LightsPlugin, default_lights

__all__ = ["Light", "LightsPlugin", "default_lights"]
