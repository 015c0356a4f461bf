"""
Pytest configuration for the lights-agent test suite.

Keeps tests independent of the developer's shell: configuration variables
are cleared before every test so only what a test sets is visible.
"""

import os

import pytest

from lights_agent.capabilities.registry import CapabilityRegistry
from lights_agent.plugins.lights import LightsPlugin

_CONFIG_ENV_VARS = ("MODEL_ID", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY")


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name in _CONFIG_ENV_VARS or name.startswith("LIGHTS_AGENT_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def required_env(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set the three required configuration variables."""
    values = {
        "MODEL_ID": "gpt-4o-mini",
        "AZURE_OPENAI_ENDPOINT": "https://example-resource.openai.azure.com/",
        "AZURE_OPENAI_API_KEY": "test-key",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values


@pytest.fixture
def lights() -> LightsPlugin:
    return LightsPlugin()


@pytest.fixture
def registry(lights: LightsPlugin) -> CapabilityRegistry:
    registry = CapabilityRegistry()
    lights.register(registry)
    return registry
