"""
Lights Agent - a terminal chat assistant that can switch lights.

This library wires a chat-completion provider (Azure OpenAI or any
OpenAI-compatible endpoint) to a registry of callable capabilities and runs
an interactive read-eval-print loop. It includes:

- A conversation driver with an append-only chat history
- Automatic function calling against a capability registry
- An example plugin managing an in-memory set of lights

Quick Start:
    >>> from lights_agent.main import build_driver
    >>> from lights_agent.config import load_settings
    >>> driver = build_driver(load_settings())
    >>> exit_code = await driver.run()
"""

from lights_agent.config import ConfigurationError, Settings, load_settings

__version__ = "0.1.0"
__all__ = ["ConfigurationError", "Settings", "load_settings"]
