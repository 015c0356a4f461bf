"""
Capabilities the provider may call mid-conversation.

``CapabilityRegistry`` holds the name → (descriptor, handler) table; the
``CapabilityError`` family covers failures that are reported back to the
provider as structured function results instead of ending the session.
"""

from lights_agent.capabilities.registry import (
    AsyncCapabilityHandler,
    CapabilityArgumentError,
    CapabilityDescriptor,
    CapabilityError,
    CapabilityNotFoundError,
    CapabilityRegistry,
    DuplicateCapabilityError,
    ItemNotFoundError,
)

__all__ = [
    "AsyncCapabilityHandler",
    "CapabilityArgumentError",
    "CapabilityDescriptor",
    "CapabilityError",
    "CapabilityNotFoundError",
    "CapabilityRegistry",
    "DuplicateCapabilityError",
    "ItemNotFoundError",
]
