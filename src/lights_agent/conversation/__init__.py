"""
Lights-agent Conversation Package.

Implements the interactive chat driver, the automatic function-calling loop
and the chat-completion provider boundary.
"""

from lights_agent.conversation.driver import ConversationDriver
from lights_agent.conversation.history import ChatHistory, Message, Role
from lights_agent.conversation.loop import FunctionCallingLoop
from lights_agent.conversation.providers import (
    AzureOpenAIProvider,
    ChatProvider,
    CompletionResult,
    FunctionCallLimitError,
    OpenAICompatibleProvider,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ToolCall,
    build_provider,
)

__all__ = [
    "AzureOpenAIProvider",
    "ChatHistory",
    "ChatProvider",
    "CompletionResult",
    "ConversationDriver",
    "FunctionCallLimitError",
    "FunctionCallingLoop",
    "Message",
    "OpenAICompatibleProvider",
    "ProviderAPIError",
    "ProviderConnectionError",
    "ProviderError",
    "ProviderRateLimitError",
    "Role",
    "ToolCall",
    "build_provider",
]
