"""Model adaptors for agent-engine.

This module provides the two ModelAdaptor implementations the gateway routes
between: OpenAI chat-completions and Anthropic messages.
"""

from agent_engine.adaptors.anthropic import AnthropicAdaptor
from agent_engine.adaptors.openai import OpenAIAdaptor

__all__ = ["AnthropicAdaptor", "OpenAIAdaptor"]
