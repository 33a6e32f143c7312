"""Model provider package.

Provides the provider interface used by the dispatch loop and the
Anthropic implementation.
"""

from .anthropic import HANDOFF_TOOL_NAME, AnthropicProvider
from .base import BaseLLMProvider, LLMResponse

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "AnthropicProvider",
    "HANDOFF_TOOL_NAME",
]
