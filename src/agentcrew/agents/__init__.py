"""Agent definitions.

Agents are data: profiles load from YAML and system prompts from markdown.
"""

from .loader import AgentConfigError, AgentLoader, AgentLoadError, validate_profile_data
from .prompts import PromptLibrary

__all__ = [
    "AgentConfigError",
    "AgentLoadError",
    "AgentLoader",
    "PromptLibrary",
    "validate_profile_data",
]
