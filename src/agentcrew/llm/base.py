"""Base LLM Provider - Abstract interface for model providers.

This module defines the abstract base class that model providers implement.
``chat`` is a plain text completion; ``complete`` is the dispatch-loop
boundary that understands capabilities, tool exchanges and handoffs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from agentcrew.models import ModelRequest, ModelResponse


@dataclass
class LLMResponse:
    """Response from a plain chat completion."""

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None
    raw_response: Any = None


class BaseLLMProvider(ABC):
    """Abstract base class for model providers.

    Implementations must translate ``ModelRequest`` into their wire format
    and raise ``ModelCallFailure`` for transport or decoding errors.
    """

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        """Initialize the provider.

        Args:
            api_key: API key for authentication.
            **kwargs: Additional provider-specific configuration.
        """
        self._api_key = api_key
        self._config = kwargs

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'anthropic')."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Return the default model for this provider."""
        pass

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a plain chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            model: Model to use. If None, uses default_model.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.
            system_prompt: Optional system prompt.
            **kwargs: Additional provider-specific parameters.

        Returns:
            LLMResponse containing the model's response.
        """
        pass

    @abstractmethod
    async def complete(self, request: ModelRequest) -> ModelResponse:
        """Run one dispatch-loop model call.

        Args:
            request: System context, history, offered capabilities and,
                for a follow-up, the tool exchange to replay.

        Returns:
            ModelResponse with text, proposed tool calls and/or a handoff.

        Raises:
            ModelCallFailure: On transport failure or a malformed response.
        """
        pass

    def model_for(self, tier: str) -> str:
        """Return the model id for a tier. Providers without tiers use the default."""
        return self.default_model

    async def health_check(self) -> dict[str, Any]:
        """Check if the provider is healthy and accessible."""
        return {
            "provider": self.provider_name,
            "status": "unknown",
        }
