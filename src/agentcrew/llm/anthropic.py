"""Anthropic LLM Provider implementation.

This module provides the Anthropic Claude API integration, including the
translation between ``ModelRequest`` and the Messages API tool-use format.
Handoffs are offered to the model as a synthetic ``handoff_to_agent`` tool.
"""

from __future__ import annotations

import json
import os
from typing import Any

import anthropic

from agentcrew.llm.base import BaseLLMProvider, LLMResponse
from agentcrew.models import (
    CapabilitySpec,
    ChatMessage,
    HandoffSignal,
    ModelRequest,
    ModelResponse,
    ToolCall,
    ToolExchange,
)
from agentcrew.utils.config import ModelTierConfig
from agentcrew.utils.exceptions import ModelCallFailure
from agentcrew.utils.logging import get_logger

logger = get_logger(__name__)

HANDOFF_TOOL_NAME = "handoff_to_agent"
HANDOFF_ACK = "Handoff noted. Finish your reply to the user; the specialist takes over next."


def handoff_tool(targets: list[str]) -> dict[str, Any]:
    """Tool definition the model uses to signal a handoff."""
    return {
        "name": HANDOFF_TOOL_NAME,
        "description": (
            "Hand the rest of this request to another specialist agent when it is "
            "outside your expertise. Include anything the specialist needs in context."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "target_agent": {"type": "string", "enum": targets},
                "reason": {"type": "string"},
                "context": {"type": "object"},
            },
            "required": ["target_agent", "reason"],
        },
    }


def _tool_param(spec: CapabilitySpec) -> dict[str, Any]:
    schema = dict(spec.input_schema) or {"type": "object", "properties": {}}
    schema.setdefault("type", "object")
    return {"name": spec.name, "description": spec.description, "input_schema": schema}


def build_history(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Convert thread history to Messages API format.

    Empty messages are skipped, consecutive same-role messages are merged and
    leading assistant messages are dropped so the list starts with a user turn.
    """
    history: list[dict[str, Any]] = []
    for message in messages:
        text = message.text.strip()
        if not text:
            continue
        role = message.role.value
        if history and history[-1]["role"] == role:
            history[-1]["content"] = f"{history[-1]['content']}\n\n{text}"
        elif history or role == "user":
            history.append({"role": role, "content": text})
    return history


def build_exchange(exchange: ToolExchange) -> list[dict[str, Any]]:
    """Render the assistant proposal and the user tool results."""
    proposal: list[dict[str, Any]] = []
    if exchange.proposal_text:
        proposal.append({"type": "text", "text": exchange.proposal_text})
    for call in exchange.tool_calls:
        proposal.append(
            {"type": "tool_use", "id": call.call_id, "name": call.name, "input": call.arguments}
        )

    results: list[dict[str, Any]] = [
        {
            "type": "tool_result",
            "tool_use_id": result.call_id,
            "content": json.dumps(result.to_content(), default=str),
            "is_error": not result.ok,
        }
        for result in exchange.results
    ]

    handoff = exchange.handoff
    if handoff is not None and handoff.call_id:
        proposal.append(
            {
                "type": "tool_use",
                "id": handoff.call_id,
                "name": HANDOFF_TOOL_NAME,
                "input": {
                    "target_agent": handoff.target_agent_id,
                    "reason": handoff.reason,
                    "context": handoff.context_payload,
                },
            }
        )
        results.append(
            {"type": "tool_result", "tool_use_id": handoff.call_id, "content": HANDOFF_ACK}
        )

    return [
        {"role": "assistant", "content": proposal},
        {"role": "user", "content": results},
    ]


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude API provider.

    Model ids are resolved per ``ModelTier`` from ``ModelTierConfig``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        models: ModelTierConfig | None = None,
        timeout: float = 120.0,
        client: anthropic.AsyncAnthropic | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the Anthropic provider.

        Args:
            api_key: Anthropic API key. If None, reads from ANTHROPIC_API_KEY env var.
            base_url: Optional custom base URL for the API.
            models: Tier to model id mapping.
            timeout: Request timeout in seconds.
            client: Optional preconfigured client (used by tests).
            **kwargs: Additional configuration.
        """
        resolved_api_key = api_key or os.getenv("ANTHROPIC_API_KEY", "")
        super().__init__(api_key=resolved_api_key, **kwargs)

        self._models = models or ModelTierConfig()
        self._client = client or anthropic.AsyncAnthropic(
            api_key=resolved_api_key,
            base_url=base_url,
            timeout=timeout,
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "anthropic"

    @property
    def default_model(self) -> str:
        """Return the default model."""
        return self._models.fast

    def model_for(self, tier: str) -> str:
        """Return the model id configured for a tier."""
        return self._models.resolve(tier)

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a plain chat completion request to Anthropic.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            model: Model to use. If None, uses default_model.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.
            system_prompt: Optional system prompt.
            **kwargs: Additional Anthropic-specific parameters.

        Returns:
            LLMResponse containing Claude's response.
        """
        used_model = model or self.default_model

        request_params: dict[str, Any] = {
            "model": used_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }

        if system_prompt:
            request_params["system"] = system_prompt

        request_params.update(kwargs)

        response = await self._client.messages.create(**request_params)

        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        return LLMResponse(
            content=content,
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            finish_reason=response.stop_reason,
            raw_response=response,
        )

    def build_params(self, request: ModelRequest) -> dict[str, Any]:
        """Translate a ModelRequest into Messages API parameters."""
        messages = build_history(request.messages)

        exchange = request.tool_exchange
        if exchange is not None:
            messages.extend(build_exchange(exchange))
            # Follow-ups replay the exchange but may not call anything new
            tools = [_tool_param(spec) for spec in exchange.offered]
            if exchange.handoff is not None and exchange.handoff.call_id:
                tools.append(handoff_tool([exchange.handoff.target_agent_id]))
            tool_choice: dict[str, Any] | None = {"type": "none"} if tools else None
        else:
            tools = [_tool_param(spec) for spec in request.allowed_capabilities]
            if request.handoff_targets:
                tools.append(handoff_tool(request.handoff_targets))
            tool_choice = None

        params: dict[str, Any] = {
            "model": self.model_for(request.model_tier.value),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "system": request.system_context,
            "messages": messages,
        }
        if tools:
            params["tools"] = tools
        if tool_choice:
            params["tool_choice"] = tool_choice
        return params

    async def complete(self, request: ModelRequest) -> ModelResponse:
        """Run one dispatch-loop model call against the Messages API.

        Raises:
            ModelCallFailure: On API errors or an empty response.
        """
        params = self.build_params(request)
        model = params["model"]

        try:
            response = await self._client.messages.create(**params)
        except anthropic.APIError as e:
            logger.error("Anthropic request failed", model=model, error=str(e))
            raise ModelCallFailure(
                f"Anthropic request failed: {e}", model=model, cause=e
            ) from e

        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        handoff: HandoffSignal | None = None

        for block in response.content or []:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                texts.append(block.text)
            elif block_type == "tool_use":
                arguments = dict(block.input) if isinstance(block.input, dict) else {}
                if block.name == HANDOFF_TOOL_NAME:
                    if handoff is None and arguments.get("target_agent"):
                        context = arguments.get("context")
                        handoff = HandoffSignal(
                            target_agent_id=str(arguments["target_agent"]),
                            reason=str(arguments.get("reason", "")),
                            context_payload=context if isinstance(context, dict) else {},
                            call_id=block.id,
                        )
                else:
                    tool_calls.append(
                        ToolCall(call_id=block.id, name=block.name, arguments=arguments)
                    )

        text = "".join(texts)
        if not text and not tool_calls and handoff is None:
            raise ModelCallFailure("Model returned an empty response", model=model)

        usage = getattr(response, "usage", None)
        return ModelResponse(
            text=text or None,
            tool_calls=tool_calls,
            handoff=handoff,
            model=getattr(response, "model", model),
            usage={
                "input_tokens": getattr(usage, "input_tokens", 0),
                "output_tokens": getattr(usage, "output_tokens", 0),
            }
            if usage is not None
            else {},
        )

    async def health_check(self) -> dict[str, Any]:
        """Check if the Anthropic API is accessible."""
        try:
            response = await self._client.messages.create(
                model=self.default_model,
                max_tokens=10,
                messages=[{"role": "user", "content": "Hi"}],
            )
            return {
                "provider": self.provider_name,
                "status": "healthy",
                "model": response.model,
            }
        except Exception as e:
            return {
                "provider": self.provider_name,
                "status": "unhealthy",
                "error": str(e),
            }
