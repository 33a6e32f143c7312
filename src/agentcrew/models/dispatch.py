"""Dispatch loop data models.

Covers the inbound request, the model boundary (``ModelRequest`` /
``ModelResponse``), handoff signals, classification outcomes and the
final ``DispatchResult``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .agent import ModelTier
from .capability import CapabilitySpec, ToolCall, ToolResult
from .thread import MessageRole


class DispatchState(str, Enum):
    """States of one dispatch turn."""

    ROUTING = "routing"
    EXECUTING = "executing"
    TOOL_PENDING = "tool_pending"
    COMPLETING = "completing"
    DONE = "done"
    HANDOFF_REQUESTED = "handoff_requested"


class Stage(str, Enum):
    """Progress notifications sent to the transport."""

    ROUTING = "routing"
    THINKING = "thinking"
    TOOL_CALL = "tool_call"
    RESPONDING = "responding"
    HANDOFF = "handoff"


class StageEvent(BaseModel):
    """Payload of a stage callback."""

    stage: Stage
    thread_id: str
    agent_id: str | None = None
    detail: str | None = None


class InboundMessage(BaseModel):
    """A normalized transport message."""

    role: MessageRole = MessageRole.USER
    text: str

    model_config = {"extra": "forbid"}


class DispatchRequest(BaseModel):
    """Normalized inbound request from a transport."""

    user_id: str = Field(..., min_length=1)
    thread_id: str = Field(..., min_length=1)
    channel_id: str = ""
    messages: list[InboundMessage] = Field(..., min_length=1)

    model_config = {"extra": "forbid"}

    @field_validator("messages")
    @classmethod
    def validate_has_user_message(cls, v: list[InboundMessage]) -> list[InboundMessage]:
        if not any(m.role == MessageRole.USER for m in v):
            raise ValueError("At least one user message is required")
        return v

    @property
    def latest_user_text(self) -> str:
        """Text of the most recent user message."""
        for message in reversed(self.messages):
            if message.role == MessageRole.USER:
                return message.text
        return ""


class DispatchResult(BaseModel):
    """Final outcome of a dispatch turn."""

    text: str
    agent_id: str
    capabilities_used: list[str] = Field(default_factory=list)
    handoff_chain: list[str] = Field(
        default_factory=list, description="Agents that ran, in order"
    )


class HandoffSignal(BaseModel):
    """Request from an agent to redirect the rest of the turn."""

    target_agent_id: str
    reason: str = ""
    context_payload: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = Field(
        default=None, description="Provider call id when signalled through a tool call"
    )


class ClassificationSource(str, Enum):
    """How an agent was chosen."""

    RULE = "rule"
    FALLBACK = "fallback"
    DEFAULT = "default"
    HANDOFF = "handoff"


class ClassificationResult(BaseModel):
    """Outcome of intent classification."""

    agent_id: str
    source: ClassificationSource
    rule: str | None = Field(default=None, description="Matching rule set name")

    @property
    def fallback_used(self) -> bool:
        return self.source in (ClassificationSource.FALLBACK, ClassificationSource.DEFAULT)


class ChatMessage(BaseModel):
    """A plain history message sent to the model."""

    role: MessageRole
    text: str


class ToolExchange(BaseModel):
    """The initial proposal and its results, replayed in the follow-up."""

    proposal_text: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    results: list[ToolResult] = Field(default_factory=list)
    offered: list[CapabilitySpec] = Field(default_factory=list)
    handoff: HandoffSignal | None = None


class ModelRequest(BaseModel):
    """One call across the model boundary."""

    system_context: str
    messages: list[ChatMessage]
    allowed_capabilities: list[CapabilitySpec] = Field(default_factory=list)
    handoff_targets: list[str] = Field(
        default_factory=list, description="Agents this turn may hand off to"
    )
    model_tier: ModelTier = ModelTier.STANDARD
    max_tokens: int = 4096
    temperature: float = 0.7
    tool_exchange: ToolExchange | None = None

    model_config = {"protected_namespaces": ()}


class ModelResponse(BaseModel):
    """What the model returned."""

    text: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    handoff: HandoffSignal | None = None
    model: str | None = None
    usage: dict[str, int] = Field(default_factory=dict)
