"""API schema definitions.

Request and response schemas used by the FastAPI endpoints. Dispatch
requests reuse ``DispatchRequest`` from the data model directly.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from agentcrew.models import ConversationThread, DispatchResult, MemoryStats

# =============================================================================
# Common Schemas
# =============================================================================


class APIResponse(BaseModel):
    """Standard API response envelope."""

    success: bool = Field(..., description="Whether the request succeeded")
    data: Any = Field(default=None, description="Response payload")
    error: str | None = Field(default=None, description="Error message")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Extra metadata")


# =============================================================================
# System Schemas
# =============================================================================


class HealthResponse(BaseModel):
    """Service health."""

    status: str = Field(..., description="healthy or degraded")
    version: str = Field(..., description="Application version")
    agents: int = Field(default=0, description="Loaded agent profiles")
    capabilities: int = Field(default=0, description="Registered capabilities")
    active_threads: int = Field(default=0, description="Threads held in memory")
    sweeper_running: bool = Field(default=False, description="Whether expiry sweeping is on")
    provider: dict[str, Any] | None = Field(
        default=None, description="Model provider status, when requested"
    )


class MemoryStatsResponse(BaseModel):
    """Memory store statistics."""

    total_threads: int
    active_threads: int
    average_messages: float

    @classmethod
    def from_stats(cls, stats: MemoryStats) -> "MemoryStatsResponse":
        return cls(**stats.model_dump())


# =============================================================================
# Dispatch Schemas
# =============================================================================


class DispatchResponse(BaseModel):
    """Result of one dispatched turn."""

    text: str = Field(..., description="Reply text")
    agent_id: str = Field(..., description="Agent that produced the reply")
    agent_name: str = Field(default="", description="Display name of that agent")
    emoji: str = Field(default="", description="Display prefix of that agent")
    capabilities_used: list[str] = Field(default_factory=list)
    handoff_chain: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: DispatchResult, name: str = "", emoji: str = "") -> "DispatchResponse":
        return cls(
            text=result.text,
            agent_id=result.agent_id,
            agent_name=name,
            emoji=emoji,
            capabilities_used=list(result.capabilities_used),
            handoff_chain=list(result.handoff_chain),
        )


# =============================================================================
# Thread Schemas
# =============================================================================


class ThreadMessageResponse(BaseModel):
    """One stored message."""

    role: str
    text: str
    agent_id: str | None = None
    created_at: datetime


class ThreadResponse(BaseModel):
    """Stored thread state."""

    thread_id: str
    channel_id: str
    user_id: str
    current_agent: str | None = None
    message_count: int
    messages: list[ThreadMessageResponse] = Field(default_factory=list)
    created_at: datetime
    last_activity: datetime

    @classmethod
    def from_thread(cls, thread: ConversationThread) -> "ThreadResponse":
        return cls(
            thread_id=thread.thread_id,
            channel_id=thread.channel_id,
            user_id=thread.user_id,
            current_agent=thread.current_agent,
            message_count=thread.message_count,
            messages=[
                ThreadMessageResponse(
                    role=message.role.value,
                    text=message.text,
                    agent_id=message.agent_id,
                    created_at=message.created_at,
                )
                for message in thread.messages
            ],
            created_at=thread.created_at,
            last_activity=thread.last_activity,
        )


# =============================================================================
# Quality Schemas
# =============================================================================


class QualityReviewRequest(BaseModel):
    """Article submitted for review."""

    article: str = Field(..., min_length=1, description="Article markdown")
    threshold: int | None = Field(
        default=None, ge=0, le=100, description="Pass threshold override"
    )
