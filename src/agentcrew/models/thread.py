"""Conversation thread data models."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Author of a thread message."""

    USER = "user"
    ASSISTANT = "assistant"


class ThreadMessage(BaseModel):
    """One retained message in a thread."""

    role: MessageRole
    text: str
    agent_id: str | None = Field(default=None, description="Agent that wrote it")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}


class ConversationThread(BaseModel):
    """Conversational state for one chat thread.

    Owned by the thread memory store; callers only ever see copies.
    """

    thread_id: str
    channel_id: str = ""
    user_id: str = ""
    messages: list[ThreadMessage] = Field(default_factory=list)
    current_agent: str | None = None
    scratch: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Per-agent opaque key-value data"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def message_count(self) -> int:
        return len(self.messages)


class MemoryStats(BaseModel):
    """Snapshot of memory store occupancy."""

    total_threads: int = 0
    active_threads: int = Field(default=0, description="Active in the last 5 minutes")
    average_messages: float = 0.0
