"""Data models package.

This module defines all data models used by agentcrew.
"""

from .agent import (
    AgentProfile,
    AgentRole,
    AgentSummary,
    ModelTier,
)
from .capability import (
    CapabilityDefinition,
    CapabilitySpec,
    Executor,
    ToolCall,
    ToolContext,
    ToolError,
    ToolErrorKind,
    ToolResult,
)
from .dispatch import (
    ChatMessage,
    ClassificationResult,
    ClassificationSource,
    DispatchRequest,
    DispatchResult,
    DispatchState,
    HandoffSignal,
    InboundMessage,
    ModelRequest,
    ModelResponse,
    Stage,
    StageEvent,
    ToolExchange,
)
from .review import (
    ArticleCheck,
    Dimension,
    DimensionScores,
    QualityIssue,
    QualityReview,
    Severity,
)
from .thread import (
    ConversationThread,
    MemoryStats,
    MessageRole,
    ThreadMessage,
)

__all__ = [
    # Agent models
    "AgentProfile",
    "AgentRole",
    "AgentSummary",
    "ModelTier",
    # Capability models
    "CapabilityDefinition",
    "CapabilitySpec",
    "Executor",
    "ToolCall",
    "ToolContext",
    "ToolError",
    "ToolErrorKind",
    "ToolResult",
    # Thread models
    "ConversationThread",
    "MemoryStats",
    "MessageRole",
    "ThreadMessage",
    # Dispatch models
    "ChatMessage",
    "ClassificationResult",
    "ClassificationSource",
    "DispatchRequest",
    "DispatchResult",
    "DispatchState",
    "HandoffSignal",
    "InboundMessage",
    "ModelRequest",
    "ModelResponse",
    "Stage",
    "StageEvent",
    "ToolExchange",
    # Review models
    "ArticleCheck",
    "Dimension",
    "DimensionScores",
    "QualityIssue",
    "QualityReview",
    "Severity",
]
