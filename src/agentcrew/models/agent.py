"""Agent profile data models.

Agents form a closed set: every profile is keyed by an ``AgentRole`` and
bound to a ``ModelTier`` rather than a concrete model id.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class AgentRole(str, Enum):
    """Known agent identifiers."""

    SCOUT = "scout"  # research, prospecting, code lookup
    SAGE = "sage"  # analysis and strategy
    CHRONICLE = "chronicle"  # news articles
    MAVEN = "maven"  # general conversation
    TRENDS = "trends"  # daily and weekly roundups


class ModelTier(str, Enum):
    """Cost/latency class of the model backing an agent."""

    FAST = "fast"
    STANDARD = "standard"
    ADVANCED = "advanced"


class AgentProfile(BaseModel):
    """Immutable definition of one agent.

    Loaded once at process start. The capability allowlist is checked
    against the capability registry by ``AgentProfileTable``.
    """

    agent_id: AgentRole = Field(..., description="Agent identifier")
    name: str = Field(..., description="Display name")
    emoji: str = Field(default="", description="Prefix used by chat transports")
    description: str = Field(default="", description="What the agent handles")
    capabilities: frozenset[str] = Field(
        default_factory=frozenset, description="Capability names the agent may invoke"
    )
    model_tier: ModelTier = Field(default=ModelTier.STANDARD, description="Model tier")
    prompt_ref: str = Field(default="", description="Prompt library key")
    error_message: str = Field(
        default="Something went wrong on my end. Mind trying that again?",
        description="Apology returned when a model call fails",
    )
    max_tokens: int = Field(default=4096, ge=1, description="Maximum response tokens")
    temperature: float = Field(default=0.7, ge=0.0, le=1.0, description="Sampling temperature")

    model_config = {"extra": "forbid", "frozen": True, "protected_namespaces": ()}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Agent name cannot be empty")
        return v

    @property
    def prompt_key(self) -> str:
        """Prompt library key, defaulting to the agent id."""
        return self.prompt_ref or self.agent_id.value

    def can_use(self, capability: str) -> bool:
        """Check whether a capability is on the allowlist."""
        return capability in self.capabilities


class AgentSummary(BaseModel):
    """Public view of a profile for listings."""

    agent_id: str
    name: str
    emoji: str = ""
    description: str = ""
    capabilities: list[str] = Field(default_factory=list)
    model_tier: str
    is_default: bool = False

    model_config = {"protected_namespaces": ()}

    @classmethod
    def from_profile(cls, profile: AgentProfile, is_default: bool = False) -> "AgentSummary":
        """Build a summary from a profile."""
        return cls(
            agent_id=profile.agent_id.value,
            name=profile.name,
            emoji=profile.emoji,
            description=profile.description,
            capabilities=sorted(profile.capabilities),
            model_tier=profile.model_tier.value,
            is_default=is_default,
        )
