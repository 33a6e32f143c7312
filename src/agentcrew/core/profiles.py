"""Agent Profile Table - the static set of agents available for dispatch."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from agentcrew.models import AgentProfile, AgentRole, AgentSummary
from agentcrew.utils.exceptions import InvalidConfigurationError, UnknownAgentError

from .registry import CapabilityRegistry


class AgentProfileTable:
    """Immutable lookup of agent profiles.

    Construction checks that every allowlisted capability exists in the
    registry and that the default agent is present.

    Args:
        profiles: Profiles to index. Duplicate ids are rejected.
        default_agent: Agent used when routing finds nothing better.
        registry: Registry the allowlists are checked against.
    """

    def __init__(
        self,
        profiles: Iterable[AgentProfile],
        default_agent: AgentRole | str,
        registry: CapabilityRegistry,
    ) -> None:
        indexed: dict[str, AgentProfile] = {}
        for profile in profiles:
            key = profile.agent_id.value
            if key in indexed:
                raise InvalidConfigurationError(
                    "agents", key, message=f"Duplicate agent profile: {key}"
                )
            missing = sorted(c for c in profile.capabilities if c not in registry)
            if missing:
                raise InvalidConfigurationError(
                    f"agents.{key}.capabilities",
                    missing,
                    message=f"Agent {key} allowlists unregistered capabilities: {', '.join(missing)}",
                )
            indexed[key] = profile

        default_key = AgentRole(default_agent).value
        if default_key not in indexed:
            raise InvalidConfigurationError(
                "dispatch.default_agent",
                default_key,
                message=f"Default agent has no profile: {default_key}",
            )

        self._profiles = indexed
        self._default = default_key

    @property
    def default_agent(self) -> str:
        return self._default

    @property
    def default_profile(self) -> AgentProfile:
        return self._profiles[self._default]

    def get(self, agent_id: str) -> AgentProfile:
        """Return a profile.

        Raises:
            UnknownAgentError: If no profile has this id.
        """
        try:
            return self._profiles[agent_id]
        except KeyError:
            raise UnknownAgentError(agent_id) from None

    def resolve(self, agent_id: str | None) -> AgentProfile:
        """Return the profile for ``agent_id``, or the default one."""
        if agent_id is None:
            return self.default_profile
        return self._profiles.get(agent_id, self.default_profile)

    def ids(self) -> list[str]:
        """Agent ids in declaration order."""
        return list(self._profiles)

    def summaries(self) -> list[AgentSummary]:
        """Public summaries of every profile."""
        return [
            AgentSummary.from_profile(profile, is_default=key == self._default)
            for key, profile in self._profiles.items()
        ]

    def __iter__(self) -> Iterator[AgentProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._profiles
