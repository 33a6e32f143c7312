"""Intent Classifier - maps a user utterance to an agent id.

Routing priority:
1. Ordered rule sets (first match by declaration order wins)
2. Pluggable fallback classifier
3. Default agent

Only the latest user utterance is inspected; thread history is ignored.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml

from agentcrew.llm.base import BaseLLMProvider
from agentcrew.models import AgentProfile, ClassificationResult, ClassificationSource
from agentcrew.utils.exceptions import InvalidConfigurationError
from agentcrew.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RuleSet:
    """Trigger terms and patterns that route to one agent.

    Terms are matched case-insensitively on word boundaries; patterns are
    regular expressions, also case-insensitive.
    """

    name: str
    agent_id: str
    terms: tuple[str, ...] = ()
    patterns: tuple[str, ...] = ()
    _compiled: tuple[re.Pattern[str], ...] = field(
        init=False, repr=False, compare=False, default=()
    )

    def __post_init__(self) -> None:
        if not self.terms and not self.patterns:
            raise ValueError(f"Rule set {self.name} has no terms or patterns")
        compiled: list[re.Pattern[str]] = []
        if self.terms:
            alternation = "|".join(re.escape(term) for term in self.terms)
            compiled.append(re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE))
        for pattern in self.patterns:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        object.__setattr__(self, "_compiled", tuple(compiled))

    def matches(self, text: str) -> bool:
        return any(regex.search(text) for regex in self._compiled)


@runtime_checkable
class FallbackClassifier(Protocol):
    """Classifier consulted when no rule set matches."""

    async def classify(self, text: str) -> str:
        """Return an agent id for ``text``."""
        ...


class IntentClassifier:
    """Rule fast-path with a pluggable fallback.

    Args:
        rule_sets: Rule sets in priority order.
        known_agents: Agent ids that a fallback answer must belong to.
        default_agent: Returned when nothing else produces a known agent.
        fallback: Optional fallback classifier.
    """

    def __init__(
        self,
        rule_sets: Iterable[RuleSet],
        known_agents: Collection[str],
        default_agent: str,
        fallback: FallbackClassifier | None = None,
    ) -> None:
        self._rule_sets = tuple(rule_sets)
        self._known = frozenset(known_agents)
        self._default = default_agent
        self._fallback = fallback

        if default_agent not in self._known:
            raise InvalidConfigurationError("dispatch.default_agent", default_agent)
        for rule_set in self._rule_sets:
            if rule_set.agent_id not in self._known:
                raise InvalidConfigurationError(
                    f"routing.{rule_set.name}.agent",
                    rule_set.agent_id,
                    message=f"Rule set {rule_set.name} routes to unknown agent {rule_set.agent_id}",
                )

    @property
    def rule_sets(self) -> tuple[RuleSet, ...]:
        return self._rule_sets

    @property
    def default_agent(self) -> str:
        return self._default

    def match_rules(self, text: str) -> RuleSet | None:
        """Return the first rule set matching ``text``."""
        for rule_set in self._rule_sets:
            if rule_set.matches(text):
                return rule_set
        return None

    async def classify(self, text: str) -> ClassificationResult:
        """Classify one user utterance.

        Never raises: fallback errors and unknown answers resolve to the
        default agent and are reported through ``source`` and a warning log.
        """
        rule_set = self.match_rules(text)
        if rule_set is not None:
            return ClassificationResult(
                agent_id=rule_set.agent_id,
                source=ClassificationSource.RULE,
                rule=rule_set.name,
            )

        if self._fallback is None:
            logger.warning(
                "Classification fallback used",
                reason="no_rule_match",
                agent_id=self._default,
            )
            return ClassificationResult(
                agent_id=self._default, source=ClassificationSource.DEFAULT
            )

        try:
            answer = (await self._fallback.classify(text)).strip().lower()
        except Exception as e:
            logger.warning(
                "Classification fallback used",
                reason="fallback_error",
                error=str(e),
                agent_id=self._default,
            )
            return ClassificationResult(
                agent_id=self._default, source=ClassificationSource.DEFAULT
            )

        if answer in self._known:
            logger.info("Classified by fallback", agent_id=answer)
            return ClassificationResult(agent_id=answer, source=ClassificationSource.FALLBACK)

        logger.warning(
            "Classification fallback used",
            reason="unknown_agent",
            answer=answer[:50],
            agent_id=self._default,
        )
        return ClassificationResult(agent_id=self._default, source=ClassificationSource.DEFAULT)


class ModelFallbackClassifier:
    """Single small-model call that answers with one agent id.

    Args:
        provider: Provider used for the call.
        profiles: Agents offered as answers, with their descriptions.
        model: Model id; defaults to the provider's fast tier.
    """

    PROMPT = (
        "Classify this user request into ONE of these agent types:\n\n"
        "{options}\n\n"
        'User request: "{text}"\n\n'
        "Respond with ONLY the agent type ({names}). No explanation."
    )

    def __init__(
        self,
        provider: BaseLLMProvider,
        profiles: Iterable[AgentProfile],
        model: str | None = None,
        max_tokens: int = 100,
        temperature: float = 0.3,
    ) -> None:
        self._provider = provider
        self._profiles = list(profiles)
        self._model = model or provider.model_for("fast")
        self._max_tokens = max_tokens
        self._temperature = temperature

    def build_prompt(self, text: str) -> str:
        options = "\n".join(
            f"- {p.agent_id.value}: {p.description or p.name}" for p in self._profiles
        )
        names = ", ".join(p.agent_id.value for p in self._profiles)
        return self.PROMPT.format(options=options, text=text, names=names)

    async def classify(self, text: str) -> str:
        response = await self._provider.chat(
            messages=[{"role": "user", "content": self.build_prompt(text)}],
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        words = response.content.strip().split()
        return words[0].strip(".,:;\"'`").lower() if words else ""


def load_rule_sets(path: str | Path) -> list[RuleSet]:
    """Load ordered rule sets from a routing YAML file.

    Expected layout::

        rules:
          - name: scout
            agent: scout
            terms: [research, find]
            patterns: ['\\bwho is\\b']

    Raises:
        FileNotFoundError: If the file is missing.
        InvalidConfigurationError: If an entry is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Routing file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data: Any = yaml.safe_load(f) or {}

    entries = data.get("rules", []) if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise InvalidConfigurationError("routing.rules", entries, message="rules must be a list")

    rule_sets: list[RuleSet] = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict) or "agent" not in entry:
            raise InvalidConfigurationError(
                f"routing.rules[{i}]", entry, message=f"rules[{i}] needs an agent"
            )
        try:
            rule_sets.append(
                RuleSet(
                    name=str(entry.get("name", entry["agent"])),
                    agent_id=str(entry["agent"]),
                    terms=tuple(str(t) for t in entry.get("terms", [])),
                    patterns=tuple(str(p) for p in entry.get("patterns", [])),
                )
            )
        except (ValueError, re.error) as e:
            raise InvalidConfigurationError(f"routing.rules[{i}]", entry, message=str(e)) from e

    return rule_sets
