"""Shared test fixtures."""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from pydantic import BaseModel, Field

from agentcrew.core import (
    AgentProfileTable,
    CapabilityRegistry,
    DispatchLoop,
    IntentClassifier,
    RuleSet,
    ThreadMemoryStore,
)
from agentcrew.llm.base import BaseLLMProvider, LLMResponse
from agentcrew.models import (
    AgentProfile,
    AgentRole,
    CapabilityDefinition,
    DispatchRequest,
    InboundMessage,
    ModelRequest,
    ModelResponse,
    ModelTier,
    ToolContext,
)
from agentcrew.utils.observability import LangfuseClient


class FakeProvider(BaseLLMProvider):
    """Scripted provider: each ``complete`` pops the next queued item.

    Queued exceptions are raised instead of returned. An empty queue
    answers with a plain "ok".
    """

    def __init__(self, responses: list[ModelResponse | Exception] | None = None) -> None:
        super().__init__(api_key="test-key")
        self.responses: list[ModelResponse | Exception] = list(responses or [])
        self.requests: list[ModelRequest] = []
        self.chat_answer = "maven"
        self.chat_error: Exception | None = None
        self.chat_calls: list[list[dict[str, str]]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def default_model(self) -> str:
        return "fake-model"

    def queue(self, *responses: ModelResponse | Exception) -> None:
        self.responses.extend(responses)

    async def complete(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request)
        if not self.responses:
            return ModelResponse(text="ok", model=self.default_model)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.chat_calls.append(messages)
        if self.chat_error is not None:
            raise self.chat_error
        return LLMResponse(content=self.chat_answer, model=model or self.default_model)


class EchoParams(BaseModel):
    text: str = Field(..., min_length=1)
    times: int = Field(default=1, ge=1)


class EmptyParams(BaseModel):
    pass


async def _echo(params: EchoParams, context: ToolContext) -> dict[str, Any]:
    return {"echo": params.text * params.times, "agent": context.agent_id}


async def _explode(params: EmptyParams, context: ToolContext) -> dict[str, Any]:
    raise RuntimeError("boom")


def build_registry() -> CapabilityRegistry:
    return CapabilityRegistry(
        [
            CapabilityDefinition(
                name="echo",
                description="Repeat text",
                parameters=EchoParams,
                executor=_echo,
            ),
            CapabilityDefinition(
                name="explode",
                description="Always fails",
                parameters=EmptyParams,
                executor=_explode,
            ),
        ]
    )


def build_profiles(registry: CapabilityRegistry) -> AgentProfileTable:
    return AgentProfileTable(
        [
            AgentProfile(
                agent_id=AgentRole.SCOUT,
                name="Scout",
                emoji=":mag:",
                description="Research",
                capabilities=frozenset({"echo", "explode"}),
                error_message="Scout hit a snag.",
            ),
            AgentProfile(
                agent_id=AgentRole.SAGE,
                name="Sage",
                description="Analysis",
                capabilities=frozenset({"echo"}),
                model_tier=ModelTier.ADVANCED,
                error_message="Sage hit a snag.",
            ),
            AgentProfile(
                agent_id=AgentRole.MAVEN,
                name="Maven",
                description="General conversation",
                model_tier=ModelTier.FAST,
                error_message="Maven hit a snag.",
            ),
        ],
        default_agent=AgentRole.MAVEN,
        registry=registry,
    )


def build_rule_sets() -> list[RuleSet]:
    return [
        RuleSet(name="scout", agent_id="scout", terms=("research", "find")),
        RuleSet(name="sage", agent_id="sage", terms=("analyze", "strategy")),
    ]


@pytest.fixture
def registry() -> CapabilityRegistry:
    """Registry with an echo and a failing capability."""
    return build_registry()


@pytest.fixture
def profiles(registry: CapabilityRegistry) -> AgentProfileTable:
    """Scout, sage and maven (default) profiles."""
    return build_profiles(registry)


@pytest.fixture
def classifier(profiles: AgentProfileTable) -> IntentClassifier:
    return IntentClassifier(
        build_rule_sets(),
        known_agents=profiles.ids(),
        default_agent=profiles.default_agent,
    )


@pytest_asyncio.fixture
async def memory() -> AsyncGenerator[ThreadMemoryStore, None]:
    store = ThreadMemoryStore(ttl_seconds=60, max_messages=10, sweep_interval_seconds=60)
    yield store
    await store.stop()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def dispatcher(
    provider: FakeProvider,
    registry: CapabilityRegistry,
    profiles: AgentProfileTable,
    classifier: IntentClassifier,
    memory: ThreadMemoryStore,
) -> DispatchLoop:
    """Dispatch loop with tracing disabled."""
    return DispatchLoop(
        provider=provider,
        registry=registry,
        profiles=profiles,
        classifier=classifier,
        memory=memory,
        max_handoffs=1,
        observability=LangfuseClient(enabled=False),
    )


@pytest.fixture
def make_request() -> Callable[..., DispatchRequest]:
    """Factory for single-message dispatch requests."""

    def _make(text: str, thread_id: str = "t-1", user_id: str = "u-1") -> DispatchRequest:
        return DispatchRequest(
            user_id=user_id,
            thread_id=thread_id,
            channel_id="c-1",
            messages=[InboundMessage(text=text)],
        )

    return _make
