"""Dispatch Loop - runs one agent turn end to end.

States: ROUTING -> EXECUTING -> TOOL_PENDING -> COMPLETING -> DONE, with
HANDOFF_REQUESTED looping back to ROUTING for a forced target agent.

Model failures become the agent's apology text and tool failures become
error payloads fed back to the model, so ``dispatch`` never raises for
either. External calls are shielded from caller cancellation: they run to
completion and their results are discarded.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar
from uuid import uuid4

from agentcrew.llm.base import BaseLLMProvider
from agentcrew.models import (
    AgentProfile,
    ChatMessage,
    ClassificationResult,
    ClassificationSource,
    DispatchRequest,
    DispatchResult,
    DispatchState,
    HandoffSignal,
    MessageRole,
    ModelRequest,
    ModelResponse,
    Stage,
    StageEvent,
    ToolCall,
    ToolContext,
    ToolErrorKind,
    ToolExchange,
    ToolResult,
)
from agentcrew.utils.exceptions import HandoffCapExceeded, ModelCallFailure
from agentcrew.utils.logging import LoggerAdapter, get_thread_logger
from agentcrew.utils.observability import LangfuseClient, get_observability_client

from .classifier import IntentClassifier
from .memory import ThreadMemoryStore
from .profiles import AgentProfileTable
from .registry import CapabilityRegistry

T = TypeVar("T")

StageCallback = Callable[[StageEvent], Awaitable[None] | None]

HANDOFF_FROM_KEY = "handoff_from"
HANDOFF_REASON_KEY = "handoff_reason"


class SystemContextBuilder(Protocol):
    """Builds the system prompt for an agent turn."""

    def build(self, profile: AgentProfile, scratch: dict[str, Any]) -> str:
        ...


class BasicSystemContext:
    """System context built from the profile alone."""

    def build(self, profile: AgentProfile, scratch: dict[str, Any]) -> str:
        lines = [f"You are {profile.name}. {profile.description}".strip()]
        lines.extend(render_scratch(scratch))
        return "\n\n".join(lines)


def render_scratch(scratch: dict[str, Any]) -> list[str]:
    """Render handoff notes and other scratch data for a system prompt."""
    sections: list[str] = []
    if scratch.get(HANDOFF_FROM_KEY):
        sections.append(
            f"This request was handed to you by {scratch[HANDOFF_FROM_KEY]}. "
            f"Reason: {scratch.get(HANDOFF_REASON_KEY) or 'not given'}."
        )
    extra = {k: v for k, v in scratch.items() if k not in (HANDOFF_FROM_KEY, HANDOFF_REASON_KEY)}
    if extra:
        sections.append("Context from earlier in this thread:\n" + json.dumps(extra, default=str))
    return sections


def join_text(*parts: str | None) -> str:
    return "\n\n".join(p.strip() for p in parts if p and p.strip())


def executed_capabilities(results: list[ToolResult]) -> list[str]:
    """Names of calls whose executor ran, successfully or not."""
    return [
        result.name
        for result in results
        if result.error is None or result.error.kind == ToolErrorKind.EXECUTION_FAILURE
    ]


@dataclass
class _AgentOutcome:
    text: str
    capabilities_used: list[str] = field(default_factory=list)
    handoff: HandoffSignal | None = None
    failed: bool = False


class DispatchLoop:
    """Executes dispatch turns against injected collaborators.

    Args:
        provider: Model provider.
        registry: Capability registry.
        profiles: Agent profile table.
        classifier: Intent classifier.
        memory: Thread memory store.
        max_handoffs: Redirects allowed per turn.
        prompts: System context builder; defaults to ``BasicSystemContext``.
        observability: Langfuse client; defaults to the global client.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        registry: CapabilityRegistry,
        profiles: AgentProfileTable,
        classifier: IntentClassifier,
        memory: ThreadMemoryStore,
        max_handoffs: int = 1,
        prompts: SystemContextBuilder | None = None,
        observability: LangfuseClient | None = None,
    ) -> None:
        if max_handoffs < 0:
            raise ValueError("max_handoffs cannot be negative")
        self._provider = provider
        self._registry = registry
        self._profiles = profiles
        self._classifier = classifier
        self._memory = memory
        self.max_handoffs = max_handoffs
        self._prompts = prompts or BasicSystemContext()
        self._observability = observability or get_observability_client()
        self._inflight: set[asyncio.Task[Any]] = set()

    @property
    def provider(self) -> BaseLLMProvider:
        return self._provider

    @property
    def memory(self) -> ThreadMemoryStore:
        return self._memory

    @property
    def profiles(self) -> AgentProfileTable:
        return self._profiles

    async def dispatch(
        self,
        request: DispatchRequest,
        on_stage: StageCallback | None = None,
    ) -> DispatchResult:
        """Run one turn for an inbound request.

        Turns for the same thread are serialised; other threads proceed
        concurrently.

        Args:
            request: Normalized inbound request.
            on_stage: Optional progress callback, sync or async.

        Returns:
            DispatchResult with the reply, the resolved agent, the
            capabilities used and the agents that ran.
        """
        log = get_thread_logger(request.thread_id, request.channel_id or None)

        async with self._memory.thread_lock(request.thread_id):
            thread = await self._memory.get_or_create(
                request.thread_id, request.channel_id, request.user_id
            )
            if thread.messages:
                await self._memory.append_message(
                    request.thread_id, MessageRole.USER, request.latest_user_text
                )
            else:
                for message in request.messages:
                    await self._memory.append_message(
                        request.thread_id, message.role, message.text
                    )

            trace_id = str(uuid4())
            self._observability.start_trace(
                trace_id,
                name="dispatch",
                metadata={"channel_id": request.channel_id},
                user_id=request.user_id,
                session_id=request.thread_id,
            )
            try:
                result = await self._run_turn(request, trace_id, on_stage, log)
            except BaseException as e:
                self._observability.end_trace(trace_id, output={"error": str(e)}, status="error")
                raise
            self._observability.end_trace(
                trace_id,
                output={
                    "agent_id": result.agent_id,
                    "capabilities_used": result.capabilities_used,
                    "handoff_chain": result.handoff_chain,
                },
            )
            return result

    # ------------------------------------------------------------------
    # Turn state machine
    # ------------------------------------------------------------------

    async def _run_turn(
        self,
        request: DispatchRequest,
        trace_id: str,
        on_stage: StageCallback | None,
        log: LoggerAdapter,
    ) -> DispatchResult:
        thread_id = request.thread_id

        self._transition(log, DispatchState.ROUTING)
        await self._emit(on_stage, StageEvent(stage=Stage.ROUTING, thread_id=thread_id))
        classification = await self._classifier.classify(request.latest_user_text)
        profile = self._profiles.resolve(classification.agent_id)
        if profile.agent_id.value != classification.agent_id:
            log.warning(
                "Classified agent has no profile",
                classified=classification.agent_id,
                agent_id=profile.agent_id.value,
            )
            classification = ClassificationResult(
                agent_id=profile.agent_id.value, source=ClassificationSource.DEFAULT
            )
        log.info(
            "Request routed",
            agent_id=classification.agent_id,
            source=classification.source.value,
            rule=classification.rule,
        )

        chain: list[str] = []
        capabilities_used: list[str] = []

        while True:
            agent_id = profile.agent_id.value
            chain.append(agent_id)
            outcome = await self._run_agent(profile, request, trace_id, on_stage, log)
            capabilities_used.extend(outcome.capabilities_used)

            if outcome.failed or outcome.handoff is None:
                break

            handoff = outcome.handoff
            self._transition(log, DispatchState.HANDOFF_REQUESTED, agent_id)
            target = handoff.target_agent_id

            if target == agent_id or target not in self._profiles:
                log.warning("Handoff target rejected", source=agent_id, target=target)
                break

            if len(chain) - 1 >= self.max_handoffs:
                capped = HandoffCapExceeded(agent_id, target, self.max_handoffs)
                log.warning(capped.message, **capped.details)
                break

            await self._emit(
                on_stage,
                StageEvent(
                    stage=Stage.HANDOFF, thread_id=thread_id, agent_id=target, detail=handoff.reason
                ),
            )
            await self._memory.set_scratch(
                thread_id,
                target,
                {
                    **handoff.context_payload,
                    HANDOFF_FROM_KEY: agent_id,
                    HANDOFF_REASON_KEY: handoff.reason,
                },
            )
            log.info("Handing off", source=agent_id, target=target, reason=handoff.reason)
            self._transition(log, DispatchState.ROUTING, target)
            profile = self._profiles.get(target)

        text = outcome.text or profile.error_message
        if not outcome.failed:
            await self._memory.append_message(
                thread_id, MessageRole.ASSISTANT, text, agent_id=profile.agent_id.value
            )
        self._transition(log, DispatchState.DONE, profile.agent_id.value)

        return DispatchResult(
            text=text,
            agent_id=profile.agent_id.value,
            capabilities_used=capabilities_used,
            handoff_chain=chain,
        )

    async def _run_agent(
        self,
        profile: AgentProfile,
        request: DispatchRequest,
        trace_id: str,
        on_stage: StageCallback | None,
        log: LoggerAdapter,
    ) -> _AgentOutcome:
        agent_id = profile.agent_id.value
        thread_id = request.thread_id
        log = log.bind(agent_id=agent_id)

        self._transition(log, DispatchState.EXECUTING, agent_id)
        scratch = await self._memory.get_scratch(thread_id, agent_id)
        history = [
            ChatMessage(role=m.role, text=m.text)
            for m in await self._memory.get_messages(thread_id)
        ]
        specs = self._registry.specs(profile.capabilities)
        targets = (
            [a for a in self._profiles.ids() if a != agent_id] if self.max_handoffs > 0 else []
        )
        model_request = ModelRequest(
            system_context=self._prompts.build(profile, scratch),
            messages=history,
            allowed_capabilities=specs,
            handoff_targets=targets,
            model_tier=profile.model_tier,
            max_tokens=profile.max_tokens,
            temperature=profile.temperature,
        )

        await self._emit(
            on_stage, StageEvent(stage=Stage.THINKING, thread_id=thread_id, agent_id=agent_id)
        )
        try:
            response = await self._call_model(model_request, trace_id, f"{agent_id}.initial")
        except ModelCallFailure as e:
            log.error("Model call failed", stage="executing", error=e.message)
            return _AgentOutcome(text=profile.error_message, failed=True)

        if not response.tool_calls:
            await self._emit(
                on_stage, StageEvent(stage=Stage.RESPONDING, thread_id=thread_id, agent_id=agent_id)
            )
            return _AgentOutcome(text=response.text or "", handoff=response.handoff)

        self._transition(log, DispatchState.TOOL_PENDING, agent_id)
        await self._emit(
            on_stage,
            StageEvent(
                stage=Stage.TOOL_CALL,
                thread_id=thread_id,
                agent_id=agent_id,
                detail=", ".join(call.name for call in response.tool_calls),
            ),
        )
        context = ToolContext(
            thread_id=thread_id,
            channel_id=request.channel_id,
            user_id=request.user_id,
            agent_id=agent_id,
            trace_id=trace_id,
        )
        results = await self._run_tools(profile, response.tool_calls, context, log)
        used = executed_capabilities(results)

        self._transition(log, DispatchState.COMPLETING, agent_id)
        await self._emit(
            on_stage, StageEvent(stage=Stage.RESPONDING, thread_id=thread_id, agent_id=agent_id)
        )
        follow_up = model_request.model_copy(
            update={
                "allowed_capabilities": [],
                "handoff_targets": [],
                "tool_exchange": ToolExchange(
                    proposal_text=response.text or "",
                    tool_calls=response.tool_calls,
                    results=results,
                    offered=specs,
                    handoff=response.handoff,
                ),
            }
        )
        try:
            completion = await self._call_model(follow_up, trace_id, f"{agent_id}.follow_up")
        except ModelCallFailure as e:
            log.error("Model call failed", stage="completing", error=e.message)
            return _AgentOutcome(text=profile.error_message, capabilities_used=used, failed=True)

        return _AgentOutcome(
            text=join_text(response.text, completion.text),
            capabilities_used=used,
            handoff=response.handoff or completion.handoff,
        )

    async def _run_tools(
        self,
        profile: AgentProfile,
        calls: list[ToolCall],
        context: ToolContext,
        log: LoggerAdapter,
    ) -> list[ToolResult]:
        """Run one batch of calls; results keep the order of ``calls``."""

        async def run(call: ToolCall) -> ToolResult:
            if not profile.can_use(call.name):
                log.warning("Capability not permitted", capability=call.name)
                return ToolResult.failure(
                    call,
                    ToolErrorKind.NOT_PERMITTED,
                    f"Capability {call.name} is not available to {profile.name}",
                )
            return await self._shielded(self._registry.invoke(call, context))

        results = await asyncio.gather(*(run(call) for call in calls))
        failed = [r.name for r in results if not r.ok]
        log.info("Capabilities executed", count=len(results), failed=failed)
        return list(results)

    # ------------------------------------------------------------------
    # External calls
    # ------------------------------------------------------------------

    async def _call_model(self, request: ModelRequest, trace_id: str, name: str) -> ModelResponse:
        try:
            response = await self._shielded(self._provider.complete(request))
        except ModelCallFailure:
            raise
        except Exception as e:
            raise ModelCallFailure(
                f"Model call failed: {e}", provider=self._provider.provider_name, cause=e
            ) from e

        self._observability.log_generation(
            trace_id,
            name=name,
            model=response.model or self._provider.model_for(request.model_tier.value),
            input_messages=[m.model_dump(mode="json") for m in request.messages],
            output=response.text or "",
            model_parameters={
                "max_tokens": request.max_tokens,
                "temperature": request.temperature,
            },
            usage=response.usage or None,
            metadata={"tool_calls": [c.name for c in response.tool_calls]},
        )
        return response

    async def _shielded(self, coro: Coroutine[Any, Any, T]) -> T:
        """Await ``coro`` so that cancelling the caller leaves it running."""
        task: asyncio.Task[T] = asyncio.ensure_future(coro)
        self._inflight.add(task)
        task.add_done_callback(self._discard)
        return await asyncio.shield(task)

    def _discard(self, task: asyncio.Task[Any]) -> None:
        self._inflight.discard(task)
        if not task.cancelled():
            # Mark the exception retrieved when the caller already went away
            task.exception()

    async def drain(self) -> None:
        """Wait for shielded calls whose callers were cancelled."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @staticmethod
    def _transition(log: LoggerAdapter, state: DispatchState, agent_id: str | None = None) -> None:
        log.debug("Dispatch state", state=state.value, current_agent=agent_id)

    @staticmethod
    async def _emit(on_stage: StageCallback | None, event: StageEvent) -> None:
        if on_stage is None:
            return
        try:
            outcome = on_stage(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            get_thread_logger(event.thread_id).warning(
                "Stage callback failed", stage=event.stage.value, error=str(e)
            )
