"""API routes.

All endpoints live under ``/api/v1``. Runtime components are injected once
at startup through ``init_dependencies``; until then endpoints that need
them answer 503.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from agentcrew import __version__
from agentcrew.core import AgentProfileTable, CapabilityRegistry, DispatchLoop, ThreadMemoryStore
from agentcrew.models import DispatchRequest
from agentcrew.quality import DEFAULT_PASS_THRESHOLD
from agentcrew.tools import review_article
from agentcrew.utils.exceptions import NotFoundError, ServiceUnavailableError
from agentcrew.utils.logging import get_api_logger

from .schemas import (
    APIResponse,
    DispatchResponse,
    HealthResponse,
    MemoryStatsResponse,
    QualityReviewRequest,
    ThreadResponse,
)

logger = get_api_logger()

# Injected at startup
_dispatcher: DispatchLoop | None = None
_registry: CapabilityRegistry | None = None
_quality_threshold: int = DEFAULT_PASS_THRESHOLD


def init_dependencies(
    dispatcher: DispatchLoop | None,
    registry: CapabilityRegistry | None = None,
    quality_threshold: int = DEFAULT_PASS_THRESHOLD,
) -> None:
    """Wire runtime components into the routers.

    Args:
        dispatcher: Dispatch loop; its memory store and profile table are
            used by the thread and agent endpoints.
        registry: Capability registry, reported by the health endpoint.
        quality_threshold: Default pass threshold for article reviews.
    """
    global _dispatcher, _registry, _quality_threshold
    _dispatcher = dispatcher
    _registry = registry
    _quality_threshold = quality_threshold


def get_dispatcher() -> DispatchLoop:
    if _dispatcher is None:
        raise ServiceUnavailableError("dispatcher")
    return _dispatcher


def get_memory(dispatcher: DispatchLoop = Depends(get_dispatcher)) -> ThreadMemoryStore:
    return dispatcher.memory


def get_profiles(dispatcher: DispatchLoop = Depends(get_dispatcher)) -> AgentProfileTable:
    return dispatcher.profiles


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


# =============================================================================
# Routers
# =============================================================================

system_router = APIRouter(tags=["System"])
dispatch_router = APIRouter(tags=["Dispatch"])
thread_router = APIRouter(prefix="/threads", tags=["Threads"])
agent_router = APIRouter(prefix="/agents", tags=["Agents"])
quality_router = APIRouter(prefix="/quality", tags=["Quality"])


@system_router.get("/health", response_model=APIResponse)
async def health(check_provider: bool = False) -> APIResponse:
    """Report service health; degraded until components are wired.

    With ``check_provider`` the model provider answers a tiny completion,
    and an unhealthy provider marks the service degraded.
    """
    if _dispatcher is None:
        return APIResponse(
            success=True,
            data=HealthResponse(status="degraded", version=__version__).model_dump(),
        )

    memory = _dispatcher.memory
    provider = await _dispatcher.provider.health_check() if check_provider else None
    healthy = provider is None or provider.get("status") != "unhealthy"
    data = HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        agents=len(_dispatcher.profiles),
        capabilities=len(_registry) if _registry is not None else 0,
        active_threads=len(memory),
        sweeper_running=memory.running,
        provider=provider,
    )
    return APIResponse(success=True, data=data.model_dump())


@system_router.get("/memory/stats", response_model=APIResponse)
async def memory_stats(memory: ThreadMemoryStore = Depends(get_memory)) -> APIResponse:
    stats = await memory.stats()
    return APIResponse(success=True, data=MemoryStatsResponse.from_stats(stats).model_dump())


@dispatch_router.post("/dispatch", response_model=APIResponse)
async def dispatch(
    body: DispatchRequest,
    request: Request,
    dispatcher: DispatchLoop = Depends(get_dispatcher),
) -> APIResponse:
    """Run one conversational turn and return the reply."""
    logger.info("Dispatch requested", thread_id=body.thread_id, user_id=body.user_id)

    result = await dispatcher.dispatch(body)
    profile = dispatcher.profiles.resolve(result.agent_id)
    data = DispatchResponse.from_result(result, name=profile.name, emoji=profile.emoji)
    return APIResponse(
        success=True,
        data=data.model_dump(),
        metadata={"request_id": _request_id(request)},
    )


@thread_router.get("/{thread_id}/messages", response_model=APIResponse)
async def get_thread_messages(
    thread_id: str,
    memory: ThreadMemoryStore = Depends(get_memory),
) -> APIResponse:
    thread = await memory.get(thread_id)
    if thread is None:
        raise NotFoundError("thread", thread_id)
    data = ThreadResponse.from_thread(thread)
    return APIResponse(success=True, data=data.model_dump(mode="json"))


@thread_router.delete("/{thread_id}", response_model=APIResponse)
async def clear_thread(
    thread_id: str,
    memory: ThreadMemoryStore = Depends(get_memory),
) -> APIResponse:
    """Forget a thread at the user's request."""
    if not await memory.clear(thread_id):
        raise NotFoundError("thread", thread_id)
    logger.info("Thread cleared", thread_id=thread_id)
    return APIResponse(success=True, data={"thread_id": thread_id, "cleared": True})


@agent_router.get("", response_model=APIResponse)
async def list_agents(profiles: AgentProfileTable = Depends(get_profiles)) -> APIResponse:
    summaries = [summary.model_dump() for summary in profiles.summaries()]
    return APIResponse(
        success=True,
        data=summaries,
        metadata={"count": len(summaries), "default_agent": profiles.default_agent},
    )


@agent_router.get("/{agent_id}", response_model=APIResponse)
async def get_agent(
    agent_id: str,
    profiles: AgentProfileTable = Depends(get_profiles),
) -> APIResponse:
    profile = profiles.get(agent_id)
    summary = next(s for s in profiles.summaries() if s.agent_id == profile.agent_id.value)
    return APIResponse(success=True, data=summary.model_dump())


@quality_router.post("/review", response_model=APIResponse)
async def review_quality(body: QualityReviewRequest) -> APIResponse:
    """Score an article against the editorial rules."""
    threshold = body.threshold if body.threshold is not None else _quality_threshold
    data: dict[str, Any] = review_article(body.article, threshold)
    return APIResponse(
        success=True,
        data=data,
        metadata={"issue_count": len(data["issues"])},
    )


api_router = APIRouter(prefix="/api/v1")
api_router.include_router(system_router)
api_router.include_router(dispatch_router)
api_router.include_router(thread_router)
api_router.include_router(agent_router)
api_router.include_router(quality_router)

