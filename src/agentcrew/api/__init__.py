"""API module.

Provides FastAPI routers, schemas, and dependency wiring.
"""

from .routes import (
    agent_router,
    api_router,
    dispatch_router,
    init_dependencies,
    quality_router,
    system_router,
    thread_router,
)
from .schemas import (
    APIResponse,
    DispatchResponse,
    HealthResponse,
    MemoryStatsResponse,
    QualityReviewRequest,
    ThreadMessageResponse,
    ThreadResponse,
)

__all__ = [
    # Routers
    "api_router",
    "agent_router",
    "dispatch_router",
    "quality_router",
    "system_router",
    "thread_router",
    # Functions
    "init_dependencies",
    # Schemas - Common
    "APIResponse",
    # Schemas - System
    "HealthResponse",
    "MemoryStatsResponse",
    # Schemas - Dispatch
    "DispatchResponse",
    # Schemas - Threads
    "ThreadMessageResponse",
    "ThreadResponse",
    # Schemas - Quality
    "QualityReviewRequest",
]
