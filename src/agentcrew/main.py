"""agentcrew - Main Application Entry Point.

This module creates and configures the FastAPI application and wires the
dispatch runtime (providers, capabilities, agents, classifier, memory) in
the application lifespan.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agentcrew.agents import AgentLoader, PromptLibrary
from agentcrew.api import api_router, init_dependencies
from agentcrew.core import (
    AgentProfileTable,
    CapabilityRegistry,
    DispatchLoop,
    IntentClassifier,
    ModelFallbackClassifier,
    ThreadMemoryStore,
    load_rule_sets,
)
from agentcrew.llm import AnthropicProvider
from agentcrew.tools import ExaClient, build_default_registry
from agentcrew.utils.config import AppConfig, Environment, LogFormat, init_config
from agentcrew.utils.error_handlers import register_error_handlers
from agentcrew.utils.logging import (
    clear_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)
from agentcrew.utils.observability import init_observability, shutdown_observability

logger = get_logger(__name__)


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Get the path to the app.yaml configuration file."""
    return get_project_root() / "configs" / "app.yaml"


def get_agents_config_path() -> Path:
    """Get the path to the agents configuration directory."""
    return get_project_root() / "configs" / "agents"


def get_prompts_path() -> Path:
    """Get the path to the prompt library directory."""
    return get_project_root() / "configs" / "prompts"


def get_routing_path() -> Path:
    """Get the path to the routing rules file."""
    return get_project_root() / "configs" / "routing.yaml"


@dataclass
class Runtime:
    """Components built at startup."""

    registry: CapabilityRegistry
    profiles: AgentProfileTable
    memory: ThreadMemoryStore
    dispatcher: DispatchLoop
    exa: ExaClient


def build_runtime(config: AppConfig) -> Runtime:
    """Build every dispatch component from configuration.

    Raises:
        AgentLoadError: If no agent profile can be loaded.
        InvalidConfigurationError: If profiles, routing or the default
            agent disagree with the capability registry.
    """
    provider = AnthropicProvider(
        api_key=config.anthropic.api_key,
        base_url=config.anthropic.base_url,
        models=config.models,
        timeout=config.anthropic.timeout,
    )

    exa = ExaClient.from_config(config.exa)
    registry = build_default_registry(config, exa=exa, provider=provider)

    profiles = AgentProfileTable(
        AgentLoader().load_all_from_directory(get_agents_config_path()),
        default_agent=config.dispatch.default_agent,
        registry=registry,
    )

    fallback = (
        ModelFallbackClassifier(provider, profiles)
        if config.dispatch.fallback_classifier
        else None
    )
    classifier = IntentClassifier(
        load_rule_sets(get_routing_path()),
        known_agents=profiles.ids(),
        default_agent=profiles.default_agent,
        fallback=fallback,
    )

    memory = ThreadMemoryStore(
        ttl_seconds=config.memory.ttl_seconds,
        max_messages=config.memory.max_messages,
        sweep_interval_seconds=config.memory.sweep_interval_seconds,
        shards=config.memory.shards,
    )

    dispatcher = DispatchLoop(
        provider=provider,
        registry=registry,
        profiles=profiles,
        classifier=classifier,
        memory=memory,
        max_handoffs=config.dispatch.max_handoffs,
        prompts=PromptLibrary.from_directory(get_prompts_path()),
    )

    return Runtime(
        registry=registry,
        profiles=profiles,
        memory=memory,
        dispatcher=dispatcher,
        exa=exa,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager.

    Builds the runtime on startup and stops the sweeper, waits for shielded
    calls and closes clients on shutdown.
    """
    config: AppConfig = app.state.config if hasattr(app.state, "config") else AppConfig()

    logger.info(
        "Starting agentcrew",
        app_name=config.app.name,
        version=config.app.version,
        environment=config.app.env.value,
    )

    if config.langfuse.enabled:
        init_observability(
            public_key=config.langfuse.public_key,
            secret_key=config.langfuse.secret_key,
            host=config.langfuse.host,
        )

    runtime = build_runtime(config)
    app.state.runtime = runtime
    init_dependencies(
        runtime.dispatcher,
        registry=runtime.registry,
        quality_threshold=config.quality.pass_threshold,
    )
    runtime.memory.start()

    logger.info(
        "agentcrew started",
        host=config.app.host,
        port=config.app.port,
        agents=runtime.profiles.ids(),
        capabilities=len(runtime.registry),
    )

    yield

    logger.info("Shutting down agentcrew")
    await runtime.memory.stop()
    await runtime.dispatcher.drain()
    await runtime.exa.close()
    init_dependencies(None)
    shutdown_observability()
    app.state.runtime = None
    logger.info("agentcrew shutdown complete")


def create_app(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config_path: Optional path to YAML configuration file.
        env_file: Optional path to .env file.

    Returns:
        Configured FastAPI application instance.
    """
    if config_path is None:
        default_config_path = get_config_path()
        if default_config_path.exists():
            config_path = default_config_path

    config = init_config(yaml_path=config_path, env_file=env_file)

    setup_logging(
        level=config.logging.level,
        json_format=config.logging.format == LogFormat.JSON,
    )

    app = FastAPI(
        title=config.app.name,
        description="Message-routing assistant that dispatches chat turns to specialist agents",
        version=config.app.version,
        docs_url="/docs" if config.app.debug else None,
        redoc_url="/redoc" if config.app.debug else None,
        openapi_url="/openapi.json" if config.app.debug else None,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.runtime = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.app.env == Environment.DEVELOPMENT else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next: Any) -> Any:
        """Add request ID to each request for tracing."""
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id
        set_correlation_id(request_id)

        try:
            logger.info("Request received", method=request.method, path=str(request.url.path))
            response = await call_next(request)
            logger.info(
                "Response sent",
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
            )
        finally:
            clear_correlation_id()

        response.headers["X-Request-ID"] = request_id
        return response

    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with basic information."""
        return {
            "name": config.app.name,
            "version": config.app.version,
            "status": "running",
            "docs": "/docs" if config.app.debug else "disabled",
        }

    @app.get("/ready", tags=["Health"])
    async def readiness(request: Request) -> JSONResponse:
        """Readiness check: ready once the runtime is built."""
        if getattr(request.app.state, "runtime", None) is None:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "message": "Service not initialized"},
            )
        return JSONResponse(status_code=200, content={"status": "ready"})

    @app.get("/live", tags=["Health"])
    async def liveness() -> JSONResponse:
        """Liveness check."""
        return JSONResponse(status_code=200, content={"status": "alive"})

    return app
