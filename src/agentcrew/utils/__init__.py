"""Utility modules for agentcrew.

This package provides utility functions and classes for:
- Configuration management
- Structured logging
- Exception handling
- LLM observability (Langfuse)
"""

from .config import (
    AnthropicConfig,
    AppConfig,
    AppSettings,
    DispatchConfig,
    Environment,
    ExaConfig,
    LangfuseConfig,
    LogFormat,
    LoggingConfig,
    MemoryConfig,
    ModelTierConfig,
    QualityConfig,
    get_config,
    init_config,
    reset_config,
)
from .error_handlers import (
    create_error_response,
    register_error_handlers,
)
from .exceptions import (
    AgentCrewError,
    APIError,
    BadRequestError,
    CapabilityError,
    CapabilityNotFoundError,
    ConfigurationError,
    DispatchError,
    DuplicateCapabilityError,
    ExecutionFailureError,
    HandoffCapExceeded,
    InvalidArgumentsError,
    InvalidConfigurationError,
    MissingConfigurationError,
    ModelCallFailure,
    NotFoundError,
    ServiceUnavailableError,
    UnknownAgentError,
)
from .logging import (
    LoggerAdapter,
    clear_correlation_id,
    get_api_logger,
    get_correlation_id,
    get_logger,
    get_thread_logger,
    set_correlation_id,
    setup_logging,
)
from .observability import (
    LangfuseClient,
    get_observability_client,
    init_observability,
    reset_observability,
    shutdown_observability,
)

__all__ = [
    # Config
    "AppConfig",
    "AppSettings",
    "AnthropicConfig",
    "ModelTierConfig",
    "ExaConfig",
    "LoggingConfig",
    "MemoryConfig",
    "DispatchConfig",
    "QualityConfig",
    "LangfuseConfig",
    "Environment",
    "LogFormat",
    "get_config",
    "init_config",
    "reset_config",
    # Logging
    "setup_logging",
    "get_logger",
    "LoggerAdapter",
    "get_thread_logger",
    "get_api_logger",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    # Exceptions
    "AgentCrewError",
    "ConfigurationError",
    "MissingConfigurationError",
    "InvalidConfigurationError",
    "UnknownAgentError",
    "CapabilityError",
    "DuplicateCapabilityError",
    "CapabilityNotFoundError",
    "InvalidArgumentsError",
    "ExecutionFailureError",
    "DispatchError",
    "ModelCallFailure",
    "HandoffCapExceeded",
    "APIError",
    "BadRequestError",
    "NotFoundError",
    "ServiceUnavailableError",
    # Error Handlers
    "register_error_handlers",
    "create_error_response",
    # Observability
    "LangfuseClient",
    "get_observability_client",
    "init_observability",
    "shutdown_observability",
    "reset_observability",
]
