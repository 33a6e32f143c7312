"""Custom exception classes for agentcrew.

This module provides a unified exception hierarchy for the application.
Capability and dispatch failures are defined here so that the registry,
the dispatch loop and the HTTP layer all speak the same error vocabulary.
"""

from typing import Any


class AgentCrewError(Exception):
    """Base exception for all agentcrew errors.

    All custom exceptions in this system should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
            cause: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(AgentCrewError):
    """Raised when there's a configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Raised when a required configuration is missing."""

    def __init__(self, config_key: str, message: str | None = None):
        self.config_key = config_key
        msg = message or f"Missing required configuration: {config_key}"
        super().__init__(msg, details={"config_key": config_key})


class InvalidConfigurationError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(self, config_key: str, value: Any, message: str | None = None):
        self.config_key = config_key
        self.value = value
        msg = message or f"Invalid configuration value for {config_key}: {value}"
        super().__init__(msg, details={"config_key": config_key, "value": str(value)})


class UnknownAgentError(ConfigurationError):
    """Raised when an agent identifier has no profile."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Unknown agent: {agent_id}", details={"agent_id": agent_id})


# ============================================================================
# Capability Errors
# ============================================================================


class CapabilityError(AgentCrewError):
    """Base class for capability registry errors."""

    def __init__(
        self,
        capability: str,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        details = details or {}
        details["capability"] = capability
        super().__init__(message, details=details, cause=cause)
        self.capability = capability


class DuplicateCapabilityError(CapabilityError):
    """Raised when registering a capability name twice."""

    def __init__(self, capability: str):
        super().__init__(capability, f"Capability already registered: {capability}")


class CapabilityNotFoundError(CapabilityError):
    """Raised when a capability is not in the registry."""

    def __init__(self, capability: str):
        super().__init__(capability, f"Capability not found: {capability}")


class InvalidArgumentsError(CapabilityError):
    """Raised when capability arguments fail schema validation."""

    def __init__(self, capability: str, fields: list[str], message: str | None = None):
        self.fields = fields
        msg = message or (
            f"Invalid arguments for {capability}: {', '.join(fields) or 'payload'}"
        )
        super().__init__(capability, msg, details={"fields": fields})


class ExecutionFailureError(CapabilityError):
    """Raised when a capability executor fails."""

    def __init__(self, capability: str, cause: Exception):
        super().__init__(
            capability,
            f"{capability} failed: {cause}",
            details={"exception": cause.__class__.__name__},
            cause=cause,
        )


# ============================================================================
# Dispatch Errors
# ============================================================================


class DispatchError(AgentCrewError):
    """Base class for dispatch loop errors."""

    pass


class ModelCallFailure(DispatchError):
    """Raised when the model provider call fails or returns garbage."""

    def __init__(
        self,
        message: str,
        provider: str = "anthropic",
        model: str | None = None,
        cause: Exception | None = None,
    ):
        details = {"provider": provider}
        if model:
            details["model"] = model
        super().__init__(message, details=details, cause=cause)
        self.provider = provider
        self.model = model


class HandoffCapExceeded(DispatchError):
    """Raised when a handoff chain would exceed the configured cap."""

    def __init__(self, source_agent: str, target_agent: str, cap: int):
        super().__init__(
            f"Handoff {source_agent} -> {target_agent} exceeds cap of {cap}",
            details={"source": source_agent, "target": target_agent, "cap": cap},
        )
        self.source_agent = source_agent
        self.target_agent = target_agent
        self.cap = cap


# ============================================================================
# API Errors
# ============================================================================


class APIError(AgentCrewError):
    """Base class for API-related errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, details, cause)
        self.status_code = status_code


class BadRequestError(APIError):
    """Raised for bad request errors (400)."""

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(APIError):
    """Raised when a resource is not found (404)."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        message: str | None = None,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        msg = message or f"{resource_type} not found: {resource_id}"
        super().__init__(
            msg,
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ServiceUnavailableError(APIError):
    """Raised when a service is unavailable (503)."""

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
    ):
        msg = message or f"Service unavailable: {service_name}"
        super().__init__(msg, status_code=503, details={"service": service_name})
        self.service_name = service_name
