"""Global error handlers for the FastAPI application.

Exceptions are converted to the standard ``{success: false, error: {...}}``
envelope with an HTTP status matching the failure.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from .exceptions import (
    AgentCrewError,
    APIError,
    CapabilityNotFoundError,
    ConfigurationError,
    UnknownAgentError,
)
from .logging import get_logger

logger = get_logger(__name__)


def create_error_response(
    status_code: int,
    error: str,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        status_code: HTTP status code
        error: Error type/code
        message: Human-readable error message
        details: Optional additional error details
        request_id: Optional request ID for tracing

    Returns:
        JSONResponse with error information
    """
    content: dict[str, Any] = {
        "success": False,
        "error": {
            "code": error,
            "message": message,
        },
    }

    if details:
        content["error"]["details"] = details

    if request_id:
        content["metadata"] = {"request_id": request_id}

    return JSONResponse(status_code=status_code, content=content)


def _validation_errors(errors: list[Any]) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.warning(
        "API error occurred",
        error=exc.__class__.__name__,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=exc.status_code,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


async def not_found_handler(request: Request, exc: AgentCrewError) -> JSONResponse:
    """Handle lookups of unknown agents or capabilities as 404."""
    request_id = getattr(request.state, "request_id", None)

    logger.info(
        "Lookup failed",
        error=exc.__class__.__name__,
        message=exc.message,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=404,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


async def configuration_error_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """Handle configuration errors surfaced at request time."""
    request_id = getattr(request.state, "request_id", None)

    logger.error(
        "Configuration error",
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details,
        request_id=request_id,
    )

    return create_error_response(
        status_code=500,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


async def agentcrew_error_handler(request: Request, exc: AgentCrewError) -> JSONResponse:
    """Handle any other AgentCrewError."""
    request_id = getattr(request.state, "request_id", None)

    logger.error(
        "Application error occurred",
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=500,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI RequestValidationError exceptions."""
    request_id = getattr(request.state, "request_id", None)
    errors = _validation_errors(list(exc.errors()))

    logger.warning(
        "Request validation error",
        errors=errors,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=422,
        error="ValidationError",
        message="Request validation failed",
        details={"validation_errors": errors},
        request_id=request_id,
    )


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """Handle Pydantic ValidationError exceptions."""
    request_id = getattr(request.state, "request_id", None)
    errors = _validation_errors(list(exc.errors()))

    logger.warning(
        "Pydantic validation error",
        errors=errors,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=422,
        error="ValidationError",
        message="Data validation failed",
        details={"validation_errors": errors},
        request_id=request_id,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unexpected error occurred",
        error=exc.__class__.__name__,
        message=str(exc),
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=500,
        error="InternalServerError",
        message="An unexpected error occurred",
        request_id=request_id,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Most specific first
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(UnknownAgentError, not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(CapabilityNotFoundError, not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConfigurationError, configuration_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(AgentCrewError, agentcrew_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PydanticValidationError, pydantic_validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Error handlers registered")
