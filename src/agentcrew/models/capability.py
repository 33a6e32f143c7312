"""Capability (tool) data models."""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ToolContext(BaseModel):
    """Conversation context handed to capability executors."""

    thread_id: str
    channel_id: str = ""
    user_id: str = ""
    agent_id: str = ""
    trace_id: str = ""

    model_config = {"frozen": True}


Executor = Callable[[Any, ToolContext], Awaitable[Any]]


class CapabilityDefinition(BaseModel):
    """A named, schema-validated action an agent may request.

    ``parameters`` is a pydantic model class; raw arguments are validated
    against it and the validated instance is passed to ``executor``.
    """

    name: str = Field(..., min_length=1, description="Globally unique name")
    description: str = Field(default="", description="Shown to the model")
    parameters: type[BaseModel] = Field(..., description="Parameter schema")
    executor: Executor = Field(..., description="async (params, context) -> result")

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    def json_schema(self) -> dict[str, Any]:
        """JSON schema of the parameters as seen by the model."""
        schema = self.parameters.model_json_schema()
        schema.pop("title", None)
        return schema


class CapabilitySpec(BaseModel):
    """Model-facing description of a capability."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class ToolCall(BaseModel):
    """A capability invocation proposed by the model."""

    call_id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class ToolErrorKind(str, Enum):
    """Why a capability call failed."""

    NOT_FOUND = "not_found"
    NOT_PERMITTED = "not_permitted"
    INVALID_ARGUMENTS = "invalid_arguments"
    EXECUTION_FAILURE = "execution_failure"


class ToolError(BaseModel):
    """Typed failure payload fed back to the model."""

    kind: ToolErrorKind
    message: str
    fields: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ToolResult(BaseModel):
    """Outcome of one capability call: a payload or an error, never both."""

    call_id: str
    name: str
    payload: Any = None
    error: ToolError | None = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, call: ToolCall, payload: Any) -> "ToolResult":
        return cls(call_id=call.call_id, name=call.name, payload=payload)

    @classmethod
    def failure(
        cls,
        call: ToolCall,
        kind: ToolErrorKind,
        message: str,
        fields: list[str] | None = None,
    ) -> "ToolResult":
        return cls(
            call_id=call.call_id,
            name=call.name,
            error=ToolError(kind=kind, message=message, fields=fields or []),
        )

    def to_content(self) -> Any:
        """Value sent back to the model as the tool result."""
        if self.error is not None:
            return {"error": self.error.message, "kind": self.error.kind.value}
        return self.payload
