"""Capability Registry - capability registration, lookup and invocation.

The registry maps capability names to their parameter schema and executor.
It is populated once at startup and read without locking afterwards;
``register`` is serialised so late registrations stay safe.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from agentcrew.models import (
    CapabilityDefinition,
    CapabilitySpec,
    ToolCall,
    ToolContext,
    ToolErrorKind,
    ToolResult,
)
from agentcrew.utils.exceptions import (
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    ExecutionFailureError,
    InvalidArgumentsError,
)
from agentcrew.utils.logging import get_logger

logger = get_logger(__name__)


def _violating_fields(error: ValidationError) -> list[str]:
    fields: list[str] = []
    for item in error.errors():
        name = ".".join(str(part) for part in item["loc"]) or "payload"
        if name not in fields:
            fields.append(name)
    return fields


class CapabilityRegistry:
    """Registry of capabilities available to agents.

    Constructed explicitly and injected into the dispatch loop; there is no
    module-level instance.
    """

    def __init__(self, definitions: Iterable[CapabilityDefinition] = ()) -> None:
        self._capabilities: dict[str, CapabilityDefinition] = {}
        self._view = MappingProxyType(self._capabilities)
        self._lock = threading.Lock()
        for definition in definitions:
            self.register(definition)

    def register(self, definition: CapabilityDefinition) -> None:
        """Register a capability.

        Args:
            definition: The capability to register.

        Raises:
            DuplicateCapabilityError: If the name is already registered.
        """
        with self._lock:
            if definition.name in self._capabilities:
                raise DuplicateCapabilityError(definition.name)
            # Copy-on-write: readers always see a complete mapping
            updated = dict(self._capabilities)
            updated[definition.name] = definition
            self._capabilities = updated
            self._view = MappingProxyType(updated)

        logger.debug("Capability registered", capability=definition.name)

    def lookup(self, name: str) -> CapabilityDefinition:
        """Get a capability by name.

        Raises:
            CapabilityNotFoundError: If the capability is not registered.
        """
        try:
            return self._view[name]
        except KeyError:
            raise CapabilityNotFoundError(name) from None

    def validate(self, name: str, raw_arguments: dict[str, Any] | None) -> Any:
        """Validate raw arguments against a capability's schema.

        Returns:
            The validated parameter model instance.

        Raises:
            CapabilityNotFoundError: If the capability is not registered.
            InvalidArgumentsError: If validation fails.
        """
        definition = self.lookup(name)
        try:
            return definition.parameters.model_validate(raw_arguments or {})
        except ValidationError as e:
            raise InvalidArgumentsError(name, _violating_fields(e)) from e

    async def invoke(
        self,
        call: ToolCall,
        context: ToolContext,
    ) -> ToolResult:
        """Validate arguments and run the executor for one call.

        Every failure becomes a typed ``ToolResult`` error; this never raises.

        Args:
            call: The proposed call.
            context: Conversation context passed to the executor.

        Returns:
            ToolResult with either a payload or a ToolError.
        """
        try:
            params = self.validate(call.name, call.arguments)
        except CapabilityNotFoundError as e:
            logger.warning("Unknown capability requested", capability=call.name)
            return ToolResult.failure(call, ToolErrorKind.NOT_FOUND, e.message)
        except InvalidArgumentsError as e:
            logger.warning(
                "Capability arguments rejected",
                capability=call.name,
                fields=e.fields,
            )
            return ToolResult.failure(
                call, ToolErrorKind.INVALID_ARGUMENTS, e.message, e.fields
            )

        definition = self._view[call.name]
        try:
            payload = await definition.executor(params, context)
        except Exception as e:
            failure = ExecutionFailureError(call.name, e)
            logger.error(
                "Capability execution failed",
                capability=call.name,
                error=str(e),
                exception=e.__class__.__name__,
                thread_id=context.thread_id,
            )
            return ToolResult.failure(
                call, ToolErrorKind.EXECUTION_FAILURE, failure.message
            )

        logger.debug("Capability executed", capability=call.name)
        return ToolResult.success(call, payload)

    def specs(self, names: Iterable[str] | None = None) -> list[CapabilitySpec]:
        """Model-facing specs for the given names, sorted by name.

        Unknown names are skipped. ``None`` returns every capability.
        """
        view = self._view
        selected = sorted(view) if names is None else sorted(n for n in names if n in view)
        return [
            CapabilitySpec(
                name=name,
                description=view[name].description,
                input_schema=view[name].json_schema(),
            )
            for name in selected
        ]

    def names(self) -> list[str]:
        """Return all registered capability names."""
        return sorted(self._view)

    def __len__(self) -> int:
        """Return the number of registered capabilities."""
        return len(self._view)

    def __contains__(self, name: object) -> bool:
        """Check if a capability is registered."""
        return name in self._view
