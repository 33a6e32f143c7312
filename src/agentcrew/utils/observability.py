"""LLM observability with Langfuse.

Each dispatch turn becomes one trace; every model completion inside the turn
is logged as a generation on that trace. A disabled client turns every call
into a no-op so the dispatch loop never has to check.
"""

from typing import Any

from langfuse import Langfuse

from .logging import get_logger

logger = get_logger(__name__)


class LangfuseClient:
    """Wrapper for the Langfuse client with graceful degradation."""

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        host: str = "https://cloud.langfuse.com",
        enabled: bool = True,
    ):
        """Initialize the Langfuse client.

        Args:
            public_key: Langfuse public key
            secret_key: Langfuse secret key
            host: Langfuse host URL
            enabled: Whether to enable Langfuse tracking
        """
        self.enabled = enabled
        self._client: Any = None
        self._traces: dict[str, Any] = {}

        if self.enabled and public_key and secret_key:
            try:
                self._client = Langfuse(
                    public_key=public_key,
                    secret_key=secret_key,
                    host=host,
                )
                logger.info("Langfuse client initialized", host=host)
            except Exception as e:
                logger.warning("Failed to initialize Langfuse client", error=str(e))
                self.enabled = False
        elif enabled:
            logger.debug("Langfuse credentials not provided, tracking disabled")
            self.enabled = False

    def start_trace(
        self,
        trace_id: str,
        name: str,
        metadata: dict[str, Any] | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
        tags: list[str] | None = None,
    ) -> str | None:
        """Start a new trace for a dispatch turn.

        Args:
            trace_id: Unique identifier for the trace
            name: Name of the trace
            metadata: Optional metadata to attach
            user_id: Optional user identifier
            session_id: Optional session identifier (the thread id)
            tags: Optional tags for categorization

        Returns:
            The trace ID if successful, None otherwise
        """
        if not self.enabled or not self._client:
            return None

        try:
            trace = self._client.trace(
                id=trace_id,
                name=name,
                metadata=metadata or {},
                user_id=user_id,
                session_id=session_id,
                tags=tags or [],
            )
            self._traces[trace_id] = trace
            logger.debug("Started trace", trace_id=trace_id, name=name)
            return trace_id
        except Exception as e:
            logger.warning("Failed to start trace", error=str(e), trace_id=trace_id)
            return None

    def end_trace(
        self,
        trace_id: str,
        output: dict[str, Any] | None = None,
        status: str = "success",
    ) -> None:
        """End a trace and record the final output."""
        if not self.enabled or trace_id not in self._traces:
            return

        try:
            trace = self._traces.pop(trace_id)
            trace.update(output=output, metadata={"status": status})
            logger.debug("Ended trace", trace_id=trace_id, status=status)
        except Exception as e:
            logger.warning("Failed to end trace", error=str(e), trace_id=trace_id)

    def log_generation(
        self,
        trace_id: str,
        name: str,
        model: str,
        input_messages: list[dict[str, Any]],
        output: str | dict[str, Any],
        model_parameters: dict[str, Any] | None = None,
        usage: dict[str, int] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log one model completion on an open trace.

        Args:
            trace_id: Parent trace ID
            name: Name of the generation (e.g. "scout.initial")
            model: Model id
            input_messages: Messages sent to the model
            output: Model output
            model_parameters: Optional parameters (temperature, max_tokens)
            usage: Optional token usage
            metadata: Optional additional metadata
        """
        if not self.enabled or trace_id not in self._traces:
            return

        try:
            self._traces[trace_id].generation(
                name=name,
                model=model,
                input=input_messages,
                output=output,
                model_parameters=model_parameters or {},
                usage=usage,
                metadata=metadata or {},
            )
            logger.debug("Logged generation", trace_id=trace_id, model=model, name=name)
        except Exception as e:
            logger.warning("Failed to log generation", error=str(e), trace_id=trace_id)

    def score(
        self,
        trace_id: str,
        name: str,
        value: float | int | str,
        comment: str | None = None,
    ) -> None:
        """Attach a named score, such as an article quality score, to a trace."""
        if not self.enabled or not self._client:
            return

        try:
            self._client.score(
                trace_id=trace_id,
                name=name,
                value=value,
                comment=comment,
            )
        except Exception as e:
            logger.warning("Failed to add score", error=str(e), trace_id=trace_id)

    def shutdown(self) -> None:
        """Shutdown the Langfuse client."""
        if self.enabled and self._client:
            try:
                self._client.shutdown()
                logger.info("Langfuse client shutdown")
            except Exception as e:
                logger.warning("Failed to shutdown Langfuse client", error=str(e))


# Global observability client instance
_observability_client: LangfuseClient | None = None


def get_observability_client() -> LangfuseClient:
    """Get the global observability client, or a disabled one if uninitialized."""
    if _observability_client is None:
        return LangfuseClient(enabled=False)
    return _observability_client


def init_observability(
    public_key: str = "",
    secret_key: str = "",
    host: str = "https://cloud.langfuse.com",
    enabled: bool = True,
) -> LangfuseClient:
    """Initialize the global observability client."""
    global _observability_client
    _observability_client = LangfuseClient(
        public_key=public_key,
        secret_key=secret_key,
        host=host,
        enabled=enabled,
    )
    return _observability_client


def shutdown_observability() -> None:
    """Shutdown the global observability client."""
    global _observability_client
    if _observability_client:
        _observability_client.shutdown()
        _observability_client = None


def reset_observability() -> None:
    """Reset the global observability client (mainly for testing)."""
    global _observability_client
    _observability_client = None
