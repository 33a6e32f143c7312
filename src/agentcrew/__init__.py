"""agentcrew - a message-routing assistant that dispatches chat turns to
specialist agents."""

__version__ = "0.1.0"
