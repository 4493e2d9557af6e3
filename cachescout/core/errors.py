"""
Error taxonomy for the agent.

Probe and analysis errors are recovered per URL; configuration errors are fatal
and raised before any network activity.
"""

from typing import Any


class CacheScoutError(Exception):
    """Base class for all agent errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} ({self.context})"
        return self.message


class ConfigurationError(CacheScoutError):
    """Invalid run configuration. Fatal, no partial run is attempted."""


class ProbeError(CacheScoutError):
    """A network probe could not produce a result."""

    def __init__(self, message: str, url: str | None = None, context: dict[str, Any] | None = None):
        ctx = dict(context or {})
        if url:
            ctx["url"] = url
        super().__init__(message, ctx)


class AnalysisError(CacheScoutError):
    """Classification of a probe result failed. Treated like a fetch failure."""


class GuardrailViolation(CacheScoutError):
    """A target URL falls outside the authorized scope."""
