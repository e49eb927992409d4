"""
Feed engine exceptions.

Upstream failures abort the whole request: a partial candidate set would break
the no-repeat and pagination guarantees, so nothing here is retried or
degraded. The HTTP layer maps FeedError subclasses to status codes.
"""

from typing import Optional


class FeedError(Exception):
    """Base class for feed engine errors."""


class UpstreamUnavailableError(FeedError):
    """A catalog, swipe history or signal fetch failed."""

    def __init__(self, source: str, message: Optional[str] = None):
        self.source = source
        super().__init__(message or f"{source} fetch failed")


class UpstreamTimeoutError(UpstreamUnavailableError):
    """An upstream fetch did not finish before the request deadline."""

    def __init__(self, source: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(source, f"{source} fetch exceeded {timeout_seconds:.2f}s deadline")


class SessionNotFoundError(FeedError):
    """Feed session id is unknown or expired."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Feed session not found: {session_id}")


class DecisionError(FeedError, ValueError):
    """The decision helper was given too few candidates to choose between."""
