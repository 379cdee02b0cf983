"""Custom exceptions for the LifeOS Ingestor."""

from __future__ import annotations


class LifeOSIngestorError(Exception):
    """Base exception for all LifeOS Ingestor errors."""


class InitializationError(LifeOSIngestorError):
    """Provider libraries never became available, or their handshake failed."""


class AuthError(LifeOSIngestorError):
    """Consent or credential failure.

    ``reason`` carries the provider's raw error code when one is available
    (for example ``access_denied``).
    """

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class LoginInProgressError(AuthError):
    """A second login was requested while the first is still awaiting consent."""


class FetchError(LifeOSIngestorError):
    """Provider client not loaded, or the provider call itself failed."""


class RateLimitError(FetchError):
    """Provider API rate limit exceeded."""


class AnalysisError(LifeOSIngestorError):
    """Summarization collaborator failed or returned an unusable response."""
