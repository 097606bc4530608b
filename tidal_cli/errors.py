from __future__ import annotations


class TidalCliError(Exception):
    """Base class for every error surfaced to the command line."""


class ConfigurationError(TidalCliError):
    """Raised when local configuration (credentials) is missing or invalid."""


class OAuthError(TidalCliError):
    """Raised when OAuth authentication cannot be completed."""


class NotFoundError(TidalCliError):
    """Raised when an expected resource, target or session is absent."""


class RequestFailedError(TidalCliError):
    """Raised for any non-rate-limit API failure. Never retried."""

    def __init__(self, label: str, status: int | None, detail: str) -> None:
        self.label = label
        self.status = status
        self.detail = detail
        suffix = f" ({status})" if status is not None else ""
        super().__init__(f"{label} failed{suffix}: {detail}")


class RateLimitedError(RequestFailedError):
    """Raised when HTTP 429 persists after every retry."""

    def __init__(self, label: str, detail: str) -> None:
        super().__init__(label, 429, detail)


class OperationTimeoutError(TidalCliError, TimeoutError):
    """Raised when a protocol call, readiness wait or launch exceeds its deadline."""


class LaunchTimeoutError(OperationTimeoutError):
    """Raised when the desktop app never exposes its debugging port."""


class ConnectionFailed(TidalCliError):
    """Raised when the control channel cannot be reached."""


class EvaluationError(TidalCliError):
    """Raised when a script evaluated in the desktop app throws."""
