"""Exception hierarchy for fetch, cache and aggregation failures."""

from __future__ import annotations

from typing import Any, Mapping


class FreightAnalyticsError(Exception):
    """Base class for all domain-level errors in the analytics engine."""

    default_message = "Freight analytics error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class RemoteSourceError(FreightAnalyticsError):
    """Generic failure while talking to the remote freight API."""

    default_message = "Remote source error"


class AuthError(RemoteSourceError):
    """Credential rejected by the remote API; the caller must re-authenticate."""

    default_message = "Remote authentication failed"


class NetworkError(RemoteSourceError):
    """Remote API unreachable or the request timed out."""

    default_message = "Remote source unreachable"


class ServerError(RemoteSourceError):
    """Remote API answered with a non-success status or an unusable body."""

    default_message = "Remote source returned an error"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        context: Mapping[str, Any] | None = None,
    ):
        self.status_code = status_code
        merged = dict(context or {})
        if status_code is not None:
            merged.setdefault("status_code", status_code)
        super().__init__(message, context=merged)


class CacheWriteError(FreightAnalyticsError):
    """Cache storage refused a write (quota, serialization, backend failure)."""

    default_message = "Cache write failed"


class ValidationError(FreightAnalyticsError):
    """Raised when caller-supplied arguments fail domain validation."""

    default_message = "Domain validation failed"
