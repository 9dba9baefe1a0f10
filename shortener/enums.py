"""Shared enums for the link shortener.

Using enums instead of string literals keeps metric labels, health payloads
and redirect outcomes consistent across modules.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "ResolutionStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def from_str(cls, value: str) -> "HealthStatus":
        """Safely parse from string, falling back to UNHEALTHY for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNHEALTHY


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    ERROR = "error"


class ResolutionStatus(StrEnum):
    """Outcome of resolving a short code on the redirect path."""

    REDIRECT = "redirect"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
