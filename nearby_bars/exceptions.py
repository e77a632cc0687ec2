"""
Custom exceptions for the nearby bars lookup.

Only ValidationError and RateLimitError carry messages meant for callers.
Everything else is reported to clients as a generic service error.
"""
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from nearby_bars.models import RateLimitDecision


class NearbyBarsError(Exception):
    """Base exception for all lookup errors."""

    pass


class ValidationError(NearbyBarsError):
    """Raised when request coordinates are missing, malformed or out of range."""

    pass


class RateLimitError(NearbyBarsError):
    """Raised when a client exhausted its request quota for the current window."""

    def __init__(
        self,
        decision: "RateLimitDecision",
        message: str = "Too many requests. Please try again later.",
    ) -> None:
        self.decision = decision
        super().__init__(message)


class UpstreamError(NearbyBarsError):
    """Raised when the Overpass API is unreachable or keeps failing after retries."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CacheError(NearbyBarsError):
    """Raised when the venue cache cannot be read."""

    pass


class UpsertError(CacheError):
    """Raised when venues cannot be written to the cache."""

    pass
