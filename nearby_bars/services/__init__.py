"""Services package."""
from nearby_bars.services.rate_limiter import FixedWindowRateLimiter, client_key_from_headers
from nearby_bars.services.venue_normalizer import normalize_element, normalize_elements

__all__ = [
    "FixedWindowRateLimiter",
    "client_key_from_headers",
    "normalize_element",
    "normalize_elements",
]
