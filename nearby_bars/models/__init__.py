"""Data models package for nearby-bars-server."""
from nearby_bars.models.venue import (
    Venue,
    NearbyVenue,
    VenueCategory,
)
from nearby_bars.models.overpass import (
    OverpassElement,
    OverpassCenter,
    OverpassResponse,
)
from nearby_bars.models.lookup import (
    NearbyQuery,
    RateLimitDecision,
    LiveResult,
    CachedResult,
    LookupResult,
    NearbyBarsResponse,
    ErrorResponse,
)

__all__ = [
    # Venue models
    "Venue",
    "NearbyVenue",
    "VenueCategory",
    # Overpass models
    "OverpassElement",
    "OverpassCenter",
    "OverpassResponse",
    # Lookup models
    "NearbyQuery",
    "RateLimitDecision",
    "LiveResult",
    "CachedResult",
    "LookupResult",
    "NearbyBarsResponse",
    "ErrorResponse",
]
