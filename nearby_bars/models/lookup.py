"""Request, response and outcome models for the nearby bars lookup."""
import math
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from nearby_bars.models.venue import NearbyVenue


class NearbyQuery(BaseModel):
    """Validated lookup query. Radius is in meters."""
    latitude: float
    longitude: float
    radius: float


class RateLimitDecision(BaseModel):
    """Outcome of a rate limiter check for one client."""
    allowed: bool
    remaining: int
    reset_in_ms: int
    limit: int

    @property
    def reset_in_seconds(self) -> int:
        return math.ceil(self.reset_in_ms / 1000)


class LiveResult(BaseModel):
    """Venues fetched from Overpass during this request."""
    venues: list[NearbyVenue]
    from_cache: Literal[False] = False

    @property
    def count(self) -> int:
        return len(self.venues)


class CachedResult(BaseModel):
    """Venues served from the cache because Overpass was unavailable."""
    venues: list[NearbyVenue]
    from_cache: Literal[True] = True

    @property
    def count(self) -> int:
        return len(self.venues)


LookupResult = Union[LiveResult, CachedResult]


class NearbyBarsResponse(BaseModel):
    """Body of a successful lookup response."""
    bars: list[NearbyVenue]
    count: int
    from_cache: bool = Field(alias="fromCache")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: LookupResult) -> "NearbyBarsResponse":
        return cls(bars=result.venues, count=result.count, from_cache=result.from_cache)


class ErrorResponse(BaseModel):
    error: str
