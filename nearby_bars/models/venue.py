"""Venue data models using Pydantic."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from nearby_bars.geo import (
    footsteps_for_distance,
    haversine_distance,
    walking_minutes_for_distance,
)

REQUEST_RELATIVE_FIELDS = {"distance", "footsteps", "walking_minutes"}


class VenueCategory(str, Enum):
    """Closed set of venue categories, valued by their display names."""

    BAR = "Bar"
    PUB = "Pub"
    NIGHTCLUB = "Nightclub"
    BEER_GARDEN = "Beer Garden"


class Venue(BaseModel):
    """Drinking venue as stored in the cache.

    Keyed by ``osm_id``. Instances are immutable; a re-fetch replaces the
    whole record rather than merging into it.
    """

    osm_id: int
    name: str = Field(min_length=1)
    category: VenueCategory = Field(default=VenueCategory.BAR, alias="type")

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    # Optional descriptive fields
    address: Optional[str] = None
    opening_hours: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def with_distance_from(self, latitude: float, longitude: float) -> "NearbyVenue":
        """Attach request-relative walking data for the given origin."""
        distance = haversine_distance(latitude, longitude, self.latitude, self.longitude)
        return NearbyVenue(
            **self.model_dump(exclude=REQUEST_RELATIVE_FIELDS),
            distance=distance,
            footsteps=footsteps_for_distance(distance),
            walking_minutes=walking_minutes_for_distance(distance),
        )

    def __str__(self) -> str:
        return (
            f"Venue(osm_id={self.osm_id}, name={self.name}, type={self.category.value}, "
            f"lat={self.latitude}, lon={self.longitude})"
        )


class NearbyVenue(Venue):
    """Venue plus walking data relative to the caller's position (never persisted)."""

    distance: float  # meters
    footsteps: int = 0
    walking_minutes: int = 0

    def to_venue(self) -> Venue:
        """Drop request-relative fields before persisting."""
        return Venue(**self.model_dump(exclude=REQUEST_RELATIVE_FIELDS))
