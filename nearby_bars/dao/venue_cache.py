"""Venue cache used as the fallback data source when Overpass is unavailable."""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import redis
from pydantic import ValidationError as PydanticValidationError

from nearby_bars.db.geo_redis_client import GeoRedisClient
from nearby_bars.exceptions import CacheError, UpsertError
from nearby_bars.geo import bounding_box
from nearby_bars.models import NearbyVenue, Venue

logger = logging.getLogger(__name__)

BARS_LAT_INDEX_KEY_V1 = "bars_lat_v1"
BARS_LON_INDEX_KEY_V1 = "bars_lon_v1"
BAR_KEY_FORMAT_V1 = "bars_v1:{}"


def as_stored(venue: Venue) -> Venue:
    """Strip request-relative fields (distance, footsteps) before persisting."""
    if isinstance(venue, NearbyVenue):
        return venue.to_venue()
    return venue


class VenueCache(ABC):
    """Durable table of venues keyed by OSM id."""

    @abstractmethod
    def upsert_venues(self, venues: Iterable[Venue]) -> int:
        """Insert or fully overwrite venues by ``osm_id``.

        Returns:
            Number of venues written

        Raises:
            UpsertError: If the write fails
        """

    @abstractmethod
    def query_bounding_box(self, lat: float, lon: float, radius: float) -> list[Venue]:
        """Return venues inside the rectangle approximating ``radius`` meters.

        The rectangle over-includes its corners; callers filter by distance.

        Raises:
            CacheError: If the read fails
        """


class RedisVenueCache(VenueCache):
    """Venue cache backed by Redis JSON documents and coordinate sorted sets."""

    def __init__(self, client: GeoRedisClient):
        """Initialize RedisVenueCache.

        Args:
            client: GeoRedisClient instance
        """
        self.client = client

    def upsert_venues(self, venues: Iterable[Venue]) -> int:
        documents = [
            (BAR_KEY_FORMAT_V1.format(venue.osm_id), venue.latitude, venue.longitude, as_stored(venue))
            for venue in venues
        ]
        if not documents:
            return 0

        try:
            self.client.set_documents_with_coordinates(
                lat_key=BARS_LAT_INDEX_KEY_V1,
                lon_key=BARS_LON_INDEX_KEY_V1,
                documents=documents,
            )
        except redis.RedisError as e:
            raise UpsertError(f"Failed to store {len(documents)} venues: {e}") from e

        logger.info(f"[RedisVenueCache] Stored/updated {len(documents)} venues")
        return len(documents)

    def query_bounding_box(self, lat: float, lon: float, radius: float) -> list[Venue]:
        box = bounding_box(lat, lon, radius)
        try:
            venues_json = self.client.get_documents_in_box(
                BARS_LAT_INDEX_KEY_V1,
                BARS_LON_INDEX_KEY_V1,
                box.min_lat,
                box.max_lat,
                box.min_lon,
                box.max_lon,
            )
        except redis.RedisError as e:
            raise CacheError(f"Failed to query cached venues: {e}") from e

        venues = []
        for venue_json in venues_json:
            try:
                venues.append(Venue.model_validate_json(venue_json))
            except PydanticValidationError as e:
                logger.error(f"[RedisVenueCache] Failed to unmarshal venue JSON: {e}")
                continue

        logger.info(f"[RedisVenueCache] Found {len(venues)} cached venues in bounding box")
        return venues


class InMemoryVenueCache(VenueCache):
    """Process-local venue cache for development and tests."""

    def __init__(self):
        self._venues: dict[int, Venue] = {}
        self._lock = threading.Lock()

    def upsert_venues(self, venues: Iterable[Venue]) -> int:
        written = 0
        with self._lock:
            for venue in venues:
                self._venues[venue.osm_id] = as_stored(venue)
                written += 1
        return written

    def query_bounding_box(self, lat: float, lon: float, radius: float) -> list[Venue]:
        box = bounding_box(lat, lon, radius)
        with self._lock:
            return [
                venue
                for venue in self._venues.values()
                if box.contains(venue.latitude, venue.longitude)
            ]

    def get(self, osm_id: int) -> Optional[Venue]:
        with self._lock:
            return self._venues.get(osm_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._venues)
