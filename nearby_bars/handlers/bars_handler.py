"""Nearby bars handler: rate limiting, validation, live lookup and cache fallback."""
import logging
import math
from typing import Any, Optional

from starlette.concurrency import run_in_threadpool

from nearby_bars.api.overpass_client import OverpassAPIClient
from nearby_bars.dao.venue_cache import VenueCache
from nearby_bars.exceptions import RateLimitError, ValidationError
from nearby_bars.metrics import (
    CACHE_UPSERT_ERRORS_TOTAL,
    CACHE_VENUES_UPSERTED_TOTAL,
    LOOKUP_RESULTS_TOTAL,
    LOOKUP_VENUES_RETURNED,
    RATE_LIMIT_REJECTIONS_TOTAL,
)
from nearby_bars.models import (
    CachedResult,
    LiveResult,
    LookupResult,
    NearbyQuery,
    NearbyVenue,
    OverpassElement,
    RateLimitDecision,
)
from nearby_bars.services.rate_limiter import FixedWindowRateLimiter
from nearby_bars.services.venue_normalizer import normalize_elements

logger = logging.getLogger(__name__)


def _as_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None if it is not a JSON number."""
    # bool is an int subclass but true/false are not coordinates
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        # JSON integers are unbounded; anything past float range is out of range
        return None
    if not math.isfinite(number):
        return None
    return number


class NearbyBarsHandler:
    """Handler for nearby bar lookups.

    Flow:
    1. Rate limit the client
    2. Validate coordinates and clamp the radius
    3. Query Overpass; on success normalize, cache and sort by distance
    4. On Overpass failure serve cached venues within the radius instead
    """

    def __init__(
        self,
        overpass_client: OverpassAPIClient,
        venue_cache: VenueCache,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        radius_min: float = 100,
        radius_max: float = 10_000,
        radius_default: float = 2_000,
    ):
        """Initialize nearby bars handler.

        Args:
            overpass_client: Upstream POI client
            venue_cache: Cache written on success and read on fallback
            rate_limiter: Per-client throttle (None disables rate limiting)
            radius_min: Smallest accepted radius in meters
            radius_max: Largest accepted radius in meters
            radius_default: Radius used when the requested one is missing or out of band
        """
        self.overpass_client = overpass_client
        self.venue_cache = venue_cache
        self.rate_limiter = rate_limiter
        self.radius_min = radius_min
        self.radius_max = radius_max
        self.radius_default = radius_default

    def ping(self) -> dict[str, str]:
        """Health check endpoint.

        Returns:
            {"status": "pong"}
        """
        logger.debug("[NearbyBarsHandler] Ping")
        return {"status": "pong"}

    def check_rate_limit(self, client_key: str) -> Optional[RateLimitDecision]:
        """Count the request against the client's quota.

        Returns:
            The decision, or None when rate limiting is disabled

        Raises:
            RateLimitError: If the client is over its quota for this window
        """
        if self.rate_limiter is None:
            return None

        decision = self.rate_limiter.check(client_key)
        if not decision.allowed:
            RATE_LIMIT_REJECTIONS_TOTAL.inc()
            logger.info(f"[NearbyBarsHandler] Rate limit exceeded for client: {client_key}")
            raise RateLimitError(decision)
        return decision

    def validate_query(self, payload: Any) -> NearbyQuery:
        """Validate a request body into a query.

        Out-of-band or missing radius values are replaced by the default
        without error.

        Raises:
            ValidationError: If latitude/longitude are missing, non-numeric or out of range
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        latitude = _as_number(payload.get("latitude"))
        longitude = _as_number(payload.get("longitude"))

        if latitude is None or longitude is None:
            raise ValidationError("Latitude and longitude must be valid numbers")
        if not -90 <= latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90")
        if not -180 <= longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180")

        radius = _as_number(payload.get("radius"))
        if radius is None or radius < self.radius_min or radius > self.radius_max:
            radius = self.radius_default

        return NearbyQuery(latitude=latitude, longitude=longitude, radius=radius)

    async def find_nearby(self, query: NearbyQuery) -> LookupResult:
        """Look up venues around the query point, sorted by ascending distance.

        Raises:
            CacheError: If Overpass failed and the cache cannot be read either
        """
        logger.info(
            f"[NearbyBarsHandler] Fetching bars near {query.latitude:.6f}, "
            f"{query.longitude:.6f} within {query.radius:.0f}m"
        )

        elements = await self._query_live(query)
        if elements is None:
            result: LookupResult = await self._from_cache(query)
            source = "cache"
        else:
            result = await self._from_live(query, elements)
            source = "live"

        LOOKUP_RESULTS_TOTAL.labels(source=source).inc()
        LOOKUP_VENUES_RETURNED.labels(source=source).observe(result.count)
        logger.info(f"[NearbyBarsHandler] Returning {result.count} venues from {source}")
        return result

    async def _query_live(self, query: NearbyQuery) -> Optional[list[OverpassElement]]:
        """Query Overpass. Returns None when the upstream is unavailable."""
        try:
            return await self.overpass_client.query_pois(
                query.latitude, query.longitude, query.radius
            )
        except Exception as e:
            logger.warning(
                f"[NearbyBarsHandler] Overpass API failed, falling back to cache: {e}"
            )
            return None

    async def _from_live(self, query: NearbyQuery, elements: list[OverpassElement]) -> LiveResult:
        venues = normalize_elements(elements, query.latitude, query.longitude)
        await self._persist(venues)
        return LiveResult(venues=_sorted_by_distance(venues))

    async def _persist(self, venues: list[NearbyVenue]) -> None:
        """Best-effort cache write; failures are logged and never reach the caller."""
        if not venues:
            return
        try:
            # redis-py blocks; keep it off the event loop
            await run_in_threadpool(
                self.venue_cache.upsert_venues, [v.to_venue() for v in venues]
            )
            CACHE_VENUES_UPSERTED_TOTAL.inc(len(venues))
        except Exception as e:
            CACHE_UPSERT_ERRORS_TOTAL.inc()
            logger.error(f"[NearbyBarsHandler] Error storing bars: {e}")

    async def _from_cache(self, query: NearbyQuery) -> CachedResult:
        """Serve cached venues within the true radius of the query point."""
        try:
            cached = await run_in_threadpool(
                self.venue_cache.query_bounding_box,
                query.latitude,
                query.longitude,
                query.radius,
            )
        except Exception:
            LOOKUP_RESULTS_TOTAL.labels(source="error").inc()
            raise

        logger.info(f"[NearbyBarsHandler] Found {len(cached)} bars from cache")

        venues = [
            venue.with_distance_from(query.latitude, query.longitude)
            for venue in cached
        ]
        within_radius = [v for v in venues if v.distance <= query.radius]
        return CachedResult(venues=_sorted_by_distance(within_radius))


def _sorted_by_distance(venues: list[NearbyVenue]) -> list[NearbyVenue]:
    return sorted(venues, key=lambda v: v.distance)
