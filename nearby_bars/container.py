"""Dependency injection container for application components."""
import logging
from typing import Optional

from nearby_bars.api import OverpassAPIClient
from nearby_bars.config import Settings
from nearby_bars.dao import InMemoryVenueCache, RedisVenueCache, VenueCache
from nearby_bars.db import GeoRedisClient
from nearby_bars.handlers import NearbyBarsHandler
from nearby_bars.services import FixedWindowRateLimiter

logger = logging.getLogger(__name__)


class Container:
    """Dependency injection container.

    Initializes and wires up all application dependencies. Every stateful
    component (rate limiter included) is owned here and lives exactly as
    long as the container.
    """

    def __init__(self, settings: Settings):
        """Initialize container with all dependencies.

        Args:
            settings: Application settings
        """
        logger.info("[Container] Initializing container")
        self.settings = settings

        # Venue cache
        self.redis_client: Optional[GeoRedisClient] = None
        self.venue_cache: VenueCache
        if settings.cache_backend == "memory":
            logger.warning("[Container] Using in-memory venue cache (not durable)")
            self.venue_cache = InMemoryVenueCache()
        elif settings.cache_backend == "redis":
            logger.info(
                f"[Container] Connecting to Redis at {settings.redis_address}"
            )
            self.redis_client = GeoRedisClient.from_settings(
                host=settings.redis_host,
                port=settings.redis_port,
                password=settings.redis_password,
                db=settings.redis_db,
            )
            self.venue_cache = RedisVenueCache(self.redis_client)
        else:
            raise ValueError(f"Unknown cache_backend: {settings.cache_backend!r}")

        # Initialize Overpass API client
        self.overpass_api = OverpassAPIClient(
            endpoint=settings.overpass_endpoint,
            query_timeout_seconds=settings.overpass_query_timeout_seconds,
            max_retries=settings.overpass_max_retries,
            backoff_seconds=settings.overpass_backoff_seconds,
            http_timeout_seconds=settings.overpass_http_timeout_seconds,
        )

        # Initialize rate limiter
        self.rate_limiter: Optional[FixedWindowRateLimiter] = None
        if settings.rate_limit_enabled:
            self.rate_limiter = FixedWindowRateLimiter(
                window_ms=settings.rate_limit_window_ms,
                max_requests=settings.rate_limit_max_requests,
            )
            logger.info(
                f"[Container] Rate limiting enabled: {settings.rate_limit_max_requests} "
                f"requests per {settings.rate_limit_window_ms}ms"
            )
        else:
            logger.warning("[Container] Rate limiting disabled")

        # Initialize handlers
        self.bars_handler = NearbyBarsHandler(
            overpass_client=self.overpass_api,
            venue_cache=self.venue_cache,
            rate_limiter=self.rate_limiter,
            radius_min=settings.radius_min_meters,
            radius_max=settings.radius_max_meters,
            radius_default=settings.radius_default_meters,
        )

        logger.info("[Container] Container initialized successfully")

    async def shutdown(self):
        """Clean up resources on shutdown."""
        logger.info("[Container] Shutting down container")
        try:
            await self.overpass_api.close()
            logger.info("[Container] Overpass API client closed")
        except Exception as e:
            logger.error(f"[Container] Error closing Overpass API client: {e}")

        if self.rate_limiter:
            self.rate_limiter.reset()

        if self.redis_client:
            try:
                self.redis_client.close()
                logger.info("[Container] Redis connection closed")
            except Exception as e:
                logger.error(f"[Container] Error closing Redis connection: {e}")
