"""Database clients package."""
from nearby_bars.db.geo_redis_client import GeoRedisClient

__all__ = ["GeoRedisClient"]
