"""Data access package."""
from nearby_bars.dao.venue_cache import VenueCache, RedisVenueCache, InMemoryVenueCache

__all__ = ["VenueCache", "RedisVenueCache", "InMemoryVenueCache"]
