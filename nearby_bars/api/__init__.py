"""API clients package."""
from nearby_bars.api.overpass_client import OverpassAPIClient, build_query

__all__ = ["OverpassAPIClient", "build_query"]
