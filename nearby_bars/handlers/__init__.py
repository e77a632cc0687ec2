"""Handlers package."""
from nearby_bars.handlers.bars_handler import NearbyBarsHandler

__all__ = ["NearbyBarsHandler"]
