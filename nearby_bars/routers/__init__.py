"""Routers package."""
from nearby_bars.routers.bars_router import router as bars_router, set_bars_handler

__all__ = ["bars_router", "set_bars_handler"]
