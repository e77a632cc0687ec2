"""Overpass API response models."""
from typing import Any, Optional

from pydantic import BaseModel, Field


class OverpassCenter(BaseModel):
    """Precomputed centroid returned for ways with ``out center``."""
    lat: float
    lon: float


class OverpassElement(BaseModel):
    """Single node or way from an Overpass ``elements`` array.

    Nodes carry ``lat``/``lon``; ways carry ``center`` instead.
    """
    type: str = "node"
    id: int
    lat: Optional[float] = None
    lon: Optional[float] = None
    center: Optional[OverpassCenter] = None
    tags: dict[str, str] = Field(default_factory=dict)

    def coordinates(self) -> Optional[tuple[float, float]]:
        """Return (lat, lon) from the point geometry or the way centroid."""
        if self.lat is not None and self.lon is not None:
            return self.lat, self.lon
        if self.center is not None:
            return self.center.lat, self.center.lon
        return None


class OverpassResponse(BaseModel):
    """Top-level Overpass JSON response.

    Elements stay raw so one malformed record does not reject the whole batch.
    """
    version: Optional[float] = None
    generator: Optional[str] = None
    elements: list[dict[str, Any]] = Field(default_factory=list)
