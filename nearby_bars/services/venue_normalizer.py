"""Map raw Overpass elements onto the canonical venue shape."""
import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from nearby_bars.models import NearbyVenue, OverpassElement, Venue, VenueCategory

logger = logging.getLogger(__name__)

CATEGORY_BY_AMENITY = {
    "bar": VenueCategory.BAR,
    "pub": VenueCategory.PUB,
    "nightclub": VenueCategory.NIGHTCLUB,
    "biergarten": VenueCategory.BEER_GARDEN,
}

# Candidate tag keys per field, most specific first
OPENING_HOURS_TAGS = ("opening_hours",)
WEBSITE_TAGS = ("website", "contact:website")
PHONE_TAGS = ("phone", "contact:phone", "phone:mobile")

FULL_ADDRESS_TAG = "addr:full"
HOUSENUMBER_TAG = "addr:housenumber"
STREET_TAG = "addr:street"
CITY_TAG = "addr:city"
STATE_TAG = "addr:state"
POSTCODE_TAG = "addr:postcode"


def first_tag(tags: dict[str, str], *keys: str) -> Optional[str]:
    """Return the first non-empty value among ``keys``, or None."""
    return next((tags[key] for key in keys if tags.get(key)), None)


def map_category(amenity: Optional[str]) -> VenueCategory:
    """Unknown or missing amenity values fall back to Bar."""
    return CATEGORY_BY_AMENITY.get(amenity or "", VenueCategory.BAR)


def build_address(tags: dict[str, str]) -> Optional[str]:
    """Assemble a display address from OSM ``addr:*`` tags.

    ``addr:full`` wins when present. Otherwise "housenumber street" is
    joined with city, state and postcode by ", ", skipping empty parts.
    """
    full_address = first_tag(tags, FULL_ADDRESS_TAG)
    if full_address:
        return full_address

    street_line = " ".join(
        part for part in (first_tag(tags, HOUSENUMBER_TAG), first_tag(tags, STREET_TAG)) if part
    )
    parts = [
        street_line,
        first_tag(tags, CITY_TAG),
        first_tag(tags, STATE_TAG),
        first_tag(tags, POSTCODE_TAG),
    ]
    address = ", ".join(part for part in parts if part)
    return address or None


def normalize_element(
    element: OverpassElement, latitude: float, longitude: float
) -> Optional[NearbyVenue]:
    """Convert one Overpass element into a venue relative to the query point.

    Returns None for unnamed elements and for elements without usable
    coordinates.
    """
    tags = element.tags
    name = first_tag(tags, "name")
    if not name:
        return None

    coordinates = element.coordinates()
    if coordinates is None:
        logger.debug(f"[VenueNormalizer] Discarding {element.type}/{element.id}: no coordinates")
        return None

    lat, lon = coordinates
    try:
        venue = Venue(
            osm_id=element.id,
            name=name,
            category=map_category(tags.get("amenity")),
            latitude=lat,
            longitude=lon,
            address=build_address(tags),
            opening_hours=first_tag(tags, *OPENING_HOURS_TAGS),
            website=first_tag(tags, *WEBSITE_TAGS),
            phone=first_tag(tags, *PHONE_TAGS),
        )
    except PydanticValidationError as e:
        logger.debug(f"[VenueNormalizer] Discarding {element.type}/{element.id}: {e}")
        return None

    return venue.with_distance_from(latitude, longitude)


def normalize_elements(
    elements: list[OverpassElement], latitude: float, longitude: float
) -> list[NearbyVenue]:
    """Normalize a batch, dropping discarded elements and duplicate OSM ids.

    The first occurrence of an id wins.
    """
    venues: list[NearbyVenue] = []
    seen_ids: set[int] = set()
    discarded = 0

    for element in elements:
        venue = normalize_element(element, latitude, longitude)
        if venue is None:
            discarded += 1
            continue
        if venue.osm_id in seen_ids:
            continue
        seen_ids.add(venue.osm_id)
        venues.append(venue)

    logger.info(
        f"[VenueNormalizer] Normalized {len(venues)} venues "
        f"({discarded} discarded, {len(elements) - len(venues) - discarded} duplicates)"
    )
    return venues
