"""Unit tests for mapping Overpass elements onto venues."""
import pytest

from nearby_bars.models import OverpassElement, VenueCategory
from nearby_bars.services import normalize_element, normalize_elements
from nearby_bars.services.venue_normalizer import build_address, first_tag, map_category

QUERY_LAT = 45.0
QUERY_LON = -93.0


def node(osm_id=1, lat=45.001, lon=-93.0, **tags) -> OverpassElement:
    return OverpassElement(type="node", id=osm_id, lat=lat, lon=lon, tags=tags)


class TestNormalizeElement:
    """Test single element normalization."""

    def test_node_is_normalized(self):
        element = node(
            osm_id=42,
            name="The Anchor",
            amenity="pub",
            opening_hours="Mo-Su 12:00-23:00",
            website="https://anchor.example",
            phone="+1 555 0100",
        )

        venue = normalize_element(element, QUERY_LAT, QUERY_LON)

        assert venue is not None
        assert venue.osm_id == 42
        assert venue.name == "The Anchor"
        assert venue.category == VenueCategory.PUB
        assert venue.latitude == 45.001
        assert venue.longitude == -93.0
        assert venue.opening_hours == "Mo-Su 12:00-23:00"
        assert venue.website == "https://anchor.example"
        assert venue.phone == "+1 555 0100"
        assert venue.distance == pytest.approx(111.19, abs=0.1)
        assert venue.footsteps == round(venue.distance / 0.762)

    def test_unnamed_element_is_discarded(self):
        assert normalize_element(node(amenity="bar"), QUERY_LAT, QUERY_LON) is None

    def test_empty_name_is_discarded(self):
        assert normalize_element(node(name="", amenity="bar"), QUERY_LAT, QUERY_LON) is None

    def test_way_uses_center(self):
        element = OverpassElement.model_validate({
            "type": "way",
            "id": 99,
            "center": {"lat": 45.01, "lon": -93.01},
            "tags": {"name": "Big Garden", "amenity": "biergarten"},
        })

        venue = normalize_element(element, QUERY_LAT, QUERY_LON)

        assert venue.latitude == 45.01
        assert venue.longitude == -93.01
        assert venue.category == VenueCategory.BEER_GARDEN

    def test_element_without_coordinates_is_discarded(self):
        element = OverpassElement(type="way", id=5, tags={"name": "Nowhere"})
        assert normalize_element(element, QUERY_LAT, QUERY_LON) is None

    def test_out_of_range_coordinates_are_discarded(self):
        element = node(lat=95.0, name="Bad Data")
        assert normalize_element(element, QUERY_LAT, QUERY_LON) is None

    def test_biergarten_maps_to_beer_garden(self):
        venue = normalize_element(node(name="G", amenity="biergarten"), QUERY_LAT, QUERY_LON)
        assert venue.category == "Beer Garden"

    def test_unknown_amenity_defaults_to_bar(self):
        venue = normalize_element(node(name="Hidden", amenity="speakeasy"), QUERY_LAT, QUERY_LON)
        assert venue.category == "Bar"

    def test_contact_fallback_keys(self):
        venue = normalize_element(
            node(
                name="Fallbacks",
                **{"contact:website": "https://fb.example", "phone:mobile": "+1 555 0199"},
            ),
            QUERY_LAT,
            QUERY_LON,
        )

        assert venue.website == "https://fb.example"
        assert venue.phone == "+1 555 0199"
        assert venue.opening_hours is None

    def test_phone_prefers_phone_over_contact_phone(self):
        venue = normalize_element(
            node(name="P", phone="111", **{"contact:phone": "222", "phone:mobile": "333"}),
            QUERY_LAT,
            QUERY_LON,
        )
        assert venue.phone == "111"


class TestMapCategory:
    @pytest.mark.parametrize(
        "amenity,expected",
        [
            ("bar", VenueCategory.BAR),
            ("pub", VenueCategory.PUB),
            ("nightclub", VenueCategory.NIGHTCLUB),
            ("biergarten", VenueCategory.BEER_GARDEN),
            ("speakeasy", VenueCategory.BAR),
            (None, VenueCategory.BAR),
        ],
    )
    def test_mapping(self, amenity, expected):
        assert map_category(amenity) == expected


class TestBuildAddress:
    """Test address assembly from addr:* tags."""

    def test_street_and_city(self):
        tags = {"addr:housenumber": "12", "addr:street": "Main St", "addr:city": "Springfield"}
        assert build_address(tags) == "12 Main St, Springfield"

    def test_full_address_wins(self):
        tags = {"addr:full": "1 Full Rd, Town", "addr:street": "Other St"}
        assert build_address(tags) == "1 Full Rd, Town"

    def test_all_components(self):
        tags = {
            "addr:housenumber": "5",
            "addr:street": "Elm St",
            "addr:city": "Shelbyville",
            "addr:state": "IL",
            "addr:postcode": "62565",
        }
        assert build_address(tags) == "5 Elm St, Shelbyville, IL, 62565"

    def test_street_without_housenumber(self):
        tags = {"addr:street": "Main St", "addr:postcode": "12345"}
        assert build_address(tags) == "Main St, 12345"

    def test_city_only(self):
        assert build_address({"addr:city": "Springfield"}) == "Springfield"

    def test_no_address_is_none(self):
        assert build_address({"name": "Bar"}) is None

    def test_empty_values_are_ignored(self):
        assert build_address({"addr:full": "", "addr:city": ""}) is None


class TestFirstTag:
    def test_first_non_empty_wins(self):
        tags = {"website": "", "contact:website": "https://b.example"}
        assert first_tag(tags, "website", "contact:website") == "https://b.example"

    def test_missing_is_none(self):
        assert first_tag({}, "website") is None


class TestNormalizeElements:
    """Test batch normalization and deduplication."""

    def test_discards_and_deduplicates(self):
        elements = [
            node(osm_id=1, name="A"),
            node(osm_id=2),  # unnamed
            node(osm_id=1, name="A again"),
            node(osm_id=3, name="C", lat=45.01),
        ]

        venues = normalize_elements(elements, QUERY_LAT, QUERY_LON)

        assert [v.osm_id for v in venues] == [1, 3]
        assert venues[0].name == "A"

    def test_empty_input(self):
        assert normalize_elements([], QUERY_LAT, QUERY_LON) == []
