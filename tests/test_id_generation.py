"""
Tests for ID Generation and Validation

Restaurant IDs are deterministic so re-ingesting a place never duplicates
it in the catalog. Poll and voter IDs are random tokens.
"""

import re

import pytest
from database.id_generation import (
    generate_poll_id,
    generate_poll_slug,
    generate_restaurant_id,
    generate_voter_id,
    slugify,
    validate_poll_id,
)
from exceptions import ValidationError


class TestRestaurantId:
    """Deterministic restaurant IDs with place_id -> name+location fallback"""

    def test_place_id_generates_consistent_id(self):
        id1 = generate_restaurant_id(place_id="ChIJN1t_tDeuEmsRUsoyG83frY4")
        id2 = generate_restaurant_id(place_id="ChIJN1t_tDeuEmsRUsoyG83frY4")
        assert id1 == id2

    def test_format(self):
        restaurant_id = generate_restaurant_id(place_id="ChIJabc")
        assert re.fullmatch(r"rst_[0-9a-f]{16}", restaurant_id)

    def test_place_id_preferred_over_name(self):
        """Renamed restaurants keep their ID"""
        id1 = generate_restaurant_id(place_id="ChIJabc", name="Old Name")
        id2 = generate_restaurant_id(place_id="ChIJabc", name="New Name")
        assert id1 == id2

    def test_name_fallback_normalizes_case_and_whitespace(self):
        id1 = generate_restaurant_id(name="Tartine  Bakery", location="600 Guerrero St")
        id2 = generate_restaurant_id(name="tartine bakery", location=" 600 guerrero st ")
        assert id1 == id2

    def test_same_name_different_location(self):
        """Chains at different addresses are different restaurants"""
        id1 = generate_restaurant_id(name="Blue Bottle", location="San Francisco, CA")
        id2 = generate_restaurant_id(name="Blue Bottle", location="Oakland, CA")
        assert id1 != id2

    def test_place_id_and_name_keys_do_not_collide(self):
        assert generate_restaurant_id(place_id="Zuni") != generate_restaurant_id(name="Zuni")

    def test_requires_place_id_or_name(self):
        with pytest.raises(ValueError):
            generate_restaurant_id()
        with pytest.raises(ValueError):
            generate_restaurant_id(place_id="  ", name="")


class TestRandomIds:
    """Poll and voter IDs"""

    def test_poll_id_format(self):
        poll_id = generate_poll_id()
        assert re.fullmatch(r"poll_[0-9a-f]{16}", poll_id)
        assert validate_poll_id(poll_id)

    def test_poll_ids_are_unique(self):
        assert len({generate_poll_id() for _ in range(100)}) == 100

    def test_voter_id_format(self):
        assert re.fullmatch(r"voter_[0-9a-f]{32}", generate_voter_id())

    def test_voter_ids_are_unique(self):
        assert generate_voter_id() != generate_voter_id()


class TestValidatePollId:

    @pytest.mark.parametrize("poll_id", [
        "",
        "poll_123",
        "poll_0123456789ABCDEF",
        "0123456789abcdef",
        "poll_0123456789abcdef0",
        "rst_0123456789abcdef",
    ])
    def test_rejects_malformed(self, poll_id):
        assert not validate_poll_id(poll_id)


class TestSlugs:

    def test_slugify(self):
        assert slugify("San Francisco, CA") == "san-francisco-ca"
        assert slugify("  --Café & Bar--  ") == "caf-bar"

    def test_poll_slug_with_year(self):
        assert generate_poll_slug("New York, NY", year=2024) == "new-york-ny-restaurants-2024"

    def test_poll_slug_defaults_to_current_year(self):
        assert re.fullmatch(r"chicago-il-restaurants-\d{4}", generate_poll_slug("Chicago, IL"))

    def test_poll_slug_requires_location(self):
        with pytest.raises(ValidationError) as exc:
            generate_poll_slug("!!!")
        assert exc.value.field == "location"
