"""Tests for reference data loading and area search."""

import asyncio

from crm_sync.errors import NetworkFailure
from crm_sync.models import Area
from crm_sync.settings import SyncSettings
from crm_sync.sync.reference import ReferenceData, filter_areas

AREAS = [
    {"_id": "a1", "name": "Kothrud", "city": "Pune", "state": "Maharashtra", "isActive": True},
    {"_id": "a2", "name": "Andheri", "city": "Mumbai", "state": "Maharashtra", "isActive": True},
    {"_id": "a3", "name": "Old Town", "city": "Pune", "state": "Maharashtra", "isActive": False},
]


class TestFilterAreas:
    """Tests for local area matching."""

    def test_matches_name_city_state(self):
        """Test case-insensitive matching on name, city and state."""
        areas = [Area.model_validate(a) for a in AREAS]

        assert [a.id for a in filter_areas(areas, "pune")] == ["a1"]
        assert [a.id for a in filter_areas(areas, "ANDH")] == ["a2"]
        assert [a.id for a in filter_areas(areas, "maha")] == ["a1", "a2"]

    def test_inactive_excluded(self):
        """Test that inactive areas never match."""
        areas = [Area.model_validate(a) for a in AREAS]
        assert [a.id for a in filter_areas(areas, "")] == ["a1", "a2"]


class TestReferenceData:
    """Tests for ReferenceData."""

    def test_load(self, transport):
        """Test loading areas and salesmen."""
        transport.route("GET", "areas", {"areas": AREAS})
        transport.route("GET", "users", {"users": [{"_id": "u7", "name": "Ravi", "role": "salesman"}]})
        reference = ReferenceData(transport)

        asyncio.run(reference.load())

        assert [a.id for a in reference.areas] == ["a1", "a2", "a3"]
        assert reference.salesmen[0].name == "Ravi"
        assert transport.calls_to("GET", "areas")[0][2] == {"limit": 1000, "isActive": "true"}
        assert transport.calls_to("GET", "users")[0][2] == {"limit": 1000, "role": "salesman"}

    def test_load_failure(self, transport):
        """Test that a failed list leaves it empty with an error."""
        transport.route("GET", "areas", NetworkFailure("offline"))
        transport.route("GET", "users", [])
        reference = ReferenceData(transport)

        asyncio.run(reference.load())

        assert reference.areas == []
        assert reference.error.kind == "network"

    def test_debounced_area_search(self, transport, clock):
        """Test that the area picker filters after the short debounce."""
        transport.route("GET", "areas", {"areas": AREAS})
        transport.route("GET", "users", {"users": []})
        reference = ReferenceData.from_settings(
            transport, SyncSettings(reference_limit=500), call_later=clock.call_later
        )
        asyncio.run(reference.load())

        reference.area_search.submit("p")
        reference.area_search.submit("pune")
        clock.advance(0.25)
        assert len(reference.filtered_areas()) == 2

        clock.advance(0.125)
        assert reference.area_term == "pune"
        assert [a.id for a in reference.filtered_areas()] == ["a1"]
        assert transport.calls_to("GET", "areas")[0][2]["limit"] == 500

    def test_salesmen_by_city(self, transport):
        """Test fetching salesmen for a city."""
        transport.route("GET", "clients/salesmen/by-city", [{"_id": "u7", "name": "Ravi", "city": "Pune"}])
        reference = ReferenceData(transport)

        salesmen = asyncio.run(reference.salesmen_by_city("Pune"))

        assert [s.id for s in salesmen] == ["u7"]
        assert transport.calls[0][2] == {"city": "Pune"}

    def test_areas_for_salesman(self, transport):
        """Test fetching the areas of the salesman's city."""
        transport.route("GET", "clients/salesman/areas", {"areas": AREAS[:2], "salesmanArea": "a1"})
        reference = ReferenceData(transport)

        areas = asyncio.run(reference.areas_for_salesman())

        assert [a.id for a in areas] == ["a1", "a2"]
        assert reference.salesman_area == "a1"
        assert transport.calls == [("GET", "clients/salesman/areas", None)]

    def test_areas_for_salesman_failure(self, transport):
        """Test that a failed salesman-areas fetch returns nothing and records the error."""
        transport.route("GET", "clients/salesman/areas", NetworkFailure("offline"))
        reference = ReferenceData(transport)

        assert asyncio.run(reference.areas_for_salesman()) == []
        assert reference.error.kind == "network"
        assert reference.salesman_area is None

    def test_close(self, transport, clock):
        """Test that close drops a pending area search."""
        reference = ReferenceData(transport, call_later=clock.call_later)
        reference.area_search.submit("pune")
        reference.close()
        clock.advance(1)
        assert reference.area_term == ""
