"""Tests for CLI helpers."""

import argparse

import pytest

from crm_sync.cli.main import build_query, build_settings, parse_filters
from crm_sync.models import FilterKey
from crm_sync.sync import CollectionEngine


class TestParseFilters:
    """Tests for --filter parsing."""

    def test_pairs(self):
        """Test key=value pairs."""
        assert parse_filters(["owner_id=u7", " area_id = a1 "]) == {"owner_id": "u7", "area_id": "a1"}

    def test_none(self):
        """Test no filters."""
        assert parse_filters(None) == {}

    def test_invalid(self):
        """Test a pair without "="."""
        with pytest.raises(ValueError, match="expected key=value"):
            parse_filters(["owner_id"])


class TestBuildSettings:
    """Tests for settings overrides."""

    def test_overrides(self):
        """Test that given options override defaults."""
        args = argparse.Namespace(base_url="http://crm.test/api", token=None, timeout=None, limit=50)
        settings = build_settings(args)

        assert settings.base_url == "http://crm.test/api"
        assert settings.timeout == 30
        assert settings.page_size == 50
        assert "page_size" in settings.model_fields_set

    def test_defaults(self):
        """Test that missing options keep defaults."""
        args = argparse.Namespace(base_url=None, token=None, timeout=None)
        settings = build_settings(args)

        assert settings.page_size == 20
        assert "page_size" not in settings.model_fields_set


class TestBuildQuery:
    """Tests for composing the CLI query."""

    def test_search_filters_page(self, transport):
        """Test that --page applies after search and filters."""
        engine = CollectionEngine("inquiries", transport)
        args = argparse.Namespace(search=" acme ", filter=["owner_id=u7", "area_id=all"], page=3)

        query = build_query(engine, args)

        assert query.page == 3
        assert query.search_term == "acme"
        assert query.filters == {FilterKey.OWNER_ID: "u7"}
