"""
Tests for property filters.
"""

from datetime import datetime, timedelta, timezone

import pytest

from azure_reaper.core.exceptions import ConfigurationError
from azure_reaper.core.filters import (
    GLOBAL_KEY,
    Filter,
    Filters,
    FilterType,
    parse_duration,
    parse_timestamp,
)


class TestFilterType:
    """Tests for FilterType.parse."""

    def test_default_is_exact(self):
        assert FilterType.parse(None) is FilterType.EXACT

    def test_case_insensitive(self):
        assert FilterType.parse("notin") is FilterType.NOT_IN
        assert FilterType.parse("DateOlderThan") is FilterType.DATE_OLDER_THAN

    def test_unknown(self):
        with pytest.raises(ConfigurationError, match="unknown filter type"):
            FilterType.parse("fuzzy")


class TestParsing:
    """Tests for duration and timestamp parsing."""

    def test_durations(self):
        assert parse_duration("30m") == timedelta(minutes=30)
        assert parse_duration("24h") == timedelta(hours=24)
        assert parse_duration("7d") == timedelta(days=7)
        assert parse_duration("2w") == timedelta(weeks=2)
        assert parse_duration("90") == timedelta(seconds=90)
        assert parse_duration(60) == timedelta(seconds=60)

    def test_invalid_duration(self):
        with pytest.raises(ConfigurationError):
            parse_duration("soon")

    def test_timestamps(self):
        assert parse_timestamp("2024-01-15T10:30:00Z") == datetime(
            2024, 1, 15, 10, 30, tzinfo=timezone.utc
        )
        assert parse_timestamp("0") == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None


class TestFilter:
    """Tests for Filter."""

    def test_exact(self):
        f = Filter(property="Name", value="keep")
        assert f.matches({"Name": "keep"})
        assert not f.matches({"Name": "keeper"})

    def test_missing_property_is_empty(self):
        assert Filter(property="tag:env", value="").matches({"Name": "x"})

    def test_glob(self):
        f = Filter(property="Name", value="prod-*", type=FilterType.GLOB)
        assert f.matches({"Name": "prod-db"})
        assert not f.matches({"Name": "dev-db"})

    def test_regex_searches(self):
        f = Filter(property="Name", value=r"\d{3}$", type=FilterType.REGEX)
        assert f.matches({"Name": "vm-123"})
        assert not f.matches({"Name": "vm-12a"})

    def test_invalid_regex(self):
        with pytest.raises(ConfigurationError, match="invalid regex"):
            Filter(property="Name", value="(", type=FilterType.REGEX)

    def test_contains(self):
        assert Filter("Name", "db", FilterType.CONTAINS).matches({"Name": "my-db-1"})

    def test_in_and_not_in(self):
        in_filter = Filter("Region", ("eastus", "global"), FilterType.IN)
        not_in_filter = Filter("Region", ("eastus", "global"), FilterType.NOT_IN)

        assert in_filter.matches({"Region": "eastus"})
        assert not not_in_filter.matches({"Region": "eastus"})
        assert not_in_filter.matches({"Region": "westus"})

    def test_date_older_than(self):
        old = (datetime.now(timezone.utc) - timedelta(days=10)).isoformat()
        new = datetime.now(timezone.utc).isoformat()
        f = Filter("CreationTime", "7d", FilterType.DATE_OLDER_THAN)

        assert f.matches({"CreationTime": old})
        assert not f.matches({"CreationTime": new})
        assert not f.matches({"CreationTime": "not a date"})

    def test_invert(self):
        f = Filter("tag:keep", "true", invert=True)
        assert f.matches({"tag:keep": "false"})
        assert not f.matches({"tag:keep": "true"})

    def test_from_config_string(self):
        assert Filter.from_config("my-vm") == Filter(property="Name", value="my-vm")

    def test_from_config_mapping(self):
        f = Filter.from_config({"property": "Region", "type": "In", "value": ["eastus", 1]})
        assert f == Filter("Region", ("eastus", "1"), FilterType.IN)

    def test_from_config_bool_value(self):
        f = Filter.from_config({"property": "tag:keep", "value": True, "invert": True})
        assert f.value == "true"
        assert f.invert

    def test_from_config_missing_keys(self):
        with pytest.raises(ConfigurationError):
            Filter.from_config({"property": "Name"})
        with pytest.raises(ConfigurationError):
            Filter.from_config(42)

    def test_repr(self):
        assert repr(Filter("Name", "keep")) == "Filter(property='Name', type='exact', value='keep')"


class TestFilters:
    """Tests for Filters."""

    def test_from_mapping(self):
        filters = Filters.from_mapping({
            "VirtualMachine": ["keep-me", {"property": "tag:env", "value": "prod"}],
            "Disk": "keep-disk",
            "Snapshot": None,
        })

        assert len(filters) == 3
        assert filters.keys() == ["VirtualMachine", "Disk"]
        assert filters.get("Disk") == [Filter("Name", "keep-disk")]

    def test_match_includes_global(self):
        """Test global filters apply to every type."""
        filters = Filters()
        filters.add("VirtualMachine", Filter("Name", "keep"))
        filters.add(GLOBAL_KEY, Filter("Region", ("eastus",), FilterType.NOT_IN))

        assert filters.match("VirtualMachine", {"Name": "keep", "Region": "eastus"}) == Filter("Name", "keep")
        assert filters.match("Disk", {"Name": "d", "Region": "westus"}).property == "Region"
        assert filters.match("Disk", {"Name": "d", "Region": "eastus"}) is None

    def test_merge_returns_new_set(self):
        a = Filters({"Disk": [Filter("Name", "a")]})
        b = Filters({"Disk": [Filter("Name", "b")]})

        merged = a.merge(b)

        assert len(merged) == 2
        assert len(a) == 1

    def test_rename(self):
        filters = Filters({"Disks": [Filter("Name", "a")]})
        filters.add("Disk", Filter("Name", "b"))

        filters.rename("Disks", "Disk")

        assert filters.keys() == ["Disk"]
        assert len(filters.get("Disk")) == 2
