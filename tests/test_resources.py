"""
Unit tests for resource type / space-time lookups.
"""

import logging

import h3
import pytest

from aggregation import ResourceIndex, group_by_space_time, space_time_signature, time_signature
from models import AvailabilityWindow, DaySchedule, MonthSchedule, TimeRange
from spatial import CellId


@pytest.fixture
def weekly(make_window):
    return make_window(("monday", "09:00", "12:00"), ("friday", "09:00", "12:00"))


@pytest.fixture
def resources(make_resource, weekly):
    berlin = dict(city="Berlin", country="DE", availability_window=weekly)
    return [
        make_resource(id="tutor_a", type_id="tutoring", quantity=5, latitude=52.520, longitude=13.401, **berlin),
        make_resource(id="tutor_b", type_id="tutoring", quantity=3, latitude=52.521, longitude=13.404, **berlin),
        make_resource(id="tutor_munich", type_id="tutoring", quantity=2, latitude=48.137, longitude=11.575,
                      city="Munich", country="DE", availability_window=weekly),
        make_resource(id="van", type_id="transport", quantity=1, latitude=52.52, longitude=13.40,
                      city="Berlin", country="DE"),
        make_resource(id="tutor_online", type_id="tutoring", quantity=4, location_type="Remote",
                      availability_window=weekly),
    ]


@pytest.fixture
def index(resources):
    return ResourceIndex.build(resources)


def ids(items):
    return [r.id for r in items]


class TestSignatures:
    def test_unconstrained(self):
        assert time_signature(None) == "anytime"
        assert time_signature(AvailabilityWindow()) == "anytime"

    def test_weekdays_sorted(self, make_window):
        window = make_window(("friday", "09:00", "10:00"), ("monday", "09:00", "10:00"))
        assert time_signature(window, "Europe/Berlin") == "all-months|all-weeks|monday,friday@Europe/Berlin"

    def test_months(self):
        tuesday = DaySchedule(days=["tuesday"], time_ranges=[TimeRange(start_time="10:00", end_time="11:00")])
        window = AvailabilityWindow(month_schedules=[
            MonthSchedule(month=3, day_schedules=[tuesday]),
            MonthSchedule(month=1, day_schedules=[tuesday]),
        ])
        assert time_signature(window) == "1,3|all-weeks|tuesday@UTC"

    def test_space_time(self, resources):
        assert space_time_signature(resources[0]) == "all-months|all-weeks|monday,friday@UTC::Berlin|DE|52.52,13.40"
        assert space_time_signature(resources[0]) == space_time_signature(resources[1])
        assert space_time_signature(resources[4]).endswith("::remote")

    def test_no_location(self, make_resource):
        assert space_time_signature(make_resource(id="x")) == "anytime::any|any|any"


class TestGrouping:
    def test_group_by_space_time(self, resources):
        groups = group_by_space_time(resources)
        assert len(groups) == 4
        berlin = groups[space_time_signature(resources[0])]
        assert berlin.quantity == 8
        assert ids(berlin.resources) == ["tutor_a", "tutor_b"]

    def test_empty(self):
        assert group_by_space_time([]) == {}


class TestResourceIndex:
    def test_by_type(self, index):
        assert ids(index.by_type("tutoring")) == ["tutor_a", "tutor_b", "tutor_munich", "tutor_online"]
        assert ids(index.by_type("transport")) == ["van"]
        assert index.by_type("plumbing") == []

    def test_by_signature(self, index, resources):
        assert ids(index.by_signature(space_time_signature(resources[3]))) == ["van"]

    def test_by_type_and_location(self, index):
        assert ids(index.by_type_and_location("tutoring", city="Berlin")) == ["tutor_a", "tutor_b"]
        assert index.by_type_and_location("transport", city="Munich") == []

    def test_by_location(self, index):
        assert ids(index.by_location(country="DE")) == ["tutor_a", "tutor_b", "tutor_munich", "van"]

    def test_by_ancestor_cell(self, index):
        district = h3.cell_to_parent(index.spatial.item_cells["tutor_a"].cell, 5)
        found = ids(index.by_type_and_location("tutoring", h3_index=district))
        assert "tutor_a" in found
        assert "tutor_munich" not in found
        assert "tutor_online" not in found

    def test_remote_token(self, index):
        assert ids(index.by_location(h3_index="remote")) == ["tutor_online"]

    def test_invalid_cell_matches_nothing(self, index):
        assert index.by_location(h3_index="not-a-cell") == []

    def test_by_hex(self, index):
        assert index.by_hex(CellId.remote()).stats.count == 1
        assert "van" in index.by_hex(index.spatial.item_cells["van"]).items

    def test_duplicate_skipped(self, resources, caplog):
        with caplog.at_level(logging.WARNING):
            index = ResourceIndex.build(resources + [resources[0]])
        assert len(index.resources) == 5
        assert ids(index.by_type("tutoring")).count("tutor_a") == 1
        assert "already indexed" in caplog.text
