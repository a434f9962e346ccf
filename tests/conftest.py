"""
Pytest configuration and shared fixtures for the Feasibility Matcher tests.
"""

import sys
from pathlib import Path

import pytest

# Flat layout: make the top-level packages importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import AvailabilityWindow, DaySchedule, Resource, TimeRange


@pytest.fixture
def make_window():
    """make_window(("monday", "09:00", "12:00"), ...) -> AvailabilityWindow"""
    def _make(*specs):
        return AvailabilityWindow(day_schedules=[
            DaySchedule(days=[day], time_ranges=[TimeRange(start_time=start, end_time=end)])
            for day, start, end in specs
        ])
    return _make


@pytest.fixture
def make_resource():
    def _make(id="res", quantity=10, **kwargs):
        return Resource(id=id, quantity=quantity, **kwargs)
    return _make


@pytest.fixture
def berlin_need(make_window):
    """The reference need: 10h of help on Monday morning in central Berlin."""
    return Resource(
        id="need_berlin",
        quantity=10,
        unit="hr",
        availability_window=make_window(("monday", "09:00", "12:00")),
        min_atomic_size=60,
        latitude=52.52,
        longitude=13.40,
        search_radius_km=50,
    )


@pytest.fixture
def berlin_capacity(make_window):
    return Resource(
        id="cap_berlin",
        quantity=10,
        availability_window=make_window(("monday", "10:00", "11:00")),
        latitude=52.50,
        longitude=13.38,
    )


@pytest.fixture
def far_capacity(make_window):
    return Resource(
        id="cap_far",
        quantity=10,
        availability_window=make_window(("monday", "10:00", "11:00")),
        latitude=60.0,
        longitude=20.0,
    )


@pytest.fixture
def remote_capacity(make_window):
    return Resource(
        id="cap_remote",
        quantity=10,
        availability_window=make_window(("monday", "09:00", "12:00")),
        location_type="Remote",
        online_link="https://meet.example.org/room",
    )
