"""
Unit tests for the hierarchical hex index.
"""

import logging

import h3
import pytest

from models import DayOfWeek, IndexConfig
from spatial import ANY_TIME, CellId, HexIndex


@pytest.fixture
def population(berlin_capacity, far_capacity, remote_capacity, make_resource, make_window):
    potsdam = make_resource(
        id="cap_potsdam", quantity=3, latitude=52.39, longitude=13.06,
        availability_window=make_window(("tuesday", "09:00", "10:00"))
    )
    anytime = make_resource(id="cap_anytime", quantity=1, latitude=52.53, longitude=13.41)
    return [berlin_capacity, far_capacity, remote_capacity, potsdam, anytime]


@pytest.fixture
def index(population):
    return HexIndex.build(population, IndexConfig())


class TestBuild:
    def test_counts(self, index):
        assert len(index) == 5
        assert index.remote.stats.count == 1
        assert index.item_cells["cap_remote"].is_remote

    def test_leaf_resolution(self, index):
        cell = index.item_cells["cap_berlin"]
        assert cell.resolution == 9
        assert index.node(cell).items == ["cap_berlin"]

    def test_rolls_up_to_root(self, index):
        cell = index.item_cells["cap_berlin"]
        resolutions = []
        node = index.node(cell)
        while node is not None:
            resolutions.append(node.resolution)
            node = index.parent(CellId.geo(node.cell))
        assert resolutions == list(range(9, -1, -1))

    def test_parent_links_children(self, index):
        cell = index.item_cells["cap_berlin"]
        parent = index.parent(cell)
        assert cell.cell in parent.children
        assert [n.cell for n in index.children(CellId.geo(parent.cell))] == sorted(parent.children)

    def test_stats_aggregate(self, index, population):
        berlin = index.item_cells["cap_berlin"]
        target = h3.cell_to_parent(berlin.cell, 3)
        members = [
            item for item in population
            if not index.item_cells[item.id].is_remote
            and h3.cell_to_parent(index.item_cells[item.id].cell, 3) == target
        ]
        node = index.node(CellId.geo(target))
        assert node.stats.count == len(members)
        assert node.stats.sum_quantity == pytest.approx(sum(i.quantity for i in members))
        expected_hours = sum(i.availability_window.weekly_minutes() / 60 for i in members if i.availability_window)
        assert node.stats.sum_hours == pytest.approx(expected_hours)

    def test_items_as_dicts(self):
        index = HexIndex.build([{"id": "a", "latitude": 52.5, "longitude": 13.4, "quantity": 2}])
        assert index.node(index.item_cells["a"]).stats.sum_quantity == 2

    def test_requires_id(self):
        with pytest.raises(ValueError):
            HexIndex().add({"latitude": 1.0, "longitude": 1.0})

    def test_duplicate_is_skipped(self, index, berlin_capacity, caplog):
        with caplog.at_level(logging.WARNING):
            cell = index.add(berlin_capacity)
        assert cell == index.item_cells["cap_berlin"]
        assert len(index) == 5
        assert "already indexed" in caplog.text

    def test_missing_location_goes_remote(self, caplog):
        with caplog.at_level(logging.WARNING):
            index = HexIndex.build([{"id": "nowhere", "location_type": "In person"}])
        assert index.item_cells["nowhere"].is_remote
        assert index.remote.items == ["nowhere"]

    def test_stored_coarse_index_moves_to_leaf(self):
        coarse = h3.latlng_to_cell(52.52, 13.40, 5)
        index = HexIndex.build([{"id": "coarse", "h3_index": coarse}])
        cell = index.item_cells["coarse"]
        assert cell.resolution == 9
        assert h3.cell_to_parent(cell.cell, 5) == coarse
        assert index.items_in_cell(CellId.geo(coarse))[0]["id"] == "coarse"


class TestTemporalBuckets:
    def test_items_on_day(self, make_resource, make_window):
        index = HexIndex.build([
            make_resource(id="mon", latitude=52.5, longitude=13.4,
                          availability_window=make_window(("monday", "09:00", "10:00"))),
            make_resource(id="tue", latitude=52.5, longitude=13.4,
                          availability_window=make_window(("tuesday", "09:00", "10:00"))),
            make_resource(id="any", latitude=52.5, longitude=13.4),
        ])
        cell = index.item_cells["mon"]
        assert index.item_cells["tue"] == cell
        monday = {i.id for i in index.items_on_day(cell, DayOfWeek.MONDAY)}
        tuesday = {i.id for i in index.items_on_day(cell, DayOfWeek.TUESDAY)}
        assert monday == {"mon", "any"}
        assert tuesday == {"tue", "any"}
        assert index.items_on_day(cell, DayOfWeek.SUNDAY) == [index.items["any"]]

    def test_any_time_bucket(self, index):
        node = index.node(index.item_cells["cap_anytime"])
        assert node.days[ANY_TIME] == ["cap_anytime"]

    def test_unknown_cell(self, index):
        assert index.items_on_day(CellId.geo(h3.latlng_to_cell(0, 0, 9)), DayOfWeek.MONDAY) == []
        assert index.items_in_cell(CellId.geo(h3.latlng_to_cell(0, 0, 9))) == []


class TestCandidates:
    def test_radius_query(self, index, berlin_need):
        ids = {c.id for c in index.candidates(berlin_need, 50)}
        assert {"cap_berlin", "cap_potsdam", "cap_anytime", "cap_remote"} <= ids
        assert "cap_far" not in ids

    def test_remote_items_always_included(self, index, berlin_need):
        ids = {c.id for c in index.candidates(berlin_need, 0.5)}
        assert "cap_remote" in ids

    def test_remote_center_returns_everything(self, index):
        assert len(index.candidates(CellId.remote(), 1)) == 5

    def test_query_resolution_bounded(self, index):
        res = index.query_resolution(50)
        assert index.grid.grid_rings_for_radius(50, res) <= index.config.max_query_rings
        assert index.query_resolution(0.1) == index.config.leaf_resolution
        assert index.query_resolution(100000) == index.config.root_resolution

    def test_default_radius(self, index, berlin_need):
        assert {c.id for c in index.candidates(berlin_need)} == {c.id for c in index.candidates(berlin_need, 50)}


class TestRebuild:
    def test_rebuild_bumps_epoch(self, index, berlin_capacity):
        fresh = index.rebuild([berlin_capacity])
        assert fresh.epoch == index.epoch + 1
        assert len(fresh) == 1
        assert len(index) == 5
        assert fresh.config is index.config
