"""
Type and space-time lookups over a population of needs or capacities.

Resources that repeat on the same days in roughly the same place share a
space-time signature, so similar offers can be pooled and counted together:

    "all-months|all-weeks|monday,friday@Europe/Berlin::Berlin|DE|52.52,13.40"
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import h3

from models import AvailabilityWindow, IndexConfig, Resource
from spatial import CellId, HexIndex, HexNode

logger = logging.getLogger(__name__)

ANY = "any"
REMOTE = "remote"


def time_signature(window: Optional[AvailabilityWindow], time_zone: Optional[str] = None) -> str:
    """months|weeks|days@zone, with 'anytime' for an unconstrained window."""
    if window is None or window.is_empty:
        return "anytime"

    months = sorted({m.month for m in window.month_schedules or []})
    weeks = sorted({w for s in window.week_schedules or [] for w in s.weeks})
    days = window.weekdays()

    month_key = ",".join(str(m) for m in months) or "all-months"
    week_key = ",".join(str(w) for w in weeks) or "all-weeks"
    day_key = ",".join(d.value for d in sorted(days, key=lambda d: d.index)) if days else "all-days"
    return f"{month_key}|{week_key}|{day_key}@{time_zone or 'UTC'}"


def location_signature(
    remote: bool,
    city: Optional[str] = None,
    country: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None
) -> str:
    if remote:
        return REMOTE
    position = f"{latitude:.2f},{longitude:.2f}" if latitude is not None and longitude is not None else ANY
    return f"{city or ANY}|{country or ANY}|{position}"


def space_time_signature(resource: Resource) -> str:
    time_key = time_signature(resource.availability_window, resource.time_zone)
    loc_key = location_signature(
        resource.is_remote, resource.city, resource.country, resource.latitude, resource.longitude
    )
    return f"{time_key}::{loc_key}"


@dataclass
class SpaceTimeGroup:
    signature: str
    quantity: float = 0.0
    resources: List[Resource] = field(default_factory=list)


def group_by_space_time(resources: Iterable[Resource]) -> Dict[str, SpaceTimeGroup]:
    """signature -> summed quantity and the resources sharing it."""
    groups: Dict[str, SpaceTimeGroup] = {}
    for resource in resources:
        signature = space_time_signature(resource)
        group = groups.setdefault(signature, SpaceTimeGroup(signature=signature))
        group.quantity += resource.quantity
        group.resources.append(resource)
    return groups


@dataclass
class ResourceIndex:
    """
    Resources by id, by type and by space-time signature, plus the
    hierarchical hex index over the same population.
    """
    spatial: HexIndex
    resources: Dict[str, Resource] = field(default_factory=dict)
    type_index: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))
    space_time_index: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    @classmethod
    def build(cls, resources: Iterable[Resource], config: Optional[IndexConfig] = None) -> "ResourceIndex":
        index = cls(spatial=HexIndex(config))
        for resource in resources:
            index.add(resource)
        logger.info(
            f"Resource index: {len(index.resources)} resources, "
            f"{len(index.type_index)} types, {len(index.space_time_index)} space-time groups"
        )
        return index

    def add(self, resource: Resource) -> None:
        if resource.id in self.resources:
            logger.warning(f"Resource {resource.id} already indexed; skipping")
            return
        self.resources[resource.id] = resource
        if resource.type_id:
            self.type_index[resource.type_id].append(resource.id)
        self.space_time_index[space_time_signature(resource)].append(resource.id)
        self.spatial.add(resource)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def by_type(self, type_id: str) -> List[Resource]:
        return [self.resources[i] for i in self.type_index.get(type_id, [])]

    def by_signature(self, signature: str) -> List[Resource]:
        return [self.resources[i] for i in self.space_time_index.get(signature, [])]

    def by_hex(self, cell: CellId) -> Optional[HexNode]:
        return self.spatial.node(cell)

    def _in_cell(self, resource_id: str, h3_index: str) -> bool:
        """Is the resource's leaf cell inside h3_index (or remote, for the remote token)?"""
        cell = self.spatial.item_cells[resource_id]
        if h3_index == self.spatial.config.remote_token:
            return cell.is_remote
        if cell.is_remote or not h3.is_valid_cell(h3_index):
            return False
        resolution = h3.get_resolution(h3_index)
        if resolution > cell.resolution:
            return False
        return h3.cell_to_parent(cell.cell, resolution) == h3_index

    def _matches(self, resource: Resource, city, country, h3_index) -> bool:
        if city and resource.city != city:
            return False
        if country and resource.country != country:
            return False
        if h3_index and not self._in_cell(resource.id, h3_index):
            return False
        return True

    def by_location(
        self,
        city: Optional[str] = None,
        country: Optional[str] = None,
        h3_index: Optional[str] = None
    ) -> List[Resource]:
        return [r for r in self.resources.values() if self._matches(r, city, country, h3_index)]

    def by_type_and_location(
        self,
        type_id: str,
        city: Optional[str] = None,
        country: Optional[str] = None,
        h3_index: Optional[str] = None
    ) -> List[Resource]:
        return [r for r in self.by_type(type_id) if self._matches(r, city, country, h3_index)]
