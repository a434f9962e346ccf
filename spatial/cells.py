"""
H3 cell identifiers and grid queries.

Provides the index-boundary entry points consumed by retrieval code:
- Computing cell ids from item locations (remote items get the remote cell)
- Resolution selection based on map zoom or point density
- Radius queries (k-rings) and cross-resolution compatibility checks

Indexing problems never abort a caller: they degrade to the remote cell,
the single center cell, or a great-circle comparison, and are logged as
warnings. An over-broad candidate set is preferable to a dropped item.
"""

import logging
import math
from enum import Enum
from typing import Any, List, Optional

import h3
from pydantic import BaseModel, ConfigDict, model_validator

from models import IndexConfig
from .exceptions import IndexOperationFailure, InvalidLocation, InvalidResolution
from .geo import cell_center, edge_length_km, haversine_distance, item_value

logger = logging.getLogger(__name__)


class CellKind(str, Enum):
    GEO = "geo"
    REMOTE = "remote"


class CellId(BaseModel):
    """
    Either a geographic H3 cell or the remote marker.
    Remote cells match any geography.
    """
    kind: CellKind
    cell: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_shape(self):
        if self.kind == CellKind.GEO and not self.cell:
            raise ValueError("Geographic CellId requires a cell string")
        if self.kind == CellKind.REMOTE and self.cell is not None:
            raise ValueError("Remote CellId carries no cell string")
        return self

    @classmethod
    def geo(cls, cell: str) -> "CellId":
        return cls(kind=CellKind.GEO, cell=cell)

    @classmethod
    def remote(cls) -> "CellId":
        return cls(kind=CellKind.REMOTE)

    @classmethod
    def parse(cls, value: str, remote_token: str = "remote") -> "CellId":
        """Read a stored h3_index string (possibly the remote token)."""
        if value == remote_token:
            return cls.remote()
        if not h3.is_valid_cell(value):
            raise ValueError(f"Not a valid H3 cell: {value!r}")
        return cls.geo(value)

    @property
    def is_remote(self) -> bool:
        return self.kind == CellKind.REMOTE

    @property
    def resolution(self) -> Optional[int]:
        return None if self.is_remote else h3.get_resolution(self.cell)

    def render(self, remote_token: str = "remote") -> str:
        return remote_token if self.is_remote else self.cell

    def __str__(self) -> str:
        return self.render()


def is_remote_item(item: Any) -> bool:
    """Online link present, or location_type containing 'remote'/'online'."""
    if item_value(item, "online_link"):
        return True
    kind = (item_value(item, "location_type") or "").lower()
    return "remote" in kind or "online" in kind


class HexGrid:
    """
    Cell computation and grid queries for one index configuration.
    Stateless apart from its config; safe to share across threads.
    """

    def __init__(self, config: Optional[IndexConfig] = None):
        self.config = config or IndexConfig()

    # ------------------------------------------------------------------
    # Cell ids
    # ------------------------------------------------------------------

    def compute_cell_id(self, item: Any, resolution: Optional[int] = None) -> CellId:
        """
        Cell for an item at the given resolution (or the item's
        h3_resolution, or the configured default).

        Raises InvalidLocation / InvalidResolution.
        """
        if is_remote_item(item):
            return CellId.remote()

        lat = item_value(item, "latitude")
        lon = item_value(item, "longitude")
        if lat is None or lon is None:
            raise InvalidLocation(item_value(item, "id"))

        res = resolution
        if res is None:
            res = item_value(item, "h3_resolution")
        if res is None:
            res = self.config.default_resolution

        if not isinstance(res, int) or not 0 <= res <= 15:
            raise InvalidResolution(res)

        return CellId.geo(h3.latlng_to_cell(lat, lon, res))

    def ensure_cell_id(self, item: Any, resolution: Optional[int] = None) -> CellId:
        """
        Like compute_cell_id but never raises. Reuses a stored h3_index when
        no explicit resolution is requested; falls back to the remote cell.
        """
        stored = item_value(item, "h3_index")
        if stored and resolution is None:
            try:
                return CellId.parse(stored, self.config.remote_token)
            except ValueError:
                logger.warning(f"Ignoring invalid stored h3_index {stored!r} on {item_value(item, 'id')}")

        try:
            return self.compute_cell_id(item, resolution)
        except (InvalidLocation, InvalidResolution) as e:
            logger.warning(f"[H3] {e}; indexing as remote")
            return CellId.remote()
        except (h3.H3BaseException, ValueError) as e:
            logger.warning(f"[H3] Failed to compute cell for {item_value(item, 'id')}: {e}; indexing as remote")
            return CellId.remote()

    # ------------------------------------------------------------------
    # Resolution selection
    # ------------------------------------------------------------------

    @staticmethod
    def resolution_from_zoom(zoom: float) -> int:
        """
        Map zoom level (0-20) -> H3 resolution.

        | zoom        | res |   | zoom        | res |
        |-------------|-----|---|-------------|-----|
        | < 2         | 0   |   | < 12        | 7   |
        | < 3         | 1   |   | < 13.5      | 8   |
        | < 4.5       | 2   |   | < 15        | 9   |
        | < 6         | 3   |   | < 16.5      | 10  |
        | < 7.5       | 4   |   | < 18        | 11  |
        | < 9         | 5   |   | < 20        | 12  |
        | < 10.5      | 6   |   | >= 20       | 13  |
        """
        breakpoints = (2, 3, 4.5, 6, 7.5, 9, 10.5, 12, 13.5, 15, 16.5, 18, 20)
        for res, limit in enumerate(breakpoints):
            if zoom < limit:
                return res
        return 13

    @staticmethod
    def resolution_from_density(density: float) -> int:
        """
        Items per km^2 -> H3 resolution.

        | density       | res | hexagon area |
        |---------------|-----|--------------|
        | > 100         | 8   | ~0.74 km²    |
        | > 10          | 7   | ~5.16 km²    |
        | otherwise     | 6   | ~36.1 km²    |
        """
        if density > 100:
            return 8
        if density > 10:
            return 7
        return 6

    # ------------------------------------------------------------------
    # Radius queries
    # ------------------------------------------------------------------

    @staticmethod
    def grid_rings_for_radius(radius_km: float, resolution: int) -> int:
        """
        Number of k-rings needed so that rings x edge length covers the radius.
        The +1 is a margin for points near ring boundaries.
        """
        edge = edge_length_km(resolution)
        if not edge:
            logger.error(f"Invalid H3 resolution: {resolution}")
            return 1
        return math.ceil(max(radius_km, 0.0) / edge) + 1

    def cells_in_radius(self, center: CellId, radius_km: float) -> List[CellId]:
        """All cells within radius_km of center (over-covering is fine)."""
        if center.is_remote:
            return [CellId.remote()]

        rings = self.grid_rings_for_radius(radius_km, center.resolution)
        try:
            return [CellId.geo(c) for c in h3.grid_disk(center.cell, rings)]
        except (h3.H3BaseException, ValueError) as e:
            logger.warning(f"[H3] {IndexOperationFailure('grid_disk', e)}; using center cell only")
            return [center]

    def cells_in_bounds(self, north: float, south: float, east: float, west: float,
                        resolution: int) -> List[CellId]:
        """Cells covering a lat/lon bounding box. Empty list on failure."""
        if not 0 <= resolution <= 15:
            raise InvalidResolution(resolution)
        polygon = h3.LatLngPoly([(south, west), (north, west), (north, east), (south, east)])
        try:
            return [CellId.geo(c) for c in h3.h3shape_to_cells(polygon, resolution)]
        except (h3.H3BaseException, ValueError) as e:
            logger.warning(f"[H3] {IndexOperationFailure('polygon fill', e)}")
            return []

    # ------------------------------------------------------------------
    # Compatibility
    # ------------------------------------------------------------------

    def cells_compatible(self, a: CellId, b: CellId, radius_km: Optional[float] = None) -> bool:
        """
        Are two cells within radius_km of each other?

        Both are reduced to the coarser resolution (larger hexagons are a
        safe upper bound). Equal ancestors are accepted immediately; otherwise
        grid distance is compared to the ring count. Grid distance is
        undefined across icosahedron faces, so failures fall back to the
        great-circle distance between cell centers.
        """
        if a.is_remote or b.is_remote:
            return True
        if radius_km is None:
            radius_km = self.config.default_radius_km

        res_a, res_b = a.resolution, b.resolution
        coarser = min(res_a, res_b)
        parent_a = a.cell if res_a == coarser else h3.cell_to_parent(a.cell, coarser)
        parent_b = b.cell if res_b == coarser else h3.cell_to_parent(b.cell, coarser)

        if parent_a == parent_b:
            return True

        try:
            distance = h3.grid_distance(parent_a, parent_b)
        except (h3.H3BaseException, ValueError) as e:
            logger.warning(f"[H3] {IndexOperationFailure('grid_distance', e)}; using great-circle distance")
            lat1, lon1 = cell_center(a.cell)
            lat2, lon2 = cell_center(b.cell)
            return haversine_distance(lat1, lon1, lat2, lon2) <= radius_km

        return distance <= self.grid_rings_for_radius(radius_km, coarser)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def format_cell(self, cell: CellId) -> str:
        if cell.is_remote:
            return "Remote/Online"
        return f"{cell.cell[:8]}... (res {cell.resolution})"
