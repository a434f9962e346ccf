"""
Spatial indexing package.

Geo primitives, H3 cell ids (geographic or remote) and the hierarchical
hex index used to narrow a population of resources to nearby candidates.
"""

from .exceptions import (
    IndexOperationFailure,
    InvalidLocation,
    InvalidResolution,
    SpatialIndexError
)

from .geo import (
    haversine_distance,
    edge_length_km,
    area_km2,
    resolution_description,
    resolve_coordinates
)

from .cells import CellId, CellKind, HexGrid, is_remote_item
from .index import ANY_TIME, HexIndex, HexNode, HexStats

__all__ = [
    "IndexOperationFailure",
    "InvalidLocation",
    "InvalidResolution",
    "SpatialIndexError",
    "haversine_distance",
    "edge_length_km",
    "area_km2",
    "resolution_description",
    "resolve_coordinates",
    "CellId",
    "CellKind",
    "HexGrid",
    "is_remote_item",
    "ANY_TIME",
    "HexIndex",
    "HexNode",
    "HexStats",
]
