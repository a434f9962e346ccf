"""
Geo primitives: great-circle distance and H3 resolution tables.
"""

import math
from typing import Any, Optional, Tuple

import h3

EARTH_RADIUS_KM = 6371.0

# Average hexagon edge length (km) per H3 resolution.
# Source: https://h3geo.org/docs/core-library/restable/
H3_EDGE_LENGTHS_KM: Tuple[float, ...] = (
    1107.71,  # 0: continent
    418.68,   # 1: country
    158.24,   # 2: large region
    59.81,    # 3: metro area
    22.61,    # 4: city
    8.54,     # 5: district
    3.23,     # 6: neighborhood
    1.22,     # 7: small area (default)
    0.461,    # 8: block
    0.174,    # 9: building
    0.066,    # 10: precise location
    0.025,    # 11
    0.009,    # 12
    0.003,    # 13
    0.001,    # 14
    0.0005,   # 15
)

# Average hexagon area (km^2) per H3 resolution.
H3_AREAS_KM2: Tuple[float, ...] = (
    4250547.0,
    607220.0,
    86745.0,
    12393.0,
    1770.0,
    252.9,
    36.1,
    5.16,
    0.74,
    0.10,
    0.015,
    0.002,
    0.0003,
    0.00004,
    0.000006,
    0.0000009,
)

_RESOLUTION_DESCRIPTIONS = (
    "Continent scale (~4.2M km²)",
    "Country scale (~607K km²)",
    "Large region (~87K km²)",
    "Metro area (~12K km²)",
    "City (~1.8K km²)",
    "District (~253 km²)",
    "Neighborhood (~36 km²)",
    "Small area (~5 km²)",
    "Block (~0.7 km²)",
    "Building (~0.1 km²)",
    "Precise location (~15K m²)",
    "Very precise (~2K m²)",
    "Ultra precise (~300 m²)",
    "Extremely precise (~40 m²)",
    "Sub-meter (~6 m²)",
    "Centimeter (~1 m²)",
)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two lat/lon points in kilometers.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def edge_length_km(resolution: int) -> Optional[float]:
    if 0 <= resolution < len(H3_EDGE_LENGTHS_KM):
        return H3_EDGE_LENGTHS_KM[resolution]
    return None


def area_km2(resolution: int) -> Optional[float]:
    if 0 <= resolution < len(H3_AREAS_KM2):
        return H3_AREAS_KM2[resolution]
    return None


def resolution_description(resolution: int) -> str:
    if 0 <= resolution < len(_RESOLUTION_DESCRIPTIONS):
        return _RESOLUTION_DESCRIPTIONS[resolution]
    return "Unknown resolution"


def item_value(item: Any, name: str) -> Any:
    """Read a field from a mapping or an object, None when absent."""
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def cell_center(cell: str) -> Tuple[float, float]:
    """(lat, lon) of an H3 cell's center."""
    return h3.cell_to_latlng(cell)


def resolve_coordinates(item: Any, remote_token: str = "remote") -> Optional[Tuple[float, float]]:
    """
    Best-known position of an item: explicit lat/lon first,
    then the center of a geographic h3_index. None if neither exists.
    """
    lat = item_value(item, "latitude")
    lon = item_value(item, "longitude")
    if lat is not None and lon is not None:
        return float(lat), float(lon)

    cell = item_value(item, "h3_index")
    if cell and cell != remote_token and h3.is_valid_cell(cell):
        return cell_center(cell)
    return None
