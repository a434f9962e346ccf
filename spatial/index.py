"""
Hierarchical H3 index.

Every item is stored at its leaf cell and rolled up through each ancestor
down to the root resolution, so "everything in this district" is a single
lookup at any level. Each node keeps aggregate stats and weekday buckets.

Lifecycle: build once per epoch, then treat as read-only. Additions are
append-only; to absorb significant changes, call rebuild() and swap the new
instance in rather than mutating one that readers are using.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

import h3

from models import DayOfWeek, IndexConfig
from .cells import CellId, HexGrid, is_remote_item
from .geo import item_value

logger = logging.getLogger(__name__)

# Bucket for items whose window applies to every day (or who have none)
ANY_TIME = "any"


@dataclass
class HexStats:
    count: int = 0
    sum_quantity: float = 0.0
    sum_hours: float = 0.0

    def add(self, quantity: float, hours: float) -> None:
        self.count += 1
        self.sum_quantity += quantity
        self.sum_hours += hours


@dataclass
class HexNode:
    """One cell in the hierarchy with everything located inside it."""
    cell: str
    resolution: int
    parent: Optional[str] = None
    children: Set[str] = field(default_factory=set)
    items: List[str] = field(default_factory=list)
    stats: HexStats = field(default_factory=HexStats)
    # weekday value (or ANY_TIME) -> item ids
    days: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))


class HexIndex:
    """
    Multi-resolution bucket index from cell -> items, plus a remote bucket.
    """

    def __init__(self, config: Optional[IndexConfig] = None, epoch: int = 0):
        self.config = config or IndexConfig()
        self.grid = HexGrid(self.config)
        self.epoch = epoch

        self.nodes: Dict[str, HexNode] = {}
        self.items: Dict[str, Any] = {}
        self.item_cells: Dict[str, CellId] = {}
        self.remote: HexNode = HexNode(cell=self.config.remote_token, resolution=-1)

    @classmethod
    def build(cls, items: Iterable[Any], config: Optional[IndexConfig] = None, epoch: int = 0) -> "HexIndex":
        index = cls(config, epoch)
        for item in items:
            index.add(item)
        logger.info(
            f"Built hex index epoch {index.epoch}: {len(index.items)} items, "
            f"{len(index.nodes)} cells, {index.remote.stats.count} remote"
        )
        return index

    def rebuild(self, items: Iterable[Any]) -> "HexIndex":
        """Fresh index over `items` with the same config and the next epoch."""
        return HexIndex.build(items, self.config, self.epoch + 1)

    def __len__(self) -> int:
        return len(self.items)

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def add(self, item: Any, quantity: Optional[float] = None, hours: Optional[float] = None) -> CellId:
        """
        Index one item and return the leaf cell it landed in.
        Quantity defaults to item.quantity; hours to the window's weekly hours.
        """
        item_id = item_value(item, "id")
        if item_id is None:
            raise ValueError("Indexed items need an 'id'")
        if item_id in self.items:
            logger.warning(f"Item {item_id} already indexed in epoch {self.epoch}; skipping")
            return self.item_cells[item_id]

        window = item_value(item, "availability_window")
        if quantity is None:
            quantity = item_value(item, "quantity") or 0.0
        if hours is None:
            hours = window.weekly_minutes() / 60 if window is not None else 0.0
        day_keys = self._day_keys(window)

        cell = self._leaf_cell(item)
        self.items[item_id] = item
        self.item_cells[item_id] = cell

        if cell.is_remote:
            self._place(self.remote, item_id, quantity, hours, day_keys)
            return cell

        current = cell.cell
        resolution = h3.get_resolution(current)
        child = None
        while True:
            node = self.nodes.get(current)
            if node is None:
                node = HexNode(cell=current, resolution=resolution)
                self.nodes[current] = node
            if child is not None:
                node.children.add(child)
            self._place(node, item_id, quantity, hours, day_keys)

            if resolution <= self.config.root_resolution:
                break
            parent = h3.cell_to_parent(current, resolution - 1)
            node.parent = parent
            child, current, resolution = current, parent, resolution - 1

        return cell

    def _leaf_cell(self, item: Any) -> CellId:
        leaf = self.config.leaf_resolution
        if is_remote_item(item) or item_value(item, "latitude") is not None:
            return self.grid.ensure_cell_id(item, resolution=leaf)

        # Only a stored cell: move it to the leaf level
        cell = self.grid.ensure_cell_id(item)
        if cell.is_remote or cell.resolution == leaf:
            return cell
        if cell.resolution > leaf:
            return CellId.geo(h3.cell_to_parent(cell.cell, leaf))
        return CellId.geo(h3.cell_to_center_child(cell.cell, leaf))

    @staticmethod
    def _day_keys(window) -> List[str]:
        if window is None:
            return [ANY_TIME]
        days = window.weekdays()
        if days is None:
            return [ANY_TIME]
        return [d.value for d in days]

    @staticmethod
    def _place(node: HexNode, item_id: str, quantity: float, hours: float, day_keys: List[str]) -> None:
        node.items.append(item_id)
        node.stats.add(quantity, hours)
        for key in day_keys:
            node.days[key].append(item_id)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def node(self, cell: CellId) -> Optional[HexNode]:
        if cell.is_remote:
            return self.remote
        return self.nodes.get(cell.cell)

    def parent(self, cell: CellId) -> Optional[HexNode]:
        node = self.node(cell)
        if node is None or node.parent is None:
            return None
        return self.nodes.get(node.parent)

    def children(self, cell: CellId) -> List[HexNode]:
        node = self.node(cell)
        if node is None:
            return []
        return [self.nodes[c] for c in sorted(node.children)]

    def items_in_cell(self, cell: CellId) -> List[Any]:
        node = self.node(cell)
        if node is None:
            return []
        return [self.items[i] for i in node.items]

    def items_on_day(self, cell: CellId, day: DayOfWeek) -> List[Any]:
        """Items in a cell available on a weekday, including any-time items."""
        node = self.node(cell)
        if node is None:
            return []
        ids = node.days.get(day.value, []) + node.days.get(ANY_TIME, [])
        return [self.items[i] for i in dict.fromkeys(ids)]

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def query_resolution(self, radius_km: float) -> int:
        """Finest indexed resolution whose ring count stays within max_query_rings."""
        for res in range(self.config.leaf_resolution, self.config.root_resolution - 1, -1):
            if self.grid.grid_rings_for_radius(radius_km, res) <= self.config.max_query_rings:
                return res
        return self.config.root_resolution

    def candidates(self, center: Any, radius_km: Optional[float] = None) -> List[Any]:
        """
        Items that may lie within radius_km of `center` (an item or a CellId).
        Over-covers; precise distance filtering is the scorer's job.
        Remote items are always included; a remote center returns everything.
        """
        if radius_km is None:
            radius_km = self.config.default_radius_km

        cell = center if isinstance(center, CellId) else self._leaf_cell(center)
        if cell.is_remote:
            return list(self.items.values())

        res = self.query_resolution(radius_km)
        if cell.resolution > res:
            cell = CellId.geo(h3.cell_to_parent(cell.cell, res))

        seen: Dict[str, None] = {}
        for ring_cell in self.grid.cells_in_radius(cell, radius_km):
            node = self.nodes.get(ring_cell.cell) if not ring_cell.is_remote else None
            if node is None:
                continue
            for item_id in node.items:
                seen[item_id] = None
        for item_id in self.remote.items:
            seen[item_id] = None

        return [self.items[i] for i in seen]
