"""
Generic graph aggregation.

Roll values up (or down) a membership graph without knowing what the
nodes are. Three pluggable pieces:
- Relation extractor: node -> ids of related nodes (the topology)
- Extractor: node -> value to aggregate (None skips the node)
- Reducer: (accumulator, value) -> accumulator

Nodes are dicts or objects with an `id`.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

NodeGetter = Callable[[str], Optional[Any]]
Extractor = Callable[[Any], Optional[T]]
Reducer = Callable[[R, T], R]
RelationExtractor = Callable[[Any], Optional[Set[str]]]


def attr(node: Any, key: str, default: Any = None) -> Any:
    if isinstance(node, dict):
        return node.get(key, default)
    return getattr(node, key, default)


def node_id(node: Any) -> str:
    return attr(node, "id")


# ============================================================================
# CORE
# ============================================================================

def aggregate_up(
    node: Any,
    get_node: NodeGetter,
    get_parents: RelationExtractor,
    extractor: Extractor,
    reducer: Reducer,
    initial: R
) -> R:
    """Reduce the values of a node's direct parents."""
    acc = initial
    for parent_id in get_parents(node) or ():
        parent = get_node(parent_id)
        if parent is None:
            continue
        value = extractor(parent)
        if value is not None:
            acc = reducer(acc, value)
    return acc


def aggregate_down(
    node: Any,
    get_all_nodes: Callable[[], Iterable[Any]],
    get_parents: RelationExtractor,
    extractor: Extractor,
    reducer: Reducer,
    initial: R
) -> R:
    """Reduce the values of every node that lists `node` as a parent."""
    target = node_id(node)
    acc = initial
    for candidate in get_all_nodes():
        if target not in (get_parents(candidate) or ()):
            continue
        value = extractor(candidate)
        if value is not None:
            acc = reducer(acc, value)
    return acc


def aggregate_up_deep(
    node: Any,
    get_node: NodeGetter,
    get_parents: RelationExtractor,
    extractor: Extractor,
    reducer: Reducer,
    initial: R,
    visited: Optional[Set[str]] = None
) -> R:
    """
    Reduce the values of all ancestors (parents, grandparents, ...).
    Each node is visited once, so cycles terminate.
    """
    visited = visited if visited is not None else set()
    if node_id(node) in visited:
        return initial
    visited.add(node_id(node))

    acc = initial
    for parent_id in get_parents(node) or ():
        parent = get_node(parent_id)
        if parent is None or parent_id in visited:
            continue
        value = extractor(parent)
        if value is not None:
            acc = reducer(acc, value)
        acc = aggregate_up_deep(parent, get_node, get_parents, extractor, reducer, acc, visited)
    return acc


# ============================================================================
# REDUCERS / EXTRACTORS
# ============================================================================

class Reducers:
    @staticmethod
    def sum(acc: float, value: float) -> float:
        return acc + value

    @staticmethod
    def concat(acc: List, value) -> List:
        if isinstance(value, (list, tuple)):
            return acc + list(value)
        return acc + [value]

    @staticmethod
    def union(acc: Set, value: Iterable) -> Set:
        return set(acc) | set(value)

    @staticmethod
    def average(acc: Dict[str, float], value: float) -> Dict[str, float]:
        """Accumulator is {'sum', 'count'}; finish with mean()."""
        return {"sum": acc["sum"] + value, "count": acc["count"] + 1}

    @staticmethod
    def mean(acc: Dict[str, float]) -> float:
        return acc["sum"] / acc["count"] if acc["count"] else 0.0


class Extractors:
    @staticmethod
    def attribute(key: str) -> Extractor:
        return lambda node: attr(node, key)

    @staticmethod
    def relations(key: str) -> RelationExtractor:
        def extract(node):
            value = attr(node, key)
            if isinstance(value, (set, frozenset)):
                return set(value)
            if isinstance(value, (list, tuple)):
                return set(value)
            return None
        return extract

    @staticmethod
    def schema(model: Type[BaseModel]) -> Extractor:
        """Validate the node against a pydantic model; invalid nodes are skipped."""
        def extract(node):
            data = node if isinstance(node, dict) else attr(node, "__dict__", {})
            try:
                return model.model_validate(data)
            except ValidationError as e:
                logger.debug(f"Skipping node {node_id(node)}: {e.error_count()} validation error(s)")
                return None
        return extract


# ============================================================================
# FLUENT API
# ============================================================================

class Graph:
    """Node lookup by id, entry point for traversals."""

    def __init__(self, nodes: Iterable[Any]):
        self.nodes: Dict[str, Any] = {node_id(n): n for n in nodes}

    def get(self, id: str) -> Optional[Any]:
        return self.nodes.get(id)

    def start(self, id: str) -> "Traversal":
        return Traversal(self, self.get(id))


class Traversal:
    def __init__(self, graph: Graph, node: Optional[Any]):
        self.graph = graph
        self.node = node

    def aggregate_up(self, relation: str, extractor: Extractor, reducer: Reducer, initial: R) -> R:
        if self.node is None:
            return initial
        return aggregate_up(self.node, self.graph.get, Extractors.relations(relation), extractor, reducer, initial)

    def aggregate_up_deep(self, relation: str, extractor: Extractor, reducer: Reducer, initial: R) -> R:
        if self.node is None:
            return initial
        return aggregate_up_deep(self.node, self.graph.get, Extractors.relations(relation), extractor, reducer, initial)

    def aggregate_down(self, relation: str, extractor: Extractor, reducer: Reducer, initial: R) -> R:
        if self.node is None:
            return initial
        return aggregate_down(
            self.node, lambda: self.graph.nodes.values(), Extractors.relations(relation),
            extractor, reducer, initial
        )
