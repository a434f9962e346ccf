"""
Generic aggregation over node graphs (group capacity, skills, tags),
plus type / space-time lookups over resources and labor pools.
"""

from .graph import (
    Extractors,
    Graph,
    Reducers,
    Traversal,
    aggregate_down,
    aggregate_up,
    aggregate_up_deep
)
from .skills import (
    SkillReducers,
    aggregate_availability_by_skill,
    group_nodes_by_skill
)
from .resources import (
    ResourceIndex,
    SpaceTimeGroup,
    group_by_space_time,
    location_signature,
    space_time_signature,
    time_signature
)
from .labor import (
    LaborIndex,
    LaborPool,
    LaborPoolQuery,
    Location,
    Person,
    PersonCapacity,
    PoolStats,
    compute_available_hours,
    merge_labor_pools,
    person_signature,
    query_labor_pools,
    skill_signature,
    total_hours
)

__all__ = [
    "Extractors",
    "Graph",
    "Reducers",
    "Traversal",
    "aggregate_down",
    "aggregate_up",
    "aggregate_up_deep",
    "SkillReducers",
    "aggregate_availability_by_skill",
    "group_nodes_by_skill",
    "ResourceIndex",
    "SpaceTimeGroup",
    "group_by_space_time",
    "location_signature",
    "space_time_signature",
    "time_signature",
    "LaborIndex",
    "LaborPool",
    "LaborPoolQuery",
    "Location",
    "Person",
    "PersonCapacity",
    "PoolStats",
    "compute_available_hours",
    "merge_labor_pools",
    "person_signature",
    "query_labor_pools",
    "skill_signature",
    "total_hours",
]
