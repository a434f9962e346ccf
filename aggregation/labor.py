"""
Labor pools: skill-space-time roll-ups of people's available hours.

A person's hours are stored once per space-time context as a
PersonCapacity. Skills only reference that capacity, so a welder who is
also an electrician contributes 40 hours to each skill query but 40 (not
80) to any query spanning both.
"""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from models import AvailabilityWindow, IndexConfig, Skill
from spatial import CellId, HexIndex, HexNode
from .resources import location_signature, time_signature

logger = logging.getLogger(__name__)

DEFAULT_WEEKLY_HOURS = 40.0
WORKDAYS_PER_WEEK = 5


class Location(BaseModel):
    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    h3_index: Optional[str] = None

    @property
    def is_placed(self) -> bool:
        return self.h3_index is not None or (self.latitude is not None and self.longitude is not None)


class Person(BaseModel):
    """Someone whose hours can be pooled by skill."""
    id: str = Field(min_length=1)
    name: Optional[str] = None
    skills: List[Skill] = Field(default_factory=list)
    availability_window: Optional[AvailabilityWindow] = None
    time_zone: Optional[str] = None
    location: Optional[Location] = None
    max_hours_per_week: Optional[float] = Field(default=None, gt=0)
    max_hours_per_day: Optional[float] = Field(default=None, gt=0)


class PersonCapacity(BaseModel):
    """One person's hours in one space-time context (id: person|signature)."""
    id: str
    person_id: str
    space_time_signature: str
    total_hours: float = Field(ge=0)
    skills: List[Skill]
    location: Optional[Location] = None
    availability_window: Optional[AvailabilityWindow] = None

    # Flat coordinates so the hex index can place the capacity
    @property
    def latitude(self) -> Optional[float]:
        return self.location.latitude if self.location else None

    @property
    def longitude(self) -> Optional[float]:
        return self.location.longitude if self.location else None

    @property
    def h3_index(self) -> Optional[str]:
        return self.location.h3_index if self.location else None


class PoolStats(BaseModel):
    mean_hours_per_person: float
    min_hours: float
    max_hours: float
    person_count: int


class LaborPool(BaseModel):
    """e.g. '40 hours of welding in Berlin, Mon-Fri'."""
    id: str
    skill: Skill
    space_time_signature: str
    availability_window: Optional[AvailabilityWindow] = None
    location: Optional[Location] = None
    total_hours: float = Field(ge=0)
    person_ids: List[str]
    stats: Optional[PoolStats] = None


class LaborPoolQuery(BaseModel):
    skill_id: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    h3_index: Optional[str] = None
    min_hours: Optional[float] = None
    availability_pattern: Optional[str] = Field(
        default=None,
        description="Regular expression searched in the pool's space-time signature"
    )


def compute_available_hours(
    person: Person,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> float:
    """
    Hours a person offers per week, or over [start, end) when both are given.

    Precedence: max_hours_per_week, then the availability window's weekly
    minutes, then max_hours_per_day over a five-day week, then 40.
    """
    window = person.availability_window
    if person.max_hours_per_week:
        weekly = person.max_hours_per_week
    elif window is not None and not window.is_empty:
        weekly = window.weekly_minutes() / 60
    elif person.max_hours_per_day:
        weekly = person.max_hours_per_day * WORKDAYS_PER_WEEK
    else:
        weekly = DEFAULT_WEEKLY_HOURS

    if start is None or end is None:
        return weekly
    days = (end - start).total_seconds() / 86400
    return max(0.0, weekly / 7 * days)


def person_signature(person: Person) -> str:
    location = person.location or Location()
    time_key = time_signature(person.availability_window, person.time_zone)
    loc_key = location_signature(False, location.city, location.country, location.latitude, location.longitude)
    return f"{time_key}::{loc_key}"


def skill_signature(person: Person, skill: Skill) -> str:
    return f"{skill.id}|{person_signature(person)}"


def total_hours(capacities: Iterable[PersonCapacity]) -> float:
    return sum(c.total_hours for c in capacities)


def _in_location(location: Optional[Location], city, country, h3_index) -> bool:
    location = location or Location()
    if city and location.city != city:
        return False
    if country and location.country != country:
        return False
    if h3_index and location.h3_index != h3_index:
        return False
    return True


@dataclass
class LaborIndex:
    spatial: HexIndex
    person_capacities: Dict[str, PersonCapacity] = field(default_factory=dict)
    skill_index: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))
    space_time_index: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    @classmethod
    def build(
        cls,
        persons: Iterable[Person],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        config: Optional[IndexConfig] = None
    ) -> "LaborIndex":
        """Index persons that hold at least one skill; hours are computed once per person."""
        index = cls(spatial=HexIndex(config))
        skipped = 0
        for person in persons:
            if not person.skills:
                skipped += 1
                continue
            index.add(person, compute_available_hours(person, start, end))

        logger.info(
            f"Labor index: {len(index.person_capacities)} capacities, "
            f"{len(index.skill_index)} skills ({skipped} persons without skills)"
        )
        return index

    def add(self, person: Person, hours: float) -> PersonCapacity:
        signature = person_signature(person)
        capacity = PersonCapacity(
            id=f"{person.id}|{signature}",
            person_id=person.id,
            space_time_signature=signature,
            total_hours=hours,
            skills=person.skills,
            location=person.location,
            availability_window=person.availability_window,
        )
        if capacity.id in self.person_capacities:
            logger.warning(f"Person {person.id} already indexed for {signature}; skipping")
            return self.person_capacities[capacity.id]

        self.person_capacities[capacity.id] = capacity
        for skill_id in dict.fromkeys(s.id for s in person.skills):
            self.skill_index[skill_id].append(capacity.id)
        self.space_time_index[signature].append(capacity.id)

        if person.location is not None and person.location.is_placed:
            self.spatial.add(capacity, quantity=hours, hours=hours)
        return capacity

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def by_skill(self, skill_id: str) -> List[PersonCapacity]:
        return [self.person_capacities[i] for i in self.skill_index.get(skill_id, [])]

    def by_skills(self, skill_ids: Iterable[str]) -> List[PersonCapacity]:
        """Union over skills; a person holding several of them appears once."""
        ids: Dict[str, None] = {}
        for skill_id in skill_ids:
            ids.update(dict.fromkeys(self.skill_index.get(skill_id, [])))
        return [self.person_capacities[i] for i in ids]

    def by_location(self, city=None, country=None, h3_index=None) -> List[PersonCapacity]:
        return [c for c in self.person_capacities.values() if _in_location(c.location, city, country, h3_index)]

    def by_skill_and_location(self, skill_id: str, city=None, country=None, h3_index=None) -> List[PersonCapacity]:
        return [c for c in self.by_skill(skill_id) if _in_location(c.location, city, country, h3_index)]

    def by_hex(self, cell: CellId) -> Optional[HexNode]:
        return self.spatial.node(cell)

    def pools(self) -> List[LaborPool]:
        """One pool per (skill, space-time signature)."""
        pools = []
        for skill_id, capacity_ids in self.skill_index.items():
            by_signature: Dict[str, List[PersonCapacity]] = defaultdict(list)
            for capacity_id in capacity_ids:
                capacity = self.person_capacities[capacity_id]
                by_signature[capacity.space_time_signature].append(capacity)

            for signature, members in by_signature.items():
                hours = [c.total_hours for c in members]
                pools.append(LaborPool(
                    id=f"{skill_id}|{signature}",
                    skill=Skill(id=skill_id),
                    space_time_signature=signature,
                    availability_window=members[0].availability_window,
                    location=members[0].location,
                    total_hours=sum(hours),
                    person_ids=[c.person_id for c in members],
                    stats=PoolStats(
                        mean_hours_per_person=sum(hours) / len(hours),
                        min_hours=min(hours),
                        max_hours=max(hours),
                        person_count=len(members),
                    ),
                ))
        return pools


def query_labor_pools(pools: Iterable[LaborPool], query: LaborPoolQuery) -> List[LaborPool]:
    pattern = re.compile(query.availability_pattern) if query.availability_pattern else None
    results = []
    for pool in pools:
        if query.skill_id and pool.skill.id != query.skill_id:
            continue
        if not _in_location(pool.location, query.city, query.country, query.h3_index):
            continue
        if query.min_hours is not None and pool.total_hours < query.min_hours:
            continue
        if pattern and not pattern.search(pool.space_time_signature):
            continue
        results.append(pool)
    return results


def merge_labor_pools(pools: List[LaborPool]) -> Optional[LaborPool]:
    """
    Combine pools across space-time contexts. Window, location and skill
    come from the first pool; per-person stats are recomputed over the
    union of persons.
    """
    if not pools:
        return None
    if len(pools) == 1:
        return pools[0]

    first = pools[0]
    hours = sum(p.total_hours for p in pools)
    person_ids = list(dict.fromkeys(pid for p in pools for pid in p.person_ids))
    lows = [p.stats.min_hours if p.stats else p.total_hours for p in pools]
    highs = [p.stats.max_hours if p.stats else p.total_hours for p in pools]

    return LaborPool(
        id=f"merged_{first.skill.id}",
        skill=first.skill,
        space_time_signature="merged",
        availability_window=first.availability_window,
        location=first.location,
        total_hours=hours,
        person_ids=person_ids,
        stats=PoolStats(
            mean_hours_per_person=hours / len(person_ids) if person_ids else 0.0,
            min_hours=min(lows),
            max_hours=max(highs),
            person_count=len(person_ids),
        ),
    )
