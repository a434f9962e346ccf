"""
Skill / labor roll-ups.

Labor isn't fungible: hours are tracked per skill, and a person with
several skills contributes their hours once to EACH skill, never twice
to the same one.

Person nodes look like Contacts with extra fields:
    {"id": "p1", "skills": [{"id": "welding"}], "available_hours": 40,
     "location": {"city": "Berlin", "country": "DE"}}
"""

from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .graph import attr, node_id

SkillExtractor = Callable[[Any], Optional[List[Any]]]
HoursExtractor = Callable[[Any], float]


def default_skills(node: Any) -> List[Any]:
    return attr(node, "skills") or []


def default_hours(node: Any) -> float:
    return attr(node, "available_hours") or 0.0


def _skill_id(skill: Any) -> str:
    return attr(skill, "id")


def _in_location(node: Any, city: Optional[str], country: Optional[str]) -> bool:
    location = attr(node, "location") or {}
    if city and attr(location, "city") != city:
        return False
    if country and attr(location, "country") != country:
        return False
    return True


def aggregate_availability_by_skill(
    nodes: Iterable[Any],
    skill_extractor: SkillExtractor = default_skills,
    hours_extractor: HoursExtractor = default_hours,
    city: Optional[str] = None,
    country: Optional[str] = None
) -> Dict[str, float]:
    """skill id -> total hours, counting each person once per skill."""
    result: Dict[str, float] = defaultdict(float)
    counted: Set[tuple] = set()

    for node in nodes:
        if not _in_location(node, city, country):
            continue
        skills = skill_extractor(node)
        if not skills:
            continue

        hours = hours_extractor(node)
        for skill in skills:
            key = (node_id(node), _skill_id(skill))
            if key in counted:
                continue
            counted.add(key)
            result[_skill_id(skill)] += hours

    return dict(result)


def group_nodes_by_skill(nodes: Iterable[Any], skill_extractor: SkillExtractor = default_skills) -> Dict[str, List[str]]:
    """skill id -> ids of the nodes holding it."""
    result: Dict[str, List[str]] = defaultdict(list)
    for node in nodes:
        for skill in skill_extractor(node) or []:
            if node_id(node) not in result[_skill_id(skill)]:
                result[_skill_id(skill)].append(node_id(node))
    return dict(result)


class SkillReducers:
    """
    Reducers for graph aggregation over person nodes.
    Accumulators carry the person ids already counted.
    """

    @staticmethod
    def sum_hours_by_skill(acc: Dict[str, Dict[str, Any]], node: Any) -> Dict[str, Dict[str, Any]]:
        """Accumulator: {skill_id: {"hours": float, "persons": set}}"""
        hours = default_hours(node)
        for skill in default_skills(node):
            entry = acc.setdefault(_skill_id(skill), {"hours": 0.0, "persons": set()})
            if node_id(node) not in entry["persons"]:
                entry["persons"].add(node_id(node))
                entry["hours"] += hours
        return acc

    @staticmethod
    def group_persons_by_skill(acc: Dict[str, List[str]], node: Any) -> Dict[str, List[str]]:
        for skill in default_skills(node):
            persons = acc.setdefault(_skill_id(skill), [])
            if node_id(node) not in persons:
                persons.append(node_id(node))
        return acc

    @staticmethod
    def collect_skills(acc: Set[str], node: Any) -> Set[str]:
        for skill in default_skills(node):
            acc.add(_skill_id(skill))
        return acc

    @staticmethod
    def sum_total_hours(acc: Dict[str, Any], node: Any) -> Dict[str, Any]:
        """Accumulator: {"hours": float, "persons": set}; skill-agnostic."""
        if node_id(node) not in acc["persons"]:
            acc["persons"].add(node_id(node))
            acc["hours"] += default_hours(node)
        return acc

    @staticmethod
    def hours(acc: Dict[str, Dict[str, Any]]) -> Dict[str, float]:
        """Flatten a sum_hours_by_skill accumulator to {skill_id: hours}."""
        return {skill: entry["hours"] for skill, entry in acc.items()}
