"""
Dimension scorers for need/capacity feasibility.

Seven independent pure functions, one per compatibility axis:
1. Time        - do the availability windows overlap (with a big enough block)?
2. Continuity  - how fragmented is that overlap?
3. Space       - distance decay within the need's search radius
4. Skills      - required skills checked in both directions
5. Travel      - can the provider get here from their previous commitment?
6. Quantity    - how much of the need the capacity covers
7. Affinity    - mutual trust weights

Each returns a score in [0, 1] with a reason string. Missing optional data
is treated as "unconstrained" (1.0), never as an error.
"""

from typing import Callable, Dict, List, Optional, Tuple

from models import (
    AffinityScore,
    Contact,
    Overlap,
    PreviousCommitment,
    QuantityScore,
    RequiredSkill,
    Resource,
    Score,
    ScoringPolicy,
    SkillCheck,
    SkillsScore,
    SpaceScore,
    TimeRange,
    TimeScore,
    TravelScore
)
from spatial import haversine_distance, resolve_coordinates
from .context import FeasibilityContext
from .windows import (
    contiguous_blocks,
    first_start_time,
    format_minutes,
    intersect_utc,
    is_unconstrained,
    parse_time_to_minutes
)

DEFAULT_POLICY = ScoringPolicy()


def _is_remote(resource: Resource, remote_token: str) -> bool:
    return resource.is_remote or resource.h3_index == remote_token


# =====================================================================
# 1. TIME
# =====================================================================

def compute_time_score(need: Resource, capacity: Resource, policy: Optional[ScoringPolicy] = None) -> TimeScore:
    """
    Overlap of the two windows, compared in UTC.
    Zero when there is no overlap or the largest block is shorter than the
    need's min_atomic_size.
    """
    policy = policy or DEFAULT_POLICY
    need_window, cap_window = need.availability_window, capacity.availability_window

    if is_unconstrained(need_window) or is_unconstrained(cap_window):
        return TimeScore(value=1.0, reason="No specific time constraints defined")

    common = intersect_utc(need_window, need.time_zone, cap_window, capacity.time_zone, policy.reference_date)
    if not common:
        return TimeScore(
            value=0.0,
            reason="No time overlap between availability windows",
            overlaps=[], total_hours=0.0, blocks=0, max_block_min=0
        )

    overlaps: List[Overlap] = []
    total_minutes = 0
    for day, ranges in common.items():
        day_minutes = sum(end - start for start, end in ranges)
        total_minutes += day_minutes
        overlaps.append(Overlap(
            day=day,
            ranges=[TimeRange(start_time=format_minutes(s), end_time=format_minutes(e)) for s, e in ranges],
            minutes=day_minutes
        ))

    # UTC midnight is not a break in availability
    lengths = [end - start for start, end in contiguous_blocks(common)]
    blocks = len(lengths)
    max_block = max(lengths)
    details = dict(overlaps=overlaps, total_hours=total_minutes / 60, blocks=blocks, max_block_min=max_block)

    min_size = need.min_atomic_size
    if min_size and max_block < min_size:
        return TimeScore(
            value=0.0,
            reason=f"Largest block ({max_block}min) < min_atomic_size ({min_size:g}min)",
            **details
        )

    return TimeScore(value=1.0, reason=f"{blocks} block(s), {total_minutes / 60:.1f}h total", **details)


def compute_continuity_score(time: TimeScore, need: Resource, policy: Optional[ScoringPolicy] = None) -> Score:
    """
    Fragmentation penalty: 1/blocks, scaled down further when the average
    block is shorter than the target (need's min_atomic_size, or the default).
    """
    policy = policy or DEFAULT_POLICY

    if time.blocks is None:
        return Score(value=1.0, reason="No time constraints")
    blocks = time.blocks
    if blocks == 0:
        return Score(value=0.0, reason="No time blocks")
    if blocks == 1:
        return Score(value=1.0, reason="Single contiguous block")

    target = need.min_atomic_size or policy.default_block_minutes
    avg = (time.total_hours or 0.0) * 60 / blocks
    value = (1.0 / blocks) * min(1.0, avg / target)

    return Score(
        value=max(0.0, min(1.0, value)),
        reason=f"{blocks} blocks, avg {avg:.0f}min (target: {target:g}min)"
    )


# =====================================================================
# 2. SPACE
# =====================================================================

def compute_space_score(need: Resource, capacity: Resource, policy: Optional[ScoringPolicy] = None) -> SpaceScore:
    """Linear distance decay, zero at or beyond the need's search radius."""
    policy = policy or DEFAULT_POLICY

    if _is_remote(need, policy.remote_token) or _is_remote(capacity, policy.remote_token):
        return SpaceScore(value=1.0, reason="Remote/online possible", remote=True)

    need_pos = resolve_coordinates(need, policy.remote_token)
    cap_pos = resolve_coordinates(capacity, policy.remote_token)
    if need_pos is None or cap_pos is None:
        return SpaceScore(value=1.0, reason="No location constraints")

    distance = haversine_distance(need_pos[0], need_pos[1], cap_pos[0], cap_pos[1])
    radius = need.search_radius_km if need.search_radius_km is not None else policy.default_radius_km
    details = dict(distance_km=distance, radius_km=radius, remote=False)

    if distance == 0:
        return SpaceScore(value=1.0, reason="Same location", **details)
    if radius <= 0 or distance >= radius:
        return SpaceScore(value=0.0, reason=f"{distance:.1f}km exceeds {radius:g}km radius", **details)

    value = max(0.0, 1.0 - distance / radius)
    return SpaceScore(value=value, reason=f"{distance:.1f}km ({value * 100:.0f}%)", **details)


# =====================================================================
# 3. SKILLS
# =====================================================================

def _check_requirements(requirements: List[RequiredSkill], contact: Optional[Contact]) -> List[SkillCheck]:
    checks = []
    for req in requirements:
        held = contact.skill(req.id) if contact else None
        if held is None:
            met = False
        else:
            met = req.level is None or held.level is None or held.level >= req.level
        checks.append(SkillCheck(
            id=req.id,
            required=req.level,
            actual=held.level if held else None,
            met=met
        ))
    return checks


def compute_skills_score(
    need: Resource,
    capacity: Resource,
    provider: Optional[Contact] = None,
    seeker: Optional[Contact] = None
) -> SkillsScore:
    """
    Bidirectional: the need's requirements against the provider, and the
    capacity's requirements against the seeker.
    """
    checks = _check_requirements(need.required_skills, provider) + _check_requirements(capacity.required_skills, seeker)
    unmet = [c.id for c in checks if not c.met]

    if unmet:
        return SkillsScore(value=0.0, reason=f"Missing: {', '.join(unmet)}", checks=checks)
    if not checks:
        return SkillsScore(value=1.0, reason="No requirements")
    return SkillsScore(value=1.0, reason="All skills met", checks=checks)


# =====================================================================
# 4. TRAVEL
# =====================================================================

def compute_travel_score(
    capacity: Resource,
    previous: Optional[PreviousCommitment] = None,
    policy: Optional[ScoringPolicy] = None
) -> TravelScore:
    """
    Required average speed from the previous commitment to this capacity's
    first start. Road distance is approximated as straight-line x tortuosity.
    """
    policy = policy or DEFAULT_POLICY
    travel = policy.travel

    if previous is None:
        return TravelScore(value=1.0, reason="No prior commitment")
    if _is_remote(capacity, policy.remote_token):
        return TravelScore(value=1.0, reason="Remote, no travel needed")

    position = resolve_coordinates(capacity, policy.remote_token)
    if position is None:
        return TravelScore(value=1.0, reason="No location data")

    raw = haversine_distance(previous.latitude, previous.longitude, position[0], position[1])
    if raw <= travel.same_location_km:
        return TravelScore(value=1.0, reason="Same location", distance_km=raw)

    distance = raw * travel.tortuosity
    start = first_start_time(capacity.availability_window)
    if start is None:
        return TravelScore(value=1.0, reason="No start time", distance_km=distance)

    delta = parse_time_to_minutes(start) - parse_time_to_minutes(previous.end_time)
    if delta <= 0:
        return TravelScore(value=0.0, reason="Starts before previous ends", distance_km=distance, time_hours=0.0)

    hours = delta / 60
    speed = distance / hours
    details = dict(distance_km=distance, time_hours=hours, speed_kmh=speed)

    if speed > travel.max_speed_kmh:
        return TravelScore(value=0.0, reason=f"Need {speed:.0f}km/h (max {travel.max_speed_kmh:g})", **details)

    if speed <= travel.comfortable_speed_kmh:
        value = 1.0
    else:
        span = travel.max_speed_kmh - travel.comfortable_speed_kmh
        value = max(travel.min_score, 1.0 - (speed - travel.comfortable_speed_kmh) / span * (1.0 - travel.min_score))

    return TravelScore(value=value, reason=f"{distance:.1f}km in {hours:.1f}h", **details)


# =====================================================================
# 5. QUANTITY
# =====================================================================

def compute_quantity_score(need: Resource, capacity: Resource) -> QuantityScore:
    """Share of the need the capacity can cover."""
    base = dict(need=need.quantity, unit=need.unit)

    if capacity.quantity <= 0:
        return QuantityScore(value=0.0, reason="None available", available=0.0, allocatable=0.0, **base)

    allocatable = min(need.quantity, capacity.quantity)
    if capacity.quantity >= need.quantity:
        return QuantityScore(
            value=1.0,
            reason=f"Full ({capacity.quantity:g} >= {need.quantity:g})",
            available=capacity.quantity, allocatable=allocatable, **base
        )

    ratio = allocatable / need.quantity
    return QuantityScore(
        value=ratio,
        reason=f"{capacity.quantity:g}/{need.quantity:g} ({ratio * 100:.0f}%)",
        available=capacity.quantity, allocatable=allocatable, **base
    )


# =====================================================================
# 6. AFFINITY
# =====================================================================

def _weight(weights: Optional[Dict[str, float]], owner: Optional[str]) -> float:
    if not owner or not weights:
        return 1.0
    value = weights.get(owner)
    if value is None:
        return 1.0
    return max(0.0, min(1.0, float(value)))


def compute_affinity_score(
    capacity_owner: Optional[str],
    need_owner: Optional[str],
    provider_weights: Optional[Dict[str, float]] = None,
    seeker_weights: Optional[Dict[str, float]] = None
) -> AffinityScore:
    """Weaker of the two directional trust weights. No data = trusted."""
    s2p = _weight(seeker_weights, capacity_owner)
    p2s = _weight(provider_weights, need_owner)
    value = min(s2p, p2s)
    details = dict(seeker_to_provider=s2p, provider_to_seeker=p2s)

    if value == 1:
        return AffinityScore(value=1.0, reason="Default trust", **details)
    if value == 0:
        return AffinityScore(value=0.0, reason="Blocked", **details)
    return AffinityScore(value=value, reason=f"Trust {value * 100:.0f}%", **details)


# =====================================================================
# REGISTRY
# =====================================================================

Scorer = Callable[[Resource, Resource, FeasibilityContext, ScoringPolicy], Score]

DIMENSIONS: List[Tuple[str, Scorer]] = [
    ("time", lambda n, c, ctx, p: compute_time_score(n, c, p)),
    ("space", lambda n, c, ctx, p: compute_space_score(n, c, p)),
    ("skills", lambda n, c, ctx, p: compute_skills_score(n, c, ctx.provider, ctx.seeker)),
    ("travel", lambda n, c, ctx, p: compute_travel_score(c, ctx.previous_commitment, p)),
    ("quantity", lambda n, c, ctx, p: compute_quantity_score(n, c)),
    ("affinity", lambda n, c, ctx, p: compute_affinity_score(c.offerer, n.offerer, ctx.provider_weights, ctx.seeker_weights)),
    ("continuity", lambda n, c, ctx, p: compute_continuity_score(compute_time_score(n, c, p), n, p)),
]
