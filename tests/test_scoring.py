"""
Unit tests for the dimension scorers.
"""

import pytest

import models
from matcher.context import FeasibilityContext
from matcher.scoring import (
    DIMENSIONS,
    compute_affinity_score,
    compute_continuity_score,
    compute_quantity_score,
    compute_skills_score,
    compute_space_score,
    compute_time_score,
    compute_travel_score
)
from models import (
    Contact,
    DayOfWeek,
    PreviousCommitment,
    RequiredSkill,
    ScoringPolicy,
    Skill,
    TimeScore,
    TravelPolicy
)


class TestTimeScore:
    def test_overlap(self, berlin_need, berlin_capacity):
        score = compute_time_score(berlin_need, berlin_capacity)
        assert score.value == 1.0
        assert score.blocks == 1
        assert score.total_hours == pytest.approx(1.0)
        assert score.max_block_min == 60
        assert score.overlaps[0].day == DayOfWeek.MONDAY
        assert score.overlaps[0].ranges[0].start_time == "10:00"

    def test_block_too_small(self, berlin_need, berlin_capacity):
        need = berlin_need.model_copy(update={"min_atomic_size": 90})
        score = compute_time_score(need, berlin_capacity)
        assert score.value == 0.0
        assert score.reason == "Largest block (60min) < min_atomic_size (90min)"

    def test_no_overlap(self, berlin_need, make_resource, make_window):
        cap = make_resource(id="c", availability_window=make_window(("tuesday", "10:00", "11:00")))
        score = compute_time_score(berlin_need, cap)
        assert score.value == 0.0
        assert score.reason == "No time overlap between availability windows"
        assert score.blocks == 0

    def test_unconstrained(self, berlin_need, make_resource):
        score = compute_time_score(berlin_need, make_resource(id="c"))
        assert score.value == 1.0
        assert score.blocks is None

    def test_time_zones_respected(self, berlin_need, berlin_capacity):
        need = berlin_need.model_copy(update={"time_zone": "Europe/Berlin"})
        cap = berlin_capacity.model_copy(update={"time_zone": "America/New_York"})
        assert compute_time_score(need, cap).value == 0.0

    def test_block_across_utc_midnight(self, make_resource, make_window):
        window = make_window(("monday", "00:00", "03:00"))
        need = make_resource(id="n", availability_window=window, time_zone="Europe/Berlin", min_atomic_size=150)
        cap = make_resource(id="c", availability_window=window, time_zone="Europe/Berlin")
        score = compute_time_score(need, cap)
        assert score.value == 1.0
        assert score.blocks == 1
        assert score.max_block_min == 180
        assert len(score.overlaps) == 2
        assert compute_continuity_score(score, need).value == 1.0


class TestContinuityScore:
    def test_unconstrained(self, make_resource):
        score = compute_continuity_score(TimeScore(value=1.0, reason="-"), make_resource())
        assert score.value == 1.0

    def test_zero_blocks(self, make_resource):
        score = compute_continuity_score(TimeScore(value=0.0, reason="-", blocks=0, total_hours=0.0), make_resource())
        assert score.value == 0.0

    def test_single_block(self, make_resource):
        score = compute_continuity_score(TimeScore(value=1.0, reason="-", blocks=1, total_hours=0.25), make_resource())
        assert score.value == 1.0

    @pytest.mark.parametrize("hours,expected", [(3.0, 0.5), (1.0, 0.25)])
    def test_fragmented(self, make_resource, hours, expected):
        score = compute_continuity_score(
            TimeScore(value=1.0, reason="-", blocks=2, total_hours=hours), make_resource()
        )
        assert score.value == pytest.approx(expected)

    def test_target_uses_min_atomic_size(self, make_resource):
        need = make_resource(min_atomic_size=120)
        score = compute_continuity_score(TimeScore(value=1.0, reason="-", blocks=2, total_hours=2.0), need)
        assert score.value == pytest.approx(0.25)


class TestSpaceScore:
    def test_linear_decay(self, berlin_need, berlin_capacity):
        score = compute_space_score(berlin_need, berlin_capacity)
        assert score.distance_km == pytest.approx(2.6, abs=0.1)
        assert score.value == pytest.approx(1 - score.distance_km / 50)
        assert score.radius_km == 50

    def test_beyond_radius(self, berlin_need, far_capacity):
        score = compute_space_score(berlin_need, far_capacity)
        assert score.value == 0.0
        assert "exceeds 50km radius" in score.reason

    def test_radius_boundary(self, berlin_need, berlin_capacity):
        distance = compute_space_score(berlin_need, berlin_capacity).distance_km
        need = berlin_need.model_copy(update={"search_radius_km": distance})
        assert compute_space_score(need, berlin_capacity).value == 0.0

    def test_zero_radius(self, berlin_need, berlin_capacity, make_resource):
        need = berlin_need.model_copy(update={"search_radius_km": 0})
        assert compute_space_score(need, berlin_capacity).value == 0.0
        same_spot = make_resource(id="c", latitude=52.52, longitude=13.40)
        assert compute_space_score(need, same_spot).value == 1.0

    def test_monotonic_in_distance(self, berlin_need, make_resource):
        values = [
            compute_space_score(berlin_need, make_resource(id="c", latitude=52.52 + step * 0.05, longitude=13.40)).value
            for step in range(12)
        ]
        assert values == sorted(values, reverse=True)
        assert values[0] == 1.0
        assert values[-1] == 0.0

    def test_remote_absorbs(self, berlin_need, remote_capacity):
        score = compute_space_score(berlin_need, remote_capacity)
        assert score.value == 1.0
        assert score.remote

    def test_remote_token(self, berlin_need, make_resource):
        cap = make_resource(id="c", h3_index="virtual")
        assert compute_space_score(berlin_need, cap, ScoringPolicy(remote_token="virtual")).value == 1.0

    def test_missing_location(self, berlin_need, make_resource):
        assert compute_space_score(berlin_need, make_resource(id="c")).value == 1.0

    def test_default_radius(self, berlin_need, make_resource):
        need = berlin_need.model_copy(update={"search_radius_km": None})
        cap = make_resource(id="c", latitude=52.52, longitude=13.60)
        score = compute_space_score(need, cap, ScoringPolicy(default_radius_km=10))
        assert score.radius_km == 10
        assert score.value == 0.0


class TestSkillsScore:
    @pytest.fixture
    def need(self, berlin_need):
        return berlin_need.model_copy(update={"required_skills": [RequiredSkill(id="math", level=3)]})

    def test_met(self, need, berlin_capacity):
        provider = Contact(id="p", skills=[Skill(id="math", level=4)])
        score = compute_skills_score(need, berlin_capacity, provider=provider)
        assert score.value == 1.0
        assert score.reason == "All skills met"
        assert score.checks[0].actual == 4

    def test_level_too_low(self, need, berlin_capacity):
        provider = Contact(id="p", skills=[Skill(id="math", level=2)])
        score = compute_skills_score(need, berlin_capacity, provider=provider)
        assert score.value == 0.0
        assert score.reason == "Missing: math"

    def test_unleveled_skill_counts(self, need, berlin_capacity):
        provider = Contact(id="p", skills=[Skill(id="math")])
        assert compute_skills_score(need, berlin_capacity, provider=provider).value == 1.0

    def test_no_provider(self, need, berlin_capacity):
        assert compute_skills_score(need, berlin_capacity).value == 0.0

    def test_no_requirements(self, berlin_need, berlin_capacity):
        score = compute_skills_score(berlin_need, berlin_capacity)
        assert score.value == 1.0
        assert score.reason == "No requirements"

    def test_bidirectional(self, berlin_need, berlin_capacity):
        cap = berlin_capacity.model_copy(update={"required_skills": [RequiredSkill(id="german")]})
        assert compute_skills_score(berlin_need, cap).value == 0.0
        seeker = Contact(id="s", skills=[Skill(id="german", level=1)])
        assert compute_skills_score(berlin_need, cap, seeker=seeker).value == 1.0


class TestTravelScore:
    @pytest.fixture
    def policy(self):
        return ScoringPolicy(travel=TravelPolicy(tortuosity=1.0))

    def test_no_previous(self, berlin_capacity):
        assert compute_travel_score(berlin_capacity).value == 1.0

    def test_remote(self, remote_capacity):
        previous = PreviousCommitment(latitude=60.0, longitude=20.0, end_time="09:59")
        assert compute_travel_score(remote_capacity, previous).value == 1.0

    def test_same_location(self, berlin_capacity):
        previous = PreviousCommitment(latitude=52.50, longitude=13.38, end_time="10:00")
        assert compute_travel_score(berlin_capacity, previous).value == 1.0

    def test_comfortable(self, berlin_capacity, policy):
        previous = PreviousCommitment(latitude=52.45, longitude=13.38, end_time="09:00")
        assert compute_travel_score(berlin_capacity, previous, policy).value == 1.0

    def test_tight(self, berlin_capacity, policy):
        previous = PreviousCommitment(latitude=52.00, longitude=13.38, end_time="09:00")
        score = compute_travel_score(berlin_capacity, previous, policy)
        assert score.speed_kmh == pytest.approx(55.6, abs=0.5)
        expected = 1 - (score.speed_kmh - 30) / 50 * 0.9
        assert score.value == pytest.approx(expected)
        assert 0.1 < score.value < 1.0

    def test_too_fast(self, berlin_capacity, policy):
        previous = PreviousCommitment(latitude=52.00, longitude=13.38, end_time="09:50")
        assert compute_travel_score(berlin_capacity, previous, policy).value == 0.0

    def test_overlapping_commitment(self, berlin_capacity):
        previous = PreviousCommitment(latitude=52.40, longitude=13.38, end_time="10:30")
        score = compute_travel_score(berlin_capacity, previous)
        assert score.value == 0.0
        assert score.reason == "Starts before previous ends"

    def test_tortuosity_lengthens_route(self, berlin_capacity, policy):
        previous = PreviousCommitment(latitude=52.00, longitude=13.38, end_time="09:00")
        straight = compute_travel_score(berlin_capacity, previous, policy)
        winding = compute_travel_score(berlin_capacity, previous)
        assert winding.distance_km == pytest.approx(straight.distance_km * 1.5)
        assert winding.value < straight.value


class TestQuantityScore:
    def test_full(self, berlin_need, make_resource):
        score = compute_quantity_score(berlin_need, make_resource(id="c", quantity=20))
        assert score.value == 1.0
        assert score.allocatable == 10
        assert score.unit == "hr"

    def test_partial(self, berlin_need, make_resource):
        score = compute_quantity_score(berlin_need, make_resource(id="c", quantity=4))
        assert score.value == pytest.approx(0.4)
        assert score.allocatable == 4

    def test_empty_capacity(self, berlin_need, make_resource):
        assert compute_quantity_score(berlin_need, make_resource(id="c", quantity=0)).value == 0.0
        zero_need = berlin_need.model_copy(update={"quantity": 0})
        assert compute_quantity_score(zero_need, make_resource(id="c", quantity=0)).value == 0.0

    def test_monotonic(self, berlin_need, make_resource):
        values = [compute_quantity_score(berlin_need, make_resource(id="c", quantity=q)).value for q in range(0, 15)]
        assert values == sorted(values)


class TestAffinityScore:
    def test_default_trust(self):
        score = compute_affinity_score("a", "b")
        assert score.value == 1.0
        assert score.reason == "Default trust"

    def test_min_of_directions(self):
        score = compute_affinity_score("a", "b", provider_weights={"b": 0.4}, seeker_weights={"a": 0.7})
        assert score.value == pytest.approx(0.4)
        assert score.reason == "Trust 40%"

    def test_blocked(self):
        assert compute_affinity_score("a", "b", seeker_weights={"a": 0.0}).reason == "Blocked"

    def test_weights_clamped(self):
        assert compute_affinity_score("a", "b", provider_weights={"b": 1.7}).value == 1.0
        assert compute_affinity_score("a", "b", provider_weights={"b": -3}).value == 0.0

    def test_missing_owner(self):
        assert compute_affinity_score(None, None, {"x": 0.1}, {"y": 0.1}).value == 1.0


class TestRegistry:
    def test_dimension_order(self):
        assert [name for name, _ in DIMENSIONS] == list(models.DIMENSIONS)

    def test_scorers_share_signature(self, berlin_need, berlin_capacity):
        ctx = FeasibilityContext()
        for name, scorer in DIMENSIONS:
            score = scorer(berlin_need, berlin_capacity, ctx, ScoringPolicy())
            assert 0.0 <= score.value <= 1.0, name
