"""
Unit tests for verdicts and match records.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from matcher import (
    FeasibilityChecker,
    FeasibilityContext,
    aggregate_score,
    build_match_record,
    calculate_feasibility,
    compute_space_score,
    get_block_reasons
)
from models import (
    AvailabilityWindow,
    BlockReason,
    Contact,
    DaySchedule,
    RequiredSkill,
    RiskFactor,
    SemanticScore,
    Skill,
    TimeRange
)


@pytest.fixture
def checker():
    return FeasibilityChecker()


class TestScenarios:
    def test_berlin_tutoring_is_possible(self, berlin_need, berlin_capacity):
        status = calculate_feasibility(berlin_need, berlin_capacity)
        assert status.type == "possible"
        space = compute_space_score(berlin_need, berlin_capacity).value
        assert status.confidence == pytest.approx(space)
        assert status.confidence > 0.9
        assert status.scores["time"] == 1.0
        assert status.scores["quantity"] == 1.0

    def test_far_capacity_is_impossible(self, berlin_need, far_capacity):
        status = calculate_feasibility(berlin_need, far_capacity)
        assert status.type == "impossible"
        assert status.confidence == 0.0
        assert status.scores["space"] == 0.0
        assert any("exceeds 50km radius" in r for r in status.reasons)

    def test_remote_capacity_is_full_match(self, berlin_need, remote_capacity):
        status = calculate_feasibility(berlin_need, remote_capacity)
        assert status.type == "possible"
        assert status.confidence == pytest.approx(1.0)
        assert status.risk_factors is None


class TestVerdict:
    def test_any_zero_blocks(self, berlin_need, berlin_capacity):
        cap = berlin_capacity.model_copy(update={"quantity": 0})
        status = calculate_feasibility(berlin_need, cap)
        assert status.type == "impossible"
        assert status.reasons == ["None available"]

    def test_all_blocking_reasons_listed(self, berlin_need, far_capacity):
        need = berlin_need.model_copy(update={"required_skills": [RequiredSkill(id="math")]})
        status = calculate_feasibility(need, far_capacity)
        assert "Missing: math" in status.reasons
        assert len(status.reasons) == 2

    def test_confidence_is_product(self, checker, berlin_need, berlin_capacity):
        cap = berlin_capacity.model_copy(update={"quantity": 5})
        status = checker.evaluate(berlin_need, cap)
        assert status.confidence == pytest.approx(status.scores["space"] * 0.5)
        assert len(status.risk_factors) == 2

    def test_tiny_scores_keep_positive_confidence(self, checker, berlin_need, berlin_capacity):
        need = berlin_need.model_copy(update={"quantity": 1e200})
        cap = berlin_capacity.model_copy(update={"quantity": 1, "offerer": "p"})
        ctx = FeasibilityContext(seeker_weights={"p": 1e-200})
        status = checker.evaluate(need, cap, ctx)
        assert status.type == "possible"
        assert status.confidence > 0
        record = checker.compute_match_record(need, cap, ctx)
        assert record.status == "possible"
        assert record.score > 0

    def test_idempotent(self, checker, berlin_need, berlin_capacity):
        assert checker.evaluate(berlin_need, berlin_capacity) == checker.evaluate(berlin_need, berlin_capacity)

    def test_breakdown_only_on_request(self, checker, berlin_need, berlin_capacity):
        assert checker.evaluate(berlin_need, berlin_capacity).breakdown is None
        status = checker.evaluate(berlin_need, berlin_capacity, FeasibilityContext(include_breakdown=True))
        assert status.breakdown.space.distance_km == pytest.approx(2.6, abs=0.1)

    def test_context_skills_and_trust(self, checker, berlin_need, berlin_capacity):
        need = berlin_need.model_copy(update={"required_skills": [RequiredSkill(id="math", level=3)], "offerer": "s"})
        cap = berlin_capacity.model_copy(update={"offerer": "p"})
        ctx = FeasibilityContext(
            provider=Contact(id="p", skills=[Skill(id="math", level=5)]),
            seeker_weights={"p": 0.0},
        )
        status = checker.evaluate(need, cap, ctx)
        assert status.type == "impossible"
        assert status.reasons == ["Blocked"]


class TestBlockAndRiskCodes:
    def test_continuity_folds_into_time(self, checker, berlin_need, make_resource, make_window):
        cap = make_resource(id="c", latitude=52.52, longitude=13.40,
                            availability_window=make_window(("tuesday", "09:00", "10:00")))
        breakdown = checker.compute_breakdown(berlin_need, cap)
        assert breakdown.continuity.value == 0.0
        assert get_block_reasons(breakdown) == [BlockReason.TIME_MISMATCH]

    def test_codes_per_dimension(self, checker, berlin_need, far_capacity):
        cap = far_capacity.model_copy(update={"quantity": 0})
        assert get_block_reasons(checker.compute_breakdown(berlin_need, cap)) == [
            BlockReason.LOCATION_MISMATCH,
            BlockReason.QUANTITY_MISMATCH,
        ]

    @pytest.mark.parametrize("weight,flagged", [(0.4, True), (0.6, False)])
    def test_low_trust(self, checker, berlin_need, berlin_capacity, weight, flagged):
        cap = berlin_capacity.model_copy(update={"offerer": "p"})
        record = checker.compute_match_record(berlin_need, cap, FeasibilityContext(seeker_weights={"p": weight}))
        assert record.status == "possible"
        assert (RiskFactor.LOW_TRUST in record.risks) is flagged

    def test_partial_quantity_risk(self, checker, berlin_need, berlin_capacity):
        record = checker.compute_match_record(berlin_need, berlin_capacity.model_copy(update={"quantity": 4}))
        assert RiskFactor.PARTIAL_QUANTITY in record.risks
        assert record.allocatable == 4

    def test_fragmented_time_risk(self, checker, berlin_need, make_resource):
        window = AvailabilityWindow(day_schedules=[DaySchedule(days=["monday"], time_ranges=[
            TimeRange(start_time="09:00", end_time="10:00"),
            TimeRange(start_time="11:00", end_time="12:00"),
        ])])
        cap = make_resource(id="c", latitude=52.52, longitude=13.40, availability_window=window)
        record = checker.compute_match_record(berlin_need, cap)
        assert record.breakdown.continuity.value == pytest.approx(0.5)
        assert record.risks == [RiskFactor.FRAGMENTED_TIME]


class TestMatchRecord:
    def test_build(self, checker, berlin_need, berlin_capacity):
        breakdown = checker.compute_breakdown(berlin_need, berlin_capacity)
        record = build_match_record("need_berlin", "cap_berlin", breakdown)
        assert len(record.id) == 32
        assert record.status == "possible"
        assert record.score == pytest.approx(aggregate_score(breakdown))
        assert record.blocked_by == []
        assert record.computed_at.tzinfo is not None

    def test_geometric_mean(self, checker, berlin_need, berlin_capacity):
        breakdown = checker.compute_breakdown(berlin_need, berlin_capacity)
        space = breakdown.space.value
        assert aggregate_score(breakdown) == pytest.approx(space ** (1 / 7))

    def test_frozen(self, checker, berlin_need, berlin_capacity):
        record = checker.compute_match_record(berlin_need, berlin_capacity)
        with pytest.raises(ValidationError):
            record.score = 0.1

    def test_unique_ids(self, checker, berlin_need, berlin_capacity):
        first = checker.compute_match_record(berlin_need, berlin_capacity)
        second = checker.compute_match_record(berlin_need, berlin_capacity)
        assert first.id != second.id
        assert first.breakdown == second.breakdown

    def test_impossible_record_has_no_risks(self, checker, berlin_need, far_capacity):
        record = checker.compute_match_record(berlin_need, far_capacity.model_copy(update={"quantity": 4}))
        assert record.status == "impossible"
        assert record.score == 0.0
        assert record.risks == []

    def test_explicit_fields(self, checker, berlin_need, berlin_capacity):
        breakdown = checker.compute_breakdown(berlin_need, berlin_capacity)
        semantic = SemanticScore(similarity=0.8, blended=0.7, weight=0.3, need_expr="math", capacity_expr="algebra")
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        record = build_match_record("n", "c", breakdown, record_id="rec-1", semantic=semantic, computed_at=stamp)
        assert record.id == "rec-1"
        assert record.semantic.similarity == 0.8
        assert record.computed_at == stamp

    def test_semantic_from_context(self, checker, berlin_need, berlin_capacity):
        semantic = SemanticScore(similarity=0.5, blended=0.5, weight=0.5, need_expr="a", capacity_expr="b")
        record = checker.compute_match_record(berlin_need, berlin_capacity, FeasibilityContext(semantic=semantic))
        assert record.semantic == semantic

    def test_serializes(self, checker, berlin_need, berlin_capacity):
        record = checker.compute_match_record(berlin_need, berlin_capacity)
        data = record.model_dump(mode="json")
        assert data["breakdown"]["space"]["distance_km"] > 0
        assert data["status"] == "possible"
