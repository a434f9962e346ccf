"""
Feasibility aggregation.

Combines the seven dimension scores into a verdict:
- confidence = product of all values (AND semantics: any zero blocks)
- zero-valued dimensions contribute their reason to `reasons`
- dimensions strictly between 0 and 1 contribute to `risk_factors`

Also builds the durable MatchRecord for a pairing.
"""

import logging
import math
import sys
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from models import (
    BlockReason,
    Breakdown,
    FeasibilityStatus,
    ImpossibleStatus,
    MatchRecord,
    PossibleStatus,
    Resource,
    RiskFactor,
    ScoringPolicy,
    SemanticScore
)
from .context import FeasibilityContext
from .scoring import DEFAULT_POLICY, DIMENSIONS

logger = logging.getLogger(__name__)

_BLOCK_CODES = {
    "time": BlockReason.TIME_MISMATCH,
    "space": BlockReason.LOCATION_MISMATCH,
    "skills": BlockReason.SKILL_MISMATCH,
    "travel": BlockReason.TRAVEL_TIME_VIOLATION,
    "quantity": BlockReason.QUANTITY_MISMATCH,
    "affinity": BlockReason.EXCLUSION_RULE,
    "continuity": BlockReason.TIME_MISMATCH,
}


def get_block_reasons(breakdown: Breakdown) -> List[BlockReason]:
    """Enum codes for every zero-valued dimension (deduplicated, in order)."""
    codes: List[BlockReason] = []
    for name, score in breakdown.items():
        code = _BLOCK_CODES[name]
        if score.value == 0 and code not in codes:
            codes.append(code)
    return codes


def get_risk_factors(breakdown: Breakdown, low_trust_threshold: float = 0.5) -> List[RiskFactor]:
    risks = []
    if 0 < breakdown.continuity.value < 1:
        risks.append(RiskFactor.FRAGMENTED_TIME)
    if 0 < breakdown.travel.value < 1:
        risks.append(RiskFactor.TIGHT_TRAVEL)
    if 0 < breakdown.quantity.value < 1:
        risks.append(RiskFactor.PARTIAL_QUANTITY)
    if 0 < breakdown.affinity.value < low_trust_threshold:
        risks.append(RiskFactor.LOW_TRUST)
    return risks


def aggregate_score(breakdown: Breakdown) -> float:
    """Geometric mean of the dimension values (ranking score for records)."""
    values = list(breakdown.values().values())
    if not values:
        return 1.0
    if min(values) == 0:
        return 0.0
    # log space so tiny values do not underflow the product
    return math.exp(math.fsum(math.log(v) for v in values) / len(values))


def build_match_record(
    need_id: str,
    capacity_id: str,
    breakdown: Breakdown,
    record_id: Optional[str] = None,
    semantic: Optional[SemanticScore] = None,
    allocatable: Optional[float] = None,
    computed_at: Optional[datetime] = None,
    low_trust_threshold: float = 0.5
) -> MatchRecord:
    """Pure constructor for a MatchRecord. No side effects."""
    blocked_by = get_block_reasons(breakdown)
    return MatchRecord(
        id=record_id or uuid.uuid4().hex,
        need_id=need_id,
        capacity_id=capacity_id,
        status="impossible" if blocked_by else "possible",
        score=min(1.0, aggregate_score(breakdown)),
        breakdown=breakdown,
        semantic=semantic,
        allocatable=allocatable if allocatable is not None else breakdown.quantity.allocatable,
        computed_at=computed_at or datetime.now(timezone.utc),
        blocked_by=blocked_by,
        risks=[] if blocked_by else get_risk_factors(breakdown, low_trust_threshold),
    )


class FeasibilityChecker:
    """
    Evaluates need/capacity pairs under one scoring policy.
    Holds no mutable state; one instance can serve many threads.
    """

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or DEFAULT_POLICY

    def compute_breakdown(self, need: Resource, capacity: Resource,
                          ctx: Optional[FeasibilityContext] = None) -> Breakdown:
        ctx = ctx or FeasibilityContext()
        scores = {name: scorer(need, capacity, ctx, self.policy) for name, scorer in DIMENSIONS}
        return Breakdown(**scores)

    def evaluate(self, need: Resource, capacity: Resource,
                 ctx: Optional[FeasibilityContext] = None) -> FeasibilityStatus:
        ctx = ctx or FeasibilityContext()
        breakdown = self.compute_breakdown(need, capacity, ctx)
        status = self.classify(breakdown, include_breakdown=ctx.include_breakdown)
        if status.type == "impossible":
            logger.debug(f"{need.id} x {capacity.id} impossible: {'; '.join(status.reasons)}")
        return status

    def classify(self, breakdown: Breakdown, include_breakdown: bool = False) -> FeasibilityStatus:
        """Verdict from an already computed breakdown."""
        scores: Dict[str, float] = breakdown.values()
        confidence = math.prod(scores.values())
        if confidence == 0 and min(scores.values()) > 0:
            # underflow; only a blocked dimension may give zero confidence
            confidence = sys.float_info.min
        attached = breakdown if include_breakdown else None

        reasons = [score.reason for _, score in breakdown.items() if score.value == 0]
        if reasons:
            return ImpossibleStatus(reasons=reasons, scores=scores, breakdown=attached)

        risk_factors = [score.reason for _, score in breakdown.items() if 0 < score.value < 1]
        return PossibleStatus(
            confidence=confidence,
            risk_factors=risk_factors or None,
            scores=scores,
            breakdown=attached
        )

    def compute_match_record(self, need: Resource, capacity: Resource,
                             ctx: Optional[FeasibilityContext] = None) -> MatchRecord:
        ctx = ctx or FeasibilityContext()
        breakdown = self.compute_breakdown(need, capacity, ctx)
        return build_match_record(
            need.id,
            capacity.id,
            breakdown,
            semantic=ctx.semantic,
            low_trust_threshold=self.policy.low_trust_threshold
        )


def calculate_feasibility(need: Resource, capacity: Resource,
                          ctx: Optional[FeasibilityContext] = None,
                          policy: Optional[ScoringPolicy] = None) -> FeasibilityStatus:
    """Convenience wrapper around FeasibilityChecker(policy).evaluate()."""
    return FeasibilityChecker(policy).evaluate(need, capacity, ctx)
