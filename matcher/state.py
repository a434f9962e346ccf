"""
Match run state.

Collects the outcome of one need evaluated against its candidates and
turns it into reports:
1. Ranked possible matches (by confidence)
2. Rejections with their reasons
3. Durable MatchRecords for the caller to persist
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models import Breakdown, FeasibilityStatus, MatchRecord, Resource, SemanticScore
from .feasibility import build_match_record, get_block_reasons


@dataclass
class Evaluation:
    """One evaluated need/capacity pair."""
    capacity: Resource
    status: FeasibilityStatus
    breakdown: Breakdown

    @property
    def confidence(self) -> float:
        return self.status.confidence


@dataclass
class MatchRun:
    """Outcome of MatchEngine.find_matches() for a single need."""
    need: Resource
    epoch: int = 0
    candidates_retrieved: int = 0
    evaluations: List[Evaluation] = field(default_factory=list)

    def add(self, capacity: Resource, status: FeasibilityStatus, breakdown: Breakdown) -> None:
        self.evaluations.append(Evaluation(capacity=capacity, status=status, breakdown=breakdown))

    @property
    def possible(self) -> List[Evaluation]:
        """Feasible pairings, best first (ties broken by capacity id)."""
        found = [e for e in self.evaluations if e.status.type == "possible"]
        found.sort(key=lambda e: (-e.confidence, e.capacity.id))
        return found

    @property
    def impossible(self) -> List[Evaluation]:
        return [e for e in self.evaluations if e.status.type == "impossible"]

    def best(self) -> Optional[Evaluation]:
        ranked = self.possible
        return ranked[0] if ranked else None

    def limit(self, n: Optional[int]) -> None:
        """Keep only the top-n possible matches (rejections are kept for reporting)."""
        if n is None:
            return
        keep = {id(e) for e in self.possible[:n]}
        self.evaluations = [e for e in self.evaluations if e.status.type == "impossible" or id(e) in keep]

    # --- Reporting ---

    def get_statistics(self) -> Dict[str, Any]:
        total = len(self.evaluations)
        possible = self.possible
        if not total:
            return {
                "need_id": self.need.id,
                "candidates_retrieved": self.candidates_retrieved,
                "evaluated": 0,
                "possible": 0,
                "impossible": 0,
            }

        confidences = [e.confidence for e in possible]
        risk_counts = Counter(
            reason
            for e in possible
            for reason in (e.status.risk_factors or [])
        )
        blocked_dims = Counter(
            name
            for e in self.impossible
            for name, value in e.status.scores.items()
            if value == 0
        )

        return {
            "need_id": self.need.id,
            "epoch": self.epoch,
            "candidates_retrieved": self.candidates_retrieved,
            "evaluated": total,
            "possible": len(possible),
            "impossible": total - len(possible),
            "success_rate": f"{len(possible) / total * 100:.1f}%",
            "avg_confidence": round(sum(confidences) / len(confidences), 3) if confidences else 0.0,
            "best_match": possible[0].capacity.id if possible else None,
            "blocking_dimensions": dict(blocked_dims),
            "risk_factor_count": sum(risk_counts.values()),
        }

    def get_rejection_report(self) -> List[Dict]:
        """
        Why each rejected capacity failed, most-blocked first.
        This is the user-facing explanation surface.
        """
        report = []
        for e in self.impossible:
            codes = get_block_reasons(e.breakdown)
            report.append({
                "capacity_id": e.capacity.id,
                "blocked_by": [c.value for c in codes],
                "reasons": list(e.status.reasons),
            })
        report.sort(key=lambda r: (-len(r["blocked_by"]), r["capacity_id"]))
        return report

    def get_reason_summary(self) -> Dict[str, int]:
        """How often each block code occurs across rejections."""
        summary = defaultdict(int)
        for e in self.impossible:
            for code in get_block_reasons(e.breakdown):
                summary[code.value] += 1
        return dict(summary)

    def to_records(self, semantic: Optional[SemanticScore] = None, include_impossible: bool = True) -> List[MatchRecord]:
        ordered = self.possible + (self.impossible if include_impossible else [])
        return [
            build_match_record(self.need.id, e.capacity.id, e.breakdown, semantic=semantic)
            for e in ordered
        ]
