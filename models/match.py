"""
Match output models for the Feasibility Matcher.

This module defines the 'Output' of the feasibility checker:
1. Per-dimension scores (each a value in [0,1] plus a human-readable reason)
2. The Breakdown of all seven dimensions for one need/capacity pair
3. The FeasibilityStatus verdict (possible / impossible)
4. The durable MatchRecord

Scores extend the base Score rather than wrapping it, and every score
explains itself through `reason`.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from .availability import DayOfWeek, TimeRange

DIMENSIONS = ("time", "space", "skills", "travel", "quantity", "affinity", "continuity")


class BlockReason(str, Enum):
    """Why a pairing is impossible."""
    TIME_MISMATCH = "TIME_MISMATCH"
    LOCATION_MISMATCH = "LOCATION_MISMATCH"
    SKILL_MISMATCH = "SKILL_MISMATCH"
    QUANTITY_MISMATCH = "QUANTITY_MISMATCH"
    TRAVEL_TIME_VIOLATION = "TRAVEL_TIME_VIOLATION"
    EXCLUSION_RULE = "EXCLUSION_RULE"


class RiskFactor(str, Enum):
    """Soft warnings on an otherwise feasible pairing."""
    FRAGMENTED_TIME = "FRAGMENTED_TIME"
    TIGHT_TRAVEL = "TIGHT_TRAVEL"
    PARTIAL_QUANTITY = "PARTIAL_QUANTITY"
    LOW_TRUST = "LOW_TRUST"


class Score(BaseModel):
    """Base score: normalized value with explanation."""
    value: float = Field(ge=0, le=1)
    reason: str

    model_config = ConfigDict(frozen=True)


class Overlap(BaseModel):
    """Overlapping ranges on a single weekday (UTC)."""
    day: DayOfWeek
    ranges: List[TimeRange]
    minutes: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class TimeScore(Score):
    overlaps: Optional[List[Overlap]] = None
    total_hours: Optional[float] = Field(default=None, ge=0)
    blocks: Optional[int] = Field(default=None, ge=0)
    max_block_min: Optional[int] = Field(default=None, ge=0)


class SpaceScore(Score):
    distance_km: Optional[float] = Field(default=None, ge=0)
    radius_km: Optional[float] = Field(default=None, ge=0)
    remote: Optional[bool] = None


class QuantityScore(Score):
    need: float = Field(ge=0)
    available: float = Field(ge=0)
    allocatable: float = Field(ge=0)
    unit: Optional[str] = None


class SkillCheck(BaseModel):
    id: str
    required: Optional[float] = None
    actual: Optional[float] = None
    met: bool

    model_config = ConfigDict(frozen=True)


class SkillsScore(Score):
    checks: Optional[List[SkillCheck]] = None


class TravelScore(Score):
    distance_km: Optional[float] = Field(default=None, ge=0)
    time_hours: Optional[float] = Field(default=None, ge=0)
    speed_kmh: Optional[float] = Field(default=None, ge=0)


class AffinityScore(Score):
    seeker_to_provider: Optional[float] = None
    provider_to_seeker: Optional[float] = None


class SemanticScore(BaseModel):
    """Embedding/category similarity computed upstream and attached to records."""
    similarity: float = Field(ge=0, le=1)
    blended: float = Field(ge=0, le=1)
    weight: float = Field(ge=0, le=1)
    need_expr: str
    capacity_expr: str

    model_config = ConfigDict(frozen=True)


class Breakdown(BaseModel):
    """All seven dimension scores for one need/capacity pair."""
    time: TimeScore
    space: SpaceScore
    skills: SkillsScore
    travel: TravelScore
    quantity: QuantityScore
    affinity: AffinityScore
    continuity: Score

    model_config = ConfigDict(frozen=True)

    def items(self):
        """(dimension, score) pairs in fixed dimension order."""
        return [(name, getattr(self, name)) for name in DIMENSIONS]

    def values(self) -> Dict[str, float]:
        return {name: score.value for name, score in self.items()}


class ImpossibleStatus(BaseModel):
    type: Literal["impossible"] = "impossible"
    reasons: List[str] = Field(min_length=1)
    scores: Dict[str, float]
    breakdown: Optional[Breakdown] = None

    model_config = ConfigDict(frozen=True)

    @property
    def confidence(self) -> float:
        return 0.0


class PossibleStatus(BaseModel):
    type: Literal["possible"] = "possible"
    confidence: float = Field(ge=0, le=1)
    risk_factors: Optional[List[str]] = None
    scores: Dict[str, float]
    breakdown: Optional[Breakdown] = None

    model_config = ConfigDict(frozen=True)


FeasibilityStatus = Union[PossibleStatus, ImpossibleStatus]


class MatchRecord(BaseModel):
    """
    The durable artifact of one evaluated pairing.
    Never mutated; corrections are new records.
    """
    id: str = Field(min_length=1)
    need_id: str = Field(min_length=1)
    capacity_id: str = Field(min_length=1)
    status: Literal["possible", "impossible"]
    score: float = Field(ge=0, le=1, description="Geometric mean of dimension values")
    breakdown: Breakdown
    semantic: Optional[SemanticScore] = None
    allocatable: Optional[float] = Field(default=None, ge=0)
    computed_at: datetime
    blocked_by: List[BlockReason] = Field(default_factory=list)
    risks: List[RiskFactor] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
