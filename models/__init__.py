"""
Data models package for the Feasibility Matcher.

This package exports the core pillars of the data architecture:
1. Input (Resource, Contact, AvailabilityWindow)
2. Output (Scores, Breakdown, FeasibilityStatus, MatchRecord)
3. Configuration (IndexConfig, ScoringPolicy, TravelPolicy)
"""

from .availability import (
    AvailabilityWindow,
    DayOfWeek,
    DaySchedule,
    MonthSchedule,
    TimeRange,
    WeekSchedule
)

from .resource import (
    Contact,
    PreviousCommitment,
    RequiredSkill,
    Resource,
    Skill
)

from .match import (
    DIMENSIONS,
    AffinityScore,
    BlockReason,
    Breakdown,
    FeasibilityStatus,
    ImpossibleStatus,
    MatchRecord,
    Overlap,
    PossibleStatus,
    QuantityScore,
    RiskFactor,
    Score,
    SemanticScore,
    SkillCheck,
    SkillsScore,
    SpaceScore,
    TimeScore,
    TravelScore
)

from .config import (
    IndexConfig,
    MatcherConfig,
    ScoringPolicy,
    TravelPolicy
)

__all__ = [
    # --- Input Models ---
    "AvailabilityWindow",
    "DayOfWeek",
    "DaySchedule",
    "MonthSchedule",
    "TimeRange",
    "WeekSchedule",
    "Contact",
    "PreviousCommitment",
    "RequiredSkill",
    "Resource",
    "Skill",

    # --- Output Models ---
    "DIMENSIONS",
    "AffinityScore",
    "BlockReason",
    "Breakdown",
    "FeasibilityStatus",
    "ImpossibleStatus",
    "MatchRecord",
    "Overlap",
    "PossibleStatus",
    "QuantityScore",
    "RiskFactor",
    "Score",
    "SemanticScore",
    "SkillCheck",
    "SkillsScore",
    "SpaceScore",
    "TimeScore",
    "TravelScore",

    # --- Configuration ---
    "IndexConfig",
    "MatcherConfig",
    "ScoringPolicy",
    "TravelPolicy",
]
