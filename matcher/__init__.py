"""
Feasibility matching package.

windows     -> time zone aware availability intersection
scoring     -> the seven dimension scorers
feasibility -> verdicts and match records
engine      -> candidate retrieval + parallel evaluation
"""

from .context import FeasibilityContext
from .windows import (
    contiguous_blocks,
    flatten_to_utc,
    intersect_time_ranges,
    intersect_windows,
    windows_overlap
)
from .scoring import (
    DIMENSIONS,
    compute_affinity_score,
    compute_continuity_score,
    compute_quantity_score,
    compute_skills_score,
    compute_space_score,
    compute_time_score,
    compute_travel_score
)
from .feasibility import (
    FeasibilityChecker,
    aggregate_score,
    build_match_record,
    calculate_feasibility,
    get_block_reasons,
    get_risk_factors
)
from .state import Evaluation, MatchRun
from .engine import MatchEngine

__all__ = [
    "FeasibilityContext",
    "contiguous_blocks",
    "flatten_to_utc",
    "intersect_time_ranges",
    "intersect_windows",
    "windows_overlap",
    "DIMENSIONS",
    "compute_affinity_score",
    "compute_continuity_score",
    "compute_quantity_score",
    "compute_skills_score",
    "compute_space_score",
    "compute_time_score",
    "compute_travel_score",
    "FeasibilityChecker",
    "aggregate_score",
    "build_match_record",
    "calculate_feasibility",
    "get_block_reasons",
    "get_risk_factors",
    "Evaluation",
    "MatchRun",
    "MatchEngine",
]
