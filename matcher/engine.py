"""
The Matching Engine.

Pipeline for one need:
1. Retrieval  - one radius query against the (read-only) hex index
2. Scoring    - every (need, candidate) pair through the feasibility checker,
                fanned out over a thread pool (scorers share no state)
3. Ranking    - possible matches ordered by confidence in a MatchRun
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from models import MatcherConfig, Resource
from spatial import HexIndex
from .context import FeasibilityContext
from .feasibility import FeasibilityChecker
from .state import MatchRun

logger = logging.getLogger(__name__)

ContextFactory = Callable[[Resource], FeasibilityContext]


class MatchEngine:
    """
    Finds feasible capacities for needs.
    The index must not be mutated while find_matches() runs; rebuild and
    swap in a new engine instead.
    """

    def __init__(
        self,
        index: HexIndex,
        checker: Optional[FeasibilityChecker] = None,
        max_workers: Optional[int] = None
    ):
        self.index = index
        self.checker = checker or FeasibilityChecker()
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, capacities: List[Resource], config: Optional[MatcherConfig] = None) -> "MatchEngine":
        config = config or MatcherConfig()
        index = HexIndex.build(capacities, config.index)
        return cls(index, FeasibilityChecker(config.scoring), config.max_workers)

    def find_matches(
        self,
        need: Resource,
        ctx: Optional[FeasibilityContext] = None,
        radius_km: Optional[float] = None,
        limit: Optional[int] = None,
        context_for: Optional[ContextFactory] = None
    ) -> MatchRun:
        """
        Evaluate `need` against every indexed candidate near it.

        `ctx` applies to every pair; `context_for(capacity)` overrides it per
        capacity (e.g. to look up the provider's contact and trust weights).
        """
        ctx = ctx or FeasibilityContext()
        if radius_km is None:
            radius_km = need.search_radius_km if need.search_radius_km is not None else self.index.config.default_radius_km

        candidates = [c for c in self.index.candidates(need, radius_km) if c.id != need.id]
        run = MatchRun(need=need, epoch=self.index.epoch, candidates_retrieved=len(candidates))
        logger.info(f"Need {need.id}: {len(candidates)} candidates within {radius_km:g}km (epoch {self.index.epoch})")

        if not candidates:
            return run

        def evaluate(capacity: Resource):
            pair_ctx = context_for(capacity) if context_for else ctx
            breakdown = self.checker.compute_breakdown(need, capacity, pair_ctx)
            status = self.checker.classify(breakdown, include_breakdown=pair_ctx.include_breakdown)
            return capacity, status, breakdown

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for capacity, status, breakdown in pool.map(evaluate, candidates):
                run.add(capacity, status, breakdown)

        run.limit(limit)
        logger.info(f"Need {need.id}: {len(run.possible)} possible, {len(run.impossible)} impossible")
        return run

    def match_all(self, needs: List[Resource], ctx: Optional[FeasibilityContext] = None,
                  limit: Optional[int] = None) -> List[MatchRun]:
        return [self.find_matches(need, ctx, limit=limit) for need in needs]
