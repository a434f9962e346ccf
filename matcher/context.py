"""Per-evaluation context: who is on each side and what we know about them."""

from typing import Dict, Optional
from pydantic import BaseModel, Field, ConfigDict

from models import Contact, PreviousCommitment, SemanticScore


class FeasibilityContext(BaseModel):
    """
    Optional inputs to a feasibility evaluation.
    Trust weight maps are read-only snapshots keyed by agent id.
    """
    provider: Optional[Contact] = Field(default=None, description="Person behind the capacity")
    seeker: Optional[Contact] = Field(default=None, description="Person behind the need")
    provider_weights: Optional[Dict[str, float]] = Field(default=None, description="Provider's trust in others")
    seeker_weights: Optional[Dict[str, float]] = Field(default=None, description="Seeker's trust in others")
    previous_commitment: Optional[PreviousCommitment] = None
    include_breakdown: bool = False
    semantic: Optional[SemanticScore] = None

    model_config = ConfigDict(frozen=True)
