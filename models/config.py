"""
Configuration for the Feasibility Matcher.

Single source of truth for knobs/policies. Each index or checker instance
receives its own config, so several independently configured instances
(e.g. different regions or resolutions) can live in the same process.
"""

import os
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, model_validator, ConfigDict


class IndexConfig(BaseModel):
    """Spatial index settings."""
    default_resolution: int = Field(default=7, ge=0, le=15, description="~1.22km hexagon edge")
    leaf_resolution: int = Field(default=9, ge=0, le=15, description="Finest level items are indexed at")
    root_resolution: int = Field(default=0, ge=0, le=15, description="Coarsest level of the hierarchy")
    default_radius_km: float = Field(default=50.0, gt=0)
    remote_token: str = Field(default="remote", min_length=1)
    max_query_rings: int = Field(default=10, ge=1, description="Upper bound on k-ring size for candidate queries")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_hierarchy(self):
        if self.root_resolution > self.leaf_resolution:
            raise ValueError("root_resolution must be <= leaf_resolution")
        return self


class TravelPolicy(BaseModel):
    """
    Travel chaining thresholds. Defaults assume mixed urban/regional roads;
    tune per deployment terrain.
    """
    tortuosity: float = Field(default=1.5, ge=1.0, description="Road distance / straight-line distance")
    comfortable_speed_kmh: float = Field(default=30.0, gt=0)
    max_speed_kmh: float = Field(default=80.0, gt=0)
    min_score: float = Field(default=0.1, ge=0, le=1, description="Floor reached at max_speed_kmh")
    same_location_km: float = Field(default=0.1, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_speeds(self):
        if self.max_speed_kmh <= self.comfortable_speed_kmh:
            raise ValueError("max_speed_kmh must exceed comfortable_speed_kmh")
        return self


class ScoringPolicy(BaseModel):
    """Dimension scorer settings."""
    default_radius_km: float = Field(default=50.0, gt=0)
    default_block_minutes: float = Field(default=60.0, gt=0, description="Continuity target without min_atomic_size")
    low_trust_threshold: float = Field(default=0.5, ge=0, le=1)
    remote_token: str = Field(default="remote", min_length=1)
    reference_date: date = Field(default=date(2024, 1, 1), description="Week used to resolve time zone offsets")
    travel: TravelPolicy = Field(default_factory=TravelPolicy)

    model_config = ConfigDict(frozen=True)


class MatcherConfig(BaseModel):
    """Everything a MatchEngine needs."""
    index: IndexConfig = Field(default_factory=IndexConfig)
    scoring: ScoringPolicy = Field(default_factory=ScoringPolicy)
    max_workers: Optional[int] = Field(default=None, ge=1, description="Thread pool size (None = executor default)")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(cls, prefix: str = "MATCHER_") -> "MatcherConfig":
        """
        Build a config from environment variables, e.g.
        MATCHER_RESOLUTION=8, MATCHER_RADIUS_KM=25, MATCHER_MAX_SPEED_KMH=100.
        Unset variables keep their defaults.
        """
        env = {k[len(prefix):]: v for k, v in os.environ.items() if k.startswith(prefix)}

        index = {}
        if "RESOLUTION" in env: index["default_resolution"] = env["RESOLUTION"]
        if "LEAF_RESOLUTION" in env: index["leaf_resolution"] = env["LEAF_RESOLUTION"]
        if "REMOTE_TOKEN" in env: index["remote_token"] = env["REMOTE_TOKEN"]
        if "MAX_QUERY_RINGS" in env: index["max_query_rings"] = env["MAX_QUERY_RINGS"]

        travel = {}
        if "TORTUOSITY" in env: travel["tortuosity"] = env["TORTUOSITY"]
        if "COMFORTABLE_SPEED_KMH" in env: travel["comfortable_speed_kmh"] = env["COMFORTABLE_SPEED_KMH"]
        if "MAX_SPEED_KMH" in env: travel["max_speed_kmh"] = env["MAX_SPEED_KMH"]

        scoring = {"travel": TravelPolicy(**travel)}
        if "RADIUS_KM" in env:
            index["default_radius_km"] = env["RADIUS_KM"]
            scoring["default_radius_km"] = env["RADIUS_KM"]
        if "REMOTE_TOKEN" in env:
            scoring["remote_token"] = env["REMOTE_TOKEN"]

        return cls(
            index=IndexConfig(**index),
            scoring=ScoringPolicy(**scoring),
            max_workers=env.get("MAX_WORKERS") or None,
        )
