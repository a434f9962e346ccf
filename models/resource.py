"""
Resource and Contact data models for the Feasibility Matcher.

This module defines both sides of a match:
1. Resources (a 'need' or a 'capacity' - same shape, different role)
2. Contacts (people holding skills, used to validate skill requirements)
3. Previous commitments (context that limits travel)
"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from .availability import AvailabilityWindow, check_hhmm


class Skill(BaseModel):
    """A skill held by a contact."""
    id: str = Field(min_length=1, description="Skill identifier")
    level: Optional[float] = Field(default=None, ge=0, description="Proficiency level")


class RequiredSkill(BaseModel):
    """A skill a resource requires from the other party."""
    id: str = Field(min_length=1, description="Skill identifier")
    level: Optional[float] = Field(default=None, ge=0, description="Minimum level (None = any)")


class Contact(BaseModel):
    """
    Person behind one side of a match.
    Only used to check required_skills against actual proficiency.
    """
    id: str = Field(description="Unique identifier")
    name: Optional[str] = None
    skills: List[Skill] = Field(default_factory=list)

    def skill(self, skill_id: str) -> Optional[Skill]:
        for s in self.skills:
            if s.id == skill_id:
                return s
        return None


class Resource(BaseModel):
    """
    A need or a capacity in a space-time-skill context.
    Either geographically located (lat/lon or h3_index) or remote.
    """
    id: str = Field(description="Unique identifier")
    type_id: Optional[str] = Field(default=None, description="What kind of resource this is")
    description: Optional[str] = None

    # --- Quantity ---
    quantity: float = Field(ge=0, description="Amount needed or offered")
    unit: Optional[str] = Field(default=None, description="e.g. 'hr', 'kg'")

    # --- Temporal ---
    availability_window: Optional[AvailabilityWindow] = Field(
        default=None,
        description="Recurring availability. None = unconstrained"
    )
    time_zone: Optional[str] = Field(default=None, description="IANA zone, e.g. 'Europe/Berlin'")
    min_atomic_size: Optional[float] = Field(
        default=None,
        gt=0,
        description="Smallest usable contiguous block in minutes"
    )

    # --- Spatial ---
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    h3_index: Optional[str] = Field(default=None, description="Precomputed cell id or the remote token")
    h3_resolution: Optional[int] = Field(default=None, description="Preferred indexing resolution")
    city: Optional[str] = None
    country: Optional[str] = None
    location_type: Optional[str] = Field(default=None, description="e.g. 'In person', 'Remote'")
    online_link: Optional[str] = None
    search_radius_km: Optional[float] = Field(default=None, ge=0)

    # --- Skills & Identity ---
    required_skills: List[RequiredSkill] = Field(default_factory=list)
    offerer: Optional[str] = Field(default=None, description="Owning agent (trust lookups)")

    @model_validator(mode="after")
    def validate_coordinates(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self

    @property
    def is_remote(self) -> bool:
        """Online link present, or location type mentions remote/online."""
        if self.online_link:
            return True
        kind = (self.location_type or "").lower()
        return "remote" in kind or "online" in kind

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "need_tutoring_01",
            "type_id": "tutoring",
            "quantity": 10,
            "unit": "hr",
            "availability_window": {
                "day_schedules": [
                    {"days": ["monday"], "time_ranges": [{"start_time": "09:00", "end_time": "12:00"}]}
                ]
            },
            "time_zone": "Europe/Berlin",
            "min_atomic_size": 60,
            "latitude": 52.52,
            "longitude": 13.40,
            "search_radius_km": 50,
            "required_skills": [{"id": "math", "level": 3}],
            "offerer": "agent_alice"
        }
    })


class PreviousCommitment(BaseModel):
    """Where and when the provider's prior engagement ends."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    end_time: str = Field(description="HH:MM")

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v: str) -> str:
        return check_hhmm(v)
