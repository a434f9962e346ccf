"""
Availability window models for the Feasibility Matcher.

A window describes WHEN a resource can be used, as a hierarchy of recurring
patterns:
1. Month schedules (e.g. "February: Mondays 9-12")
2. Week schedules (e.g. "First and third week: weekdays 9-5")
3. Day schedules (e.g. "Monday & Friday: 09:00-12:00")
4. Plain time ranges (same hours every day)

Priority when several levels are present: month > week > day > time ranges.
"""

import re
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

_HHMM = re.compile(r"^([01]\d|2[0-4]):([0-5]\d)$")


class DayOfWeek(str, Enum):
    """Weekday names used by day schedules."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        """0=Monday, 6=Sunday (same convention as date.weekday())."""
        return list(DayOfWeek).index(self)

    @classmethod
    def from_index(cls, idx: int) -> "DayOfWeek":
        return list(cls)[idx % 7]


def to_minutes(value: str) -> int:
    """'HH:MM' -> minutes from midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def check_hhmm(value: str) -> str:
    """Validate an HH:MM string (00:00-24:00) and return it stripped."""
    match = _HHMM.match(value.strip())
    if not match:
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    if match.group(1) == "24" and match.group(2) != "00":
        raise ValueError("Only 24:00 is allowed past 23:59")
    return value.strip()


class TimeRange(BaseModel):
    """A single [start, end) range within a day, in HH:MM."""
    start_time: str = Field(description="Range start (HH:MM)")
    end_time: str = Field(description="Range end (HH:MM, 24:00 allowed)")

    model_config = ConfigDict(frozen=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_format(cls, v: str) -> str:
        return check_hhmm(v)

    @model_validator(mode="after")
    def validate_order(self):
        if to_minutes(self.start_time) >= to_minutes(self.end_time):
            raise ValueError("End time must be strictly after start time")
        return self

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes


def _check_non_overlapping(ranges: List[TimeRange]) -> List[TimeRange]:
    ordered = sorted(ranges, key=lambda r: r.start_minutes)
    for prev, nxt in zip(ordered, ordered[1:]):
        if nxt.start_minutes < prev.end_minutes:
            raise ValueError(
                f"Overlapping time ranges {prev.start_time}-{prev.end_time} "
                f"and {nxt.start_time}-{nxt.end_time}"
            )
    return ranges


class DaySchedule(BaseModel):
    """Associates specific weekdays with one or more time ranges."""
    days: List[DayOfWeek] = Field(min_length=1, description="Weekdays this schedule applies to")
    time_ranges: List[TimeRange] = Field(min_length=1, description="Non-overlapping ranges")

    @field_validator("time_ranges")
    @classmethod
    def validate_ranges(cls, v: List[TimeRange]) -> List[TimeRange]:
        return _check_non_overlapping(v)


class WeekSchedule(BaseModel):
    """Day patterns that only apply to given weeks of the month (1-5)."""
    weeks: List[int] = Field(min_length=1)
    day_schedules: List[DaySchedule] = Field(min_length=1)

    @field_validator("weeks")
    @classmethod
    def validate_weeks(cls, v: List[int]) -> List[int]:
        for week in v:
            if not 1 <= week <= 5:
                raise ValueError(f"Week of month must be 1-5, got {week}")
        return v


class MonthSchedule(BaseModel):
    """Patterns for a single calendar month (1-12)."""
    month: int = Field(ge=1, le=12)
    week_schedules: Optional[List[WeekSchedule]] = None
    day_schedules: Optional[List[DaySchedule]] = None
    time_ranges: Optional[List[TimeRange]] = None


class AvailabilityWindow(BaseModel):
    """
    Hierarchical definition of recurring availability.
    A window with no schedules at all places no constraint.
    """
    month_schedules: Optional[List[MonthSchedule]] = None
    week_schedules: Optional[List[WeekSchedule]] = None
    day_schedules: Optional[List[DaySchedule]] = None
    time_ranges: Optional[List[TimeRange]] = None

    @field_validator("time_ranges")
    @classmethod
    def validate_ranges(cls, v: Optional[List[TimeRange]]) -> Optional[List[TimeRange]]:
        if v:
            _check_non_overlapping(v)
        return v

    @property
    def is_empty(self) -> bool:
        return not (self.month_schedules or self.week_schedules or self.day_schedules or self.time_ranges)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "day_schedules": [
                {"days": ["monday", "friday"], "time_ranges": [{"start_time": "09:00", "end_time": "12:00"}]}
            ]
        }
    })

    def day_level_schedules(self) -> Optional[List[DaySchedule]]:
        """
        Day schedules at the highest-precedence level present, ignoring
        which months/weeks they are restricted to. None when that level
        applies to every weekday (plain time ranges, bare months).
        """
        if self.month_schedules:
            collected = []
            for month in self.month_schedules:
                if month.week_schedules:
                    for week in month.week_schedules:
                        collected.extend(week.day_schedules)
                elif month.day_schedules:
                    collected.extend(month.day_schedules)
                else:
                    return None
            return collected

        if self.week_schedules:
            collected = []
            for week in self.week_schedules:
                collected.extend(week.day_schedules)
            return collected

        if self.day_schedules:
            return list(self.day_schedules)
        return None

    def weekdays(self) -> Optional[List[DayOfWeek]]:
        """Distinct weekdays named by the window, or None for 'every day'."""
        schedules = self.day_level_schedules()
        if schedules is None:
            return None
        days: List[DayOfWeek] = []
        for schedule in schedules:
            for day in schedule.days:
                if day not in days:
                    days.append(day)
        return days

    def weekly_minutes(self) -> int:
        """Approximate available minutes in a typical week."""
        schedules = self.day_level_schedules()
        if schedules is not None:
            return sum(
                len(s.days) * sum(r.duration_minutes for r in s.time_ranges)
                for s in schedules
            )

        ranges = list(self.time_ranges or [])
        for month in self.month_schedules or []:
            ranges.extend(month.time_ranges or [])
        return 7 * sum(r.duration_minutes for r in ranges)
