"""
Availability window intersection.

Windows are expressed in each resource's local time zone. Before comparing,
both sides are flattened to UTC minute intervals per weekday:

    {DayOfWeek.MONDAY: [(540, 720)], ...}   # minutes from 00:00 UTC

Offsets come from zoneinfo at the concrete date of each weekday in a fixed
reference week, so DST is resolved the same way on every call. Ranges that
cross midnight after conversion are split across days, and the week wraps
(Sunday night spills into Monday morning).

A missing or empty window means "unconstrained", never "no availability".
"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from models import AvailabilityWindow, DayOfWeek, DaySchedule, TimeRange

logger = logging.getLogger(__name__)

DAY_MINUTES = 24 * 60
WEEK_MINUTES = 7 * DAY_MINUTES
DEFAULT_REFERENCE_DATE = date(2024, 1, 1)  # a Monday

Interval = Tuple[int, int]
DayIntervals = Dict[DayOfWeek, List[Interval]]


def parse_time_to_minutes(value: str) -> int:
    """'HH:MM' -> minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    """Minutes since midnight -> 'HH:MM' (1440 renders as 24:00)."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@lru_cache(maxsize=128)
def _zone(name: Optional[str]) -> ZoneInfo:
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone {name!r}; treating as UTC")
        return ZoneInfo("UTC")


def _offset_minutes(zone: ZoneInfo, day: date, minutes: int) -> int:
    local = datetime.combine(day, time()) + timedelta(minutes=minutes)
    return int(local.replace(tzinfo=zone).utcoffset().total_seconds() // 60)


def is_unconstrained(window: Optional[AvailabilityWindow]) -> bool:
    return window is None or window.is_empty


def _resolve_schedules(window: AvailabilityWindow, reference_date: date) -> List[DaySchedule]:
    """
    Day schedules that apply in the reference week.
    Month and week-of-month patterns are matched against reference_date;
    plain time ranges apply to every day.
    """
    every_day = list(DayOfWeek)
    week_of_month = (reference_date.day - 1) // 7 + 1

    def matching_weeks(week_schedules):
        out = []
        for ws in week_schedules:
            if week_of_month in ws.weeks:
                out.extend(ws.day_schedules)
        return out

    if window.month_schedules:
        month = next((m for m in window.month_schedules if m.month == reference_date.month), None)
        if month is None:
            return []
        if month.week_schedules:
            return matching_weeks(month.week_schedules)
        if month.day_schedules:
            return list(month.day_schedules)
        if month.time_ranges:
            return [DaySchedule(days=every_day, time_ranges=month.time_ranges)]
        return []

    if window.week_schedules:
        return matching_weeks(window.week_schedules)

    if window.day_schedules:
        return list(window.day_schedules)

    if window.time_ranges:
        return [DaySchedule(days=every_day, time_ranges=window.time_ranges)]
    return []


def _merge(intervals: List[Interval]) -> List[Interval]:
    merged: List[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _split_into_days(result: Dict[DayOfWeek, List[Interval]], start: int, end: int) -> None:
    """Add a week-minute interval, splitting at midnights and wrapping the week."""
    shift = (start // WEEK_MINUTES) * WEEK_MINUTES
    start, end = start - shift, end - shift
    while start < end:
        day_idx = start // DAY_MINUTES
        seg_end = min(end, (day_idx + 1) * DAY_MINUTES)
        base = day_idx * DAY_MINUTES
        result[DayOfWeek.from_index(day_idx)].append((start - base, seg_end - base))
        start = seg_end


def flatten_to_utc(
    window: AvailabilityWindow,
    tz: Optional[str] = None,
    reference_date: date = DEFAULT_REFERENCE_DATE
) -> DayIntervals:
    """Per-weekday merged UTC intervals for a (non-empty) window."""
    zone = _zone(tz)
    week_start = reference_date - timedelta(days=reference_date.weekday())
    result: Dict[DayOfWeek, List[Interval]] = defaultdict(list)

    for schedule in _resolve_schedules(window, reference_date):
        for day in schedule.days:
            day_date = week_start + timedelta(days=day.index)
            base = day.index * DAY_MINUTES
            for r in schedule.time_ranges:
                start = base + r.start_minutes - _offset_minutes(zone, day_date, r.start_minutes)
                end = base + r.end_minutes - _offset_minutes(zone, day_date, r.end_minutes)
                _split_into_days(result, start, end)

    return {day: _merge(result[day]) for day in DayOfWeek if result.get(day)}


def intersect_time_ranges(a: List[Interval], b: List[Interval]) -> List[Interval]:
    """Pairwise intersection of two sorted, merged interval lists."""
    out: List[Interval] = []
    i = j = 0
    while i < len(a) and j < len(b):
        start = max(a[i][0], b[j][0])
        end = min(a[i][1], b[j][1])
        if start < end:
            out.append((start, end))
        if a[i][1] < b[j][1]:
            i += 1
        else:
            j += 1
    return out


def intersect_utc(
    a: Optional[AvailabilityWindow], tz_a: Optional[str],
    b: Optional[AvailabilityWindow], tz_b: Optional[str],
    reference_date: date = DEFAULT_REFERENCE_DATE
) -> Optional[DayIntervals]:
    """
    Common UTC intervals per weekday. None when both sides are unconstrained;
    when only one is, the other side's intervals are returned as-is.
    """
    if is_unconstrained(a) and is_unconstrained(b):
        return None
    if is_unconstrained(a):
        return flatten_to_utc(b, tz_b, reference_date)
    if is_unconstrained(b):
        return flatten_to_utc(a, tz_a, reference_date)

    flat_a = flatten_to_utc(a, tz_a, reference_date)
    flat_b = flatten_to_utc(b, tz_b, reference_date)
    result = {}
    for day in DayOfWeek:
        if day in flat_a and day in flat_b:
            common = intersect_time_ranges(flat_a[day], flat_b[day])
            if common:
                result[day] = common
    return result


def contiguous_blocks(intervals: DayIntervals) -> List[Interval]:
    """
    Day intervals laid out on one circular week of minutes (Monday 00:00 UTC
    is 0). Pieces that touch across midnight are joined, and a block running
    into Sunday 24:00 continues into Monday 00:00.
    """
    timeline = sorted(
        (day.index * DAY_MINUTES + start, day.index * DAY_MINUTES + end)
        for day, ranges in intervals.items()
        for start, end in ranges
    )
    blocks = _merge(timeline)
    if len(blocks) > 1 and blocks[0][0] == 0 and blocks[-1][1] == WEEK_MINUTES:
        head = blocks.pop(0)
        tail = blocks.pop()
        blocks.append((tail[0], WEEK_MINUTES + head[1]))
    return blocks


def windows_overlap(
    a: Optional[AvailabilityWindow], tz_a: Optional[str],
    b: Optional[AvailabilityWindow], tz_b: Optional[str],
    reference_date: date = DEFAULT_REFERENCE_DATE
) -> bool:
    if is_unconstrained(a) or is_unconstrained(b):
        return True
    return bool(intersect_utc(a, tz_a, b, tz_b, reference_date))


def to_window(intervals: DayIntervals) -> AvailabilityWindow:
    """UTC day intervals -> AvailabilityWindow (one day schedule per weekday)."""
    schedules = [
        DaySchedule(
            days=[day],
            time_ranges=[TimeRange(start_time=format_minutes(s), end_time=format_minutes(e)) for s, e in ranges]
        )
        for day, ranges in intervals.items()
        if ranges
    ]
    return AvailabilityWindow(day_schedules=schedules)


def intersect_windows(
    a: Optional[AvailabilityWindow], tz_a: Optional[str],
    b: Optional[AvailabilityWindow], tz_b: Optional[str],
    reference_date: date = DEFAULT_REFERENCE_DATE
) -> Optional[AvailabilityWindow]:
    """
    Intersection as a UTC AvailabilityWindow, or None if both sides are
    unconstrained. Disjoint windows give a window with an empty
    day_schedules list; check windows_overlap() to tell that apart from
    "unconstrained".
    """
    intervals = intersect_utc(a, tz_a, b, tz_b, reference_date)
    if intervals is None:
        return None
    return to_window(intervals)


def first_start_time(window: Optional[AvailabilityWindow]) -> Optional[str]:
    """Earliest listed start: plain time ranges first, then the first day schedule."""
    if window is None:
        return None
    if window.time_ranges:
        return window.time_ranges[0].start_time
    schedules = window.day_level_schedules()
    if schedules:
        return schedules[0].time_ranges[0].start_time
    return None
