# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Download Statistics

Single responsibility: Aggregate download events into windowed counts

An event counts toward a window only when 0 <= now - timestamp <= window.
Events stamped in the future are still part of the all-time total.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from skills_registry.core.errors import ValidationError
from skills_registry.models.registry_models import (
    DownloadEvent,
    DownloadStats,
    StatsAll,
    Stats7Day,
    Stats30Day,
    TimeRange,
)

SECONDS_PER_DAY = 86400
WINDOW_7_DAYS = 7 * SECONDS_PER_DAY
WINDOW_30_DAYS = 30 * SECONDS_PER_DAY


@dataclass(frozen=True)
class WindowCounts:
    """Raw counts before shaping into a response variant"""
    total: int = 0
    last_7_days: int = 0
    last_30_days: int = 0


def in_window(timestamp: int, now: int, window: int) -> bool:
    age = now - timestamp
    return 0 <= age <= window


def count_downloads(events: Iterable[DownloadEvent], now: int) -> WindowCounts:
    """
    Count events in the all-time total and both windows.

    Args:
        events: Download events to aggregate
        now: Reference time in seconds

    Returns:
        Window counts
    """
    total = last_7 = last_30 = 0
    for event in events:
        total += 1
        if in_window(event.timestamp, now, WINDOW_7_DAYS):
            last_7 += 1
        if in_window(event.timestamp, now, WINDOW_30_DAYS):
            last_30 += 1
    return WindowCounts(total=total, last_7_days=last_7, last_30_days=last_30)


def parse_time_range(value: Optional[str]) -> TimeRange:
    """
    Parse the timeRange parameter (defaults to "all").

    Raises:
        ValidationError: If the value is not 7, 30 or all
    """
    if value is None or value == "":
        return TimeRange.ALL
    try:
        return TimeRange(str(value).lower())
    except ValueError:
        raise ValidationError(
            f"Invalid timeRange: {value}",
            field="timeRange",
            value=value,
            expected="7, 30 or all"
        )


def build_stats(
    counts: WindowCounts,
    time_range: TimeRange,
    total_skills: Optional[int] = None,
    skill_name: Optional[str] = None,
    version: Optional[str] = None
) -> DownloadStats:
    """
    Shape counts into the variant for the requested range.

    Args:
        counts: Aggregated counts
        time_range: Requested window
        total_skills: Set for aggregate scope
        skill_name: Set for per-skill scope
        version: Set for per-skill scope

    Returns:
        Stats7Day, Stats30Day or StatsAll
    """
    scope = {"total_skills": total_skills, "skill_name": skill_name, "version": version}
    if time_range is TimeRange.SEVEN_DAYS:
        return Stats7Day(downloads_7_days=counts.last_7_days, **scope)
    if time_range is TimeRange.THIRTY_DAYS:
        return Stats30Day(downloads_30_days=counts.last_30_days, **scope)
    return StatsAll(
        downloads_total=counts.total,
        downloads_7_days=counts.last_7_days,
        downloads_30_days=counts.last_30_days,
        **scope
    )
