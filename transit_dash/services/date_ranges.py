"""
Date Ranges and Time Frames

Parsing and validation of dashboard date ranges, the date picker presets,
and the chart interval labels for each time frame.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from transit_dash.config import DEFAULT_RANGE_DAYS
from transit_dash.errors import InvalidDateRange
from transit_dash.models.enums import DatePreset, TimeFrame
from transit_dash.models.metrics import DateRange


def parse_date(value: str, field_name: str = "date") -> date:
    """Parse YYYY-MM-DD (a trailing time component is ignored)."""
    try:
        return datetime.fromisoformat(value.strip()).date()
    except (AttributeError, ValueError):
        raise InvalidDateRange(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)")


def parse_date_range(
    start: Optional[str],
    end: Optional[str],
    today: Optional[date] = None,
) -> DateRange:
    """
    Build a validated DateRange from query strings.

    Missing bounds default to the last DEFAULT_RANGE_DAYS days ending today,
    inclusive, the same window as the last_30 preset.
    Raises InvalidDateRange before any upstream call is made.
    """
    today = today or date.today()
    end_date = parse_date(end, "end_date") if end else today
    start_date = parse_date(start, "start_date") if start else end_date - timedelta(days=DEFAULT_RANGE_DAYS - 1)
    return DateRange(start=start_date, end=end_date)


def preset_range(preset: DatePreset, today: Optional[date] = None) -> DateRange:
    today = today or date.today()

    if preset == DatePreset.TODAY:
        return DateRange(today, today)
    elif preset == DatePreset.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return DateRange(yesterday, yesterday)
    elif preset == DatePreset.LAST_7:
        return DateRange(today - timedelta(days=6), today)
    elif preset == DatePreset.LAST_30:
        return DateRange(today - timedelta(days=29), today)
    elif preset == DatePreset.LAST_90:
        return DateRange(today - timedelta(days=89), today)
    elif preset == DatePreset.LAST_12_MONTHS:
        try:
            year_ago = today.replace(year=today.year - 1)
        except ValueError:
            # Feb 29
            year_ago = today.replace(year=today.year - 1, day=28)
        return DateRange(year_ago, today)

    raise ValueError(f"Unknown preset: {preset}")


def _week_one_start(year: int) -> date:
    jan1 = date(year, 1, 1)
    return jan1 - timedelta(days=(jan1.weekday() + 1) % 7)


def week_number(d: date) -> int:
    """Sunday-based week of year; week 1 is the week containing Jan 1."""
    if d >= _week_one_start(d.year + 1):
        return 1
    return (d - _week_one_start(d.year)).days // 7 + 1


def _month_start(d: date) -> date:
    return d.replace(day=1)


def _add_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    return date(d.year + month_index // 12, month_index % 12 + 1, 1)


def time_frame_intervals(time_frame: TimeFrame, date_range: DateRange) -> Tuple[List[str], List[date]]:
    """
    Chart buckets for a range: (labels, interval start dates).

    Weekly intervals start on Sunday; monthly, quarterly and yearly intervals
    start on the first day of the period containing the range start.
    """
    start, end = date_range.start, date_range.end
    intervals: List[date] = []

    if time_frame == TimeFrame.DAILY:
        intervals = [start + timedelta(days=i) for i in range(date_range.day_count)]
        return [d.strftime("%b %d") for d in intervals], intervals

    if time_frame == TimeFrame.WEEKLY:
        current = start - timedelta(days=(start.weekday() + 1) % 7)
        while current <= end:
            intervals.append(current)
            current += timedelta(weeks=1)
        return [f"Week {week_number(d)}" for d in intervals], intervals

    if time_frame == TimeFrame.MONTHLY:
        current = _month_start(start)
        while current <= end:
            intervals.append(current)
            current = _add_months(current, 1)
        return [d.strftime("%b %Y") for d in intervals], intervals

    if time_frame == TimeFrame.QUARTERLY:
        current = date(start.year, 3 * ((start.month - 1) // 3) + 1, 1)
        while current <= end:
            intervals.append(current)
            current = _add_months(current, 3)
        return [f"Q{(d.month - 1) // 3 + 1} {d.year}" for d in intervals], intervals

    if time_frame == TimeFrame.YEARLY:
        intervals = [date(year, 1, 1) for year in range(start.year, end.year + 1)]
        return [str(d.year) for d in intervals], intervals

    return [], []
