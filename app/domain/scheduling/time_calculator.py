"""
Timezone-correct calendar boundaries.

Every boundary is computed from local midnight in the requested IANA zone
and converted to UTC, so the offset is resolved at the wall-clock instant
itself. A day containing a DST transition is 23h or 25h long.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from ...config import DEFAULT_TIMEZONE
from ...shared.exceptions import InvalidTimezone, ValidationError

logger = logging.getLogger(__name__)

MONDAY = 0
SUNDAY = 6


class CalendarUnit(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class TimeRange:
    """Half-open [start, end) range of aware UTC instants"""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def resolve_zone(tz: str) -> ZoneInfo:
    """Load an IANA zone, raising InvalidTimezone for unknown identifiers"""
    if not tz or not isinstance(tz, str):
        raise InvalidTimezone(tz)
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidTimezone(tz) from None


def is_valid_timezone(tz: Optional[str]) -> bool:
    try:
        resolve_zone(tz)
        return True
    except InvalidTimezone:
        return False


def sanitize_timezone(requested: Optional[str], fallback: Optional[str] = None) -> str:
    """
    Caller-side fallback policy: the requested zone if valid, else the
    fallback (usually the user's zone), else DEFAULT_TIMEZONE.
    """
    for candidate in (requested, fallback):
        if candidate and is_valid_timezone(candidate):
            return candidate
        if candidate:
            logger.warning(f"⚠️ Ignoring invalid timezone '{candidate}'")
    return DEFAULT_TIMEZONE


def _local_midnight(day: date, zone: ZoneInfo) -> datetime:
    # fold=0 picks the first occurrence of an ambiguous midnight and maps a
    # skipped midnight onto the transition instant
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def day_bounds(day: date, tz: str) -> TimeRange:
    zone = resolve_zone(tz)
    return TimeRange(_local_midnight(day, zone), _local_midnight(day + timedelta(days=1), zone))


def week_bounds(day: date, tz: str, week_start_day: int = MONDAY) -> TimeRange:
    """Week containing ``day``; ``week_start_day`` uses date.weekday() numbering"""
    if week_start_day not in range(7):
        raise ValidationError("week_start_day must be between 0 (Monday) and 6 (Sunday)")
    zone = resolve_zone(tz)
    first = day - timedelta(days=(day.weekday() - week_start_day) % 7)
    return TimeRange(_local_midnight(first, zone), _local_midnight(first + timedelta(days=7), zone))


def month_bounds(day: date, tz: str) -> TimeRange:
    zone = resolve_zone(tz)
    first = day.replace(day=1)
    return TimeRange(_local_midnight(first, zone), _local_midnight(first + relativedelta(months=1), zone))


def _as_local_date(reference: Union[date, datetime], tz: str) -> date:
    if isinstance(reference, datetime):
        if reference.tzinfo is None:
            return reference.date()
        return reference.astimezone(resolve_zone(tz)).date()
    return reference


def compute_boundaries(
    unit: Union[CalendarUnit, str],
    reference_date: Union[date, datetime],
    timezone_id: str,
    week_start_day: int = MONDAY,
) -> TimeRange:
    """
    Boundaries of the day/week/month containing ``reference_date`` in
    ``timezone_id``. An aware datetime is first converted to that zone.
    """
    try:
        unit = CalendarUnit(unit.lower() if isinstance(unit, str) else unit)
    except ValueError:
        raise ValidationError(f"Unknown calendar unit: {unit}") from None

    local_day = _as_local_date(reference_date, timezone_id)
    if unit == CalendarUnit.DAY:
        return day_bounds(local_day, timezone_id)
    if unit == CalendarUnit.WEEK:
        return week_bounds(local_day, timezone_id, week_start_day)
    return month_bounds(local_day, timezone_id)


def to_local(instant: datetime, tz: str) -> datetime:
    """Wall-clock view of a UTC instant in ``tz``"""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(resolve_zone(tz))


def timezone_offset(instant: datetime, tz: str) -> str:
    """Offset in effect at ``instant``, e.g. '-07:00' or '+05:30'"""
    offset = to_local(instant, tz).utcoffset() or timedelta(0)
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def is_dst_transition_day(day: date, tz: str) -> bool:
    return day_bounds(day, tz).duration != timedelta(hours=24)
