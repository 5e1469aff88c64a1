"""
Resolution of a workout's local schedule into an absolute instant.

Workouts store a calendar date and a wall-clock time that are both meant in the
club's civil timezone. The absolute start is needed to decide whether a
cancellation falls inside the late-cancellation window.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DateInput = Union[date, str, None]
TimeInput = Union[time, str, None]


def parse_local_date(value: DateInput) -> Optional[date]:
    """Accepts a date, a datetime or a 'YYYY-MM-DD' string. Anything else -> None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def parse_local_time(value: TimeInput) -> Optional[time]:
    """Accepts a time or an 'HH:MM' / 'HH:MM:SS' string. Anything else -> None."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) not in (2, 3):
            return None
        try:
            hour, minute = int(parts[0]), int(parts[1])
            second = int(parts[2]) if len(parts) == 3 else 0
            return time(hour, minute, second)
        except ValueError:
            return None
    return None


def get_zone(civil_timezone: Union[str, ZoneInfo]) -> ZoneInfo:
    if isinstance(civil_timezone, ZoneInfo):
        return civil_timezone
    return ZoneInfo(civil_timezone)


def resolve_start(
    local_date: DateInput,
    local_time: TimeInput,
    civil_timezone: Union[str, ZoneInfo],
) -> Optional[datetime]:
    """
    Returns the UTC instant that local_date + local_time denote in civil_timezone.

    DST handling:
    - a repeated wall-clock hour (fall back) resolves to its first occurrence,
      i.e. the earlier instant;
    - a nonexistent wall-clock hour (spring forward) is pushed forward by the
      size of the gap (02:30 becomes 03:30 local).

    Returns None when the date or time is missing or cannot be parsed.
    """
    parsed_date = parse_local_date(local_date)
    parsed_time = parse_local_time(local_time)
    if parsed_date is None or parsed_time is None:
        return None

    try:
        zone = get_zone(civil_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.error(f"Unknown civil timezone: {civil_timezone!r}")
        raise

    # fold=0 picks the pre-transition offset: the earlier instant for a
    # repeated hour and a forward shift for a skipped hour.
    local_start = datetime.combine(parsed_date, parsed_time).replace(tzinfo=zone, fold=0)
    return local_start.astimezone(timezone.utc)
