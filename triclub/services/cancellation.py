from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from triclub.config import config

# Hours before the start within which a cancellation counts as an absence
LATE_CANCELLATION_HOURS = config.LATE_CANCELLATION_HOURS


@dataclass(frozen=True)
class CancellationClassification:
    is_late: bool
    hours_until_start: Optional[float]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def classify(
    start_instant: Optional[datetime],
    now_instant: datetime,
    cutoff_hours: float = LATE_CANCELLATION_HOURS,
) -> CancellationClassification:
    """
    Classifies a cancellation made at now_instant for a workout starting at
    start_instant.

    Late means 0 <= hours until start <= cutoff_hours. A workout without a
    resolvable start is never late, and neither is a cancellation made after
    the workout already started (negative hours).
    """
    if start_instant is None:
        return CancellationClassification(is_late=False, hours_until_start=None)

    hours_until_start = (_as_utc(start_instant) - _as_utc(now_instant)).total_seconds() / 3600
    is_late = 0 <= hours_until_start <= cutoff_hours
    return CancellationClassification(is_late=is_late, hours_until_start=hours_until_start)
