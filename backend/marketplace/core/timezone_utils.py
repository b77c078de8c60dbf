"""
Timezone utilities for the marketplace.

All instants are stored and compared in UTC. A car's timezone only decides
where its local day (and therefore its slot grid) begins and ends.
"""

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Optional

import pytz

if TYPE_CHECKING:
    from marketplace.models.car import Car


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are treated as UTC; SQLite hands back naive datetimes for
    columns written as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def get_car_timezone(car: "Car") -> pytz.BaseTzInfo:
    """
    Get the timezone a car is rented out in.

    Unknown zone names fall back to UTC rather than failing slot generation.
    """
    try:
        return pytz.timezone(car.timezone or "UTC")
    except pytz.UnknownTimeZoneError:
        return pytz.utc


def days_until(target: date, today: date) -> int:
    return (target - today).days
