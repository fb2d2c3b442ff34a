"""
Clock and day-boundary helpers

All timestamps handled by the service are timezone-aware. Day boundaries
(today's active visits, range filters, auto-exit) are computed in the
configured IANA time zone.
"""

from datetime import date, datetime, time, tzinfo
from typing import Optional, Protocol, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Clock(Protocol):
    """Source of the current time"""

    @property
    def tz(self) -> tzinfo:
        ...

    def now(self) -> datetime:
        ...


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """
    Create tzinfo from an IANA timezone name

    Raises:
        ValueError: If the timezone name is unknown on this system
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid time zone: {tz_name!r}") from exc


class SystemClock:
    """Wall clock in a fixed time zone"""

    def __init__(self, tz_name: str = "UTC"):
        self._tz = tzinfo_from_name(tz_name)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


def to_local(value: datetime, tz: tzinfo) -> datetime:
    """Convert to tz; naive datetimes are assumed to be UTC (MongoDB default)"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo("UTC"))
    return value.astimezone(tz)


def start_of_day(value: Union[date, datetime], tz: tzinfo) -> datetime:
    """First instant of the calendar day containing value, in tz"""
    day = to_local(value, tz).date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(value: Union[date, datetime], tz: tzinfo) -> datetime:
    """Last representable instant of the calendar day containing value, in tz"""
    day = to_local(value, tz).date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.max, tzinfo=tz)


def is_same_day(value: Optional[datetime], reference: datetime, tz: tzinfo) -> bool:
    if value is None:
        return False
    return to_local(value, tz).date() == to_local(reference, tz).date()
