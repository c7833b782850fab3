from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from ..core.constants import DEFAULT_SCHOOL_TIMEZONE


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local(tz_name: str = DEFAULT_SCHOOL_TIMEZONE) -> datetime:
    """Current wall-clock time in the school's timezone, without tzinfo.

    The ledger stores time-in as naive local time, so the offset is dropped
    here once instead of at every write.
    """
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def format_time_in(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def parse_time_in(value: str | None) -> datetime | None:
    if not value:
        return None
    # Stored values are already local; a trailing Z must not shift them.
    return datetime.fromisoformat(value.rstrip("Z"))
