from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time without tzinfo; every stored timestamp derives from this."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_iso() -> str:
    """Local calendar date as YYYY-MM-DD (record 'date' fields use local days)."""
    return date.today().isoformat()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a record timestamp back into a UTC-naive datetime.

    Blank input gives None. Offsets (including a trailing "Z") are
    converted to UTC; a value without an offset is taken as UTC already.
    Malformed text raises ValueError.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=None)


def to_utc_z(moment: Optional[datetime], timespec: str = "milliseconds") -> Optional[str]:
    """
    "2026-02-01T08:30:00.123Z" style text for `moment` (naive means UTC).

    Milliseconds are kept by default so records created within the same
    second still sort in creation order.
    """
    if moment is None:
        return None
    aware = moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).isoformat(timespec=timespec).replace("+00:00", "Z")


def now_z() -> str:
    return to_utc_z(utcnow())


def to_dmy(value: Optional[str]) -> str:
    """
    "2026-03-09" -> "09-03-2026". Empty input formats today's date.
    Anything that is not a YYYY-MM-DD prefix raises ValueError.
    """
    if not value:
        value = today_iso()
    parsed = date.fromisoformat(str(value).strip()[:10])
    return parsed.strftime("%d-%m-%Y")


def period_starts(now: Optional[datetime] = None) -> tuple[datetime, datetime, datetime]:
    """
    (start of day, start of week, start of month) for `now`, UTC-naive.
    Weeks start on Sunday, matching how the office counts its working week.
    """
    now = now or utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    days_since_sunday = (start_of_day.weekday() + 1) % 7
    start_of_week = start_of_day - timedelta(days=days_since_sunday)
    start_of_month = start_of_day.replace(day=1)
    return start_of_day, start_of_week, start_of_month
