# Overview: UTC storage helpers plus the local-calendar conversions used for day bucketing.

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from dateutil import tz
from flask import current_app


# Every datetime column holds naive UTC. Conversions to the business's wall
# clock happen only at the edges below.

def utcnow() -> datetime:
    """Clock read for one operation: naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_utc(dt: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    "2024-03-01T15:04:05Z", "...-06:00" or a naive "2024-03-01T15:04"
    (read as UTC) -> naive UTC datetime. Blank input -> None.
    """
    text = _blank_to_none(value)
    if text is None:
        return None
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return normalize_utc(datetime.fromisoformat(text))


def parse_iso_date(value: str | None) -> date | None:
    """Calendar date from "YYYY-MM-DD" (a trailing time part is ignored)."""
    text = _blank_to_none(value)
    if text is None:
        return None
    return date.fromisoformat(text[:10])


def to_utc_z(dt: datetime | None) -> str | None:
    """Second-precision ISO-8601 with a trailing 'Z'; naive input is UTC."""
    if dt is None:
        return None
    stamp = dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)
    return stamp.replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


# =============================================================================
# LOCAL CALENDAR HELPERS
# =============================================================================
#
# Anything that talks about "a day" (report buckets, the Z-cut fallback start)
# uses the business calendar.

def get_zone(name: str | None) -> tzinfo:
    """Resolve an IANA timezone name; raises ValueError for unknown names."""
    if not name:
        return timezone.utc
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


def to_local(dt: datetime, zone: tzinfo) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(zone)


def local_date(dt: datetime, zone: tzinfo) -> date:
    """Calendar date of a UTC instant as seen on the local wall clock."""
    return to_local(dt, zone).date()


def local_day_bounds(day: date, zone: tzinfo) -> tuple[datetime, datetime]:
    """
    UTC-naive [start, end] covering one local calendar day.

    The end is the instant before the next local midnight, so 23- and
    25-hour days around DST changes are covered exactly.
    """
    start_local = datetime.combine(day, time.min).replace(tzinfo=zone)
    next_local = datetime.combine(day + timedelta(days=1), time.min).replace(tzinfo=zone)
    start = normalize_utc(start_local)
    end = normalize_utc(next_local) - timedelta(microseconds=1)
    return start, end


def start_of_local_day(now: datetime, zone: tzinfo) -> datetime:
    return local_day_bounds(local_date(now, zone), zone)[0]


def current_zone() -> tzinfo:
    """Business timezone of the running app (CASHBOOK_TIMEZONE)."""
    return get_zone(current_app.config.get("CASHBOOK_TIMEZONE"))
