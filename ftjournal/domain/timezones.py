"""UTC instant <-> local wall-clock conversions using full zone rules."""

from datetime import date, datetime, timedelta
from typing import Tuple

import pytz

from ftjournal.errors import ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=pytz.UTC)
ONE_MS = timedelta(milliseconds=1)


def validate_timezone(name) -> str:
    """Return the canonical zone id, or raise ValidationError for unknown zones."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("timezone is required")
    try:
        return pytz.timezone(name.strip()).zone
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"unknown timezone: {name}") from None


def get_zone(name: str):
    return pytz.timezone(validate_timezone(name))


def to_utc_ms(aware: datetime) -> int:
    return (aware.astimezone(pytz.UTC) - EPOCH) // ONE_MS


def utc_ms_to_local(utc_ms: int, tz) -> datetime:
    return (EPOCH + timedelta(milliseconds=utc_ms)).astimezone(tz)


def local_date_str(utc_ms: int, tz) -> str:
    """Calendar date (YYYY-MM-DD) of a UTC instant in the given zone."""
    return utc_ms_to_local(utc_ms, tz).strftime("%Y-%m-%d")


def localize_to_utc_ms(naive: datetime, tz) -> int:
    """
    Interpret a naive wall-clock time in a zone.

    Raises:
        ValueError: if the time is skipped or repeated by a DST transition
    """
    try:
        aware = tz.localize(naive, is_dst=None)
    except pytz.exceptions.AmbiguousTimeError:
        raise ValueError(f"ambiguous local time in {tz.zone}: {naive}") from None
    except pytz.exceptions.NonExistentTimeError:
        raise ValueError(f"non-existent local time in {tz.zone}: {naive}") from None
    return to_utc_ms(aware)


def parse_date_local(value) -> date:
    if not isinstance(value, str):
        raise ValidationError("date_local must be a YYYY-MM-DD string")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"invalid date_local: {value}") from None


def utc_window(start: date, end: date, tz) -> Tuple[int, int]:
    """
    UTC millisecond range [lo, hi) that certainly covers local dates
    start..end (end exclusive). Padded by a day on each side; callers filter
    on the exact local date.
    """
    lo = tz.localize(datetime(start.year, start.month, start.day)) - timedelta(days=1)
    hi = tz.localize(datetime(end.year, end.month, end.day)) + timedelta(days=1)
    return to_utc_ms(lo), to_utc_ms(hi)
