"""Time utilities (reference timezone aware)."""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

ZoneLike = Union[str, tzinfo]

# Record store timestamps without an offset are UTC.
STORE_TZ = timezone.utc

# "+00" style offset without minutes
_SHORT_OFFSET = re.compile(r"[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?[+-]\d{2}$")

# Fractional seconds of any precision (fromisoformat wants 3 or 6 digits)
_FRACTION = re.compile(r"(?<=:\d{2})\.(\d+)")


def resolve_zone(tz: ZoneLike) -> tzinfo:
    """Resolve an IANA name (or pass through a tzinfo)."""
    if isinstance(tz, tzinfo):
        return tz
    if not tz:
        raise ValueError("Timezone is required")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {tz}") from exc


def parse_instant(value) -> Optional[datetime]:
    """
    Normalize a raw timestamp into an aware datetime.

    Accepts datetimes and ISO-8601 strings, including the store's
    "2026-02-09 00:07:00+00" form. Missing or malformed values return None
    so callers can skip the record instead of failing.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        elif len(text) > 10 and _SHORT_OFFSET.search(text):
            text = text + ":00"
        text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text)
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=STORE_TZ)
    return dt


def to_zone(dt: datetime, tz: ZoneLike) -> datetime:
    """Convert datetime to the given zone (naive values are UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=STORE_TZ)
    return dt.astimezone(resolve_zone(tz))


def day_bounds(day: date, tz: ZoneLike) -> Tuple[datetime, datetime]:
    """
    Half-open [start, end) of a calendar day in the given zone.

    Both bounds are local midnights, so DST transition days are 23 or 25
    hours long.
    """
    zone = resolve_zone(tz)
    start = datetime.combine(day, time.min, tzinfo=zone)
    if day == date.max:
        # No next midnight to build; the last representable instant closes the day
        end = datetime.max.replace(tzinfo=zone)
    else:
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start, end


def local_date(dt: datetime, tz: ZoneLike) -> date:
    """Calendar date of an instant as seen in the given zone."""
    return to_zone(dt, tz).date()


def minutes_of_day(dt: datetime, tz: ZoneLike) -> int:
    """Minutes since local midnight in the given zone."""
    local = to_zone(dt, tz)
    return local.hour * 60 + local.minute


def parse_time_of_day(value) -> Optional[int]:
    """Parse "HH:MM" (or a time) into minutes since midnight."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            return None
        try:
            hours, minutes = int(parts[0]), int(parts[1])
        except ValueError:
            return None
        if not (0 <= hours < 24 and 0 <= minutes < 60):
            return None
        return hours * 60 + minutes
    return None


def format_minutes(mins: int) -> str:
    """Render minutes as HH:MM (hours wrap at 24)."""
    hours = (mins // 60) % 24
    return f"{hours:02d}:{mins % 60:02d}"
