# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Wire/storage encoding for dates, times of day, instants and identifiers.

Everything the repository writes goes through an ``encode_*`` helper and
everything it reads through a ``decode_*`` helper, so the SQL stays portable:
drivers that hand back native ``date``/``time``/``datetime`` objects and
drivers that hand back strings decode to the same values.
"""

import re
import uuid
from datetime import date, datetime, time, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from oncall_roster.core.errors import ValidationError

DEFAULT_HANDOFF_TIME = "09:00"

_TIME_OF_DAY = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")


# ── Time of day (HH:MM) ──

def parse_time_of_day(value: str, field: str = "time") -> str:
    """Validate a user-supplied time of day and return it as canonical ``HH:MM``."""
    if not isinstance(value, str):
        raise ValidationError(f"invalid {field}: expected HH:MM")
    match = _TIME_OF_DAY.match(value.strip())
    if not match:
        raise ValidationError(f"invalid {field} {value!r}: expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"invalid {field} {value!r}: out of range")
    return f"{hours:02d}:{minutes:02d}"


def decode_time_of_day(value: Any, default: Optional[str] = None) -> Optional[str]:
    """Normalise a stored TIME value (``time`` or string) to ``HH:MM``."""
    if value is None or value == "":
        return default
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    return parse_time_of_day(str(value))


def time_of_day_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def to_time(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


# ── Calendar dates (YYYY-MM-DD) ──

def parse_date(value: str, field: str = "date") -> date:
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        raise ValidationError(f"invalid {field} {value!r}: expected YYYY-MM-DD")


def encode_date(value: date) -> str:
    return value.isoformat()


def decode_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# ── Instants (RFC3339 in, fixed-width UTC in storage) ──

def parse_instant(value: str, field: str = "timestamp") -> datetime:
    """Parse an RFC3339 timestamp. A UTC offset is mandatory."""
    try:
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    except (AttributeError, ValueError):
        raise ValidationError(f"invalid {field} {value!r}: expected RFC3339")
    if parsed.tzinfo is None:
        raise ValidationError(f"invalid {field} {value!r}: missing UTC offset")
    return parsed.astimezone(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_instant(value: datetime) -> str:
    # Fixed width so string-typed backends still compare chronologically.
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def decode_instant(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    raw = str(value).replace(" ", "T", 1)
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(raw))


# ── Identifiers / misc ──

def parse_uuid(value: Any, field: str = "id") -> str:
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError):
        raise ValidationError(f"invalid {field} {value!r}")


def decode_uuid(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def decode_bool(value: Any) -> bool:
    return bool(value) if value is not None else False


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"unknown timezone {name!r}")
