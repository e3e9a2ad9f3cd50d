"""UTC-everywhere time handling, plus the local calendar used on documents."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

# Issuance dates embedded in document keys follow the tax authority's calendar
AUTHORITY_TZ = "America/Costa_Rica"


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz_name: str = AUTHORITY_TZ) -> datetime:
    """
    Convert UTC datetime to a local timezone.

    Only used at boundaries where a calendar date matters to humans or to the
    tax authority (document keys, rendered XML).

    Args:
        dt: UTC datetime
        tz_name: IANA timezone name (defaults to the authority's timezone)

    Raises:
        ValueError: If datetime is naive or timezone name is invalid
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime. Datetime must be timezone-aware."
        )

    try:
        local_tz = ZoneInfo(tz_name)
    except (KeyError, ValueError):
        raise ValueError(f"Unknown timezone: {tz_name}")

    return dt.astimezone(local_tz)


def parse_local_iso(iso_string: str, tz_name: str = AUTHORITY_TZ) -> datetime:
    """
    Parse ISO 8601 string to UTC, reading naive values as local time.

    '2024-03-15' and '2024-03-15T12:00:00' are taken in tz_name; values with
    an offset are converted as-is.

    Raises:
        ValueError: If the string is not ISO 8601 or tz_name is unknown
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        try:
            dt = dt.replace(tzinfo=ZoneInfo(tz_name))
        except (KeyError, ValueError):
            raise ValueError(f"Unknown timezone: {tz_name}")
    return to_utc(dt)


def file_timestamp(dt: datetime | None = None) -> str:
    """
    Filesystem-safe UTC timestamp, e.g. '2024-01-31_18-05-09-123'.

    Sorts lexically in chronological order.
    """
    dt = to_utc(dt) if dt is not None else now_utc()
    return dt.strftime("%Y-%m-%d_%H-%M-%S-") + f"{dt.microsecond // 1000:03d}"
