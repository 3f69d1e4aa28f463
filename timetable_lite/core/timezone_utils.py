"""Time helpers for timetable_lite.

Centralizes "now" (with a test override), display timezone resolution and the
fixed-width UTC serialization used for stored instants.
"""

from __future__ import annotations

import datetime
import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Environment variable that freezes now_utc() for tests and debugging.
TEST_TIME_ENV = "TIMETABLE_TEST_TIME"


def now_utc() -> datetime.datetime:
    """Return the current time as an aware UTC datetime.

    Honors TIMETABLE_TEST_TIME (ISO-8601) so tests can pin the clock.
    """
    override = os.environ.get(TEST_TIME_ENV)
    if override:
        try:
            parsed = datetime.datetime.fromisoformat(override)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", TEST_TIME_ENV, override)
        else:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=datetime.UTC)
            return parsed.astimezone(datetime.UTC)
    return datetime.datetime.now(datetime.UTC)


def get_local_timezone() -> datetime.tzinfo:
    """Return the host's local timezone as a tzinfo."""
    local = datetime.datetime.now().astimezone().tzinfo
    return local if local is not None else datetime.UTC


def resolve_timezone(tz_name: str | None) -> datetime.tzinfo:
    """Resolve an IANA name to a tzinfo, falling back to the host zone.

    Args:
        tz_name: IANA timezone identifier such as "Europe/London", or None

    Returns:
        ZoneInfo for a known name, otherwise the host local timezone
    """
    if not tz_name:
        return get_local_timezone()
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using host local timezone", tz_name)
        return get_local_timezone()


def to_storage_iso(dt: datetime.datetime) -> str:
    """Serialize an instant as fixed-width UTC ISO-8601 with a Z suffix.

    Fixed width (millisecond precision) keeps lexical order equal to
    chronological order, which the events table relies on for ORDER BY.

    >>> to_storage_iso(datetime.datetime(2024, 1, 15, 10, 0, tzinfo=datetime.UTC))
    '2024-01-15T10:00:00.000Z'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.UTC)
    utc = dt.astimezone(datetime.UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_storage_iso(value: object) -> datetime.datetime | None:
    """Parse a stored ISO instant; return None when it is not a valid instant."""
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.UTC)
    return parsed
