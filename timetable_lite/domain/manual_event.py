"""Validation and construction of manually entered events."""

from __future__ import annotations

import datetime
import logging
import re
import uuid
from typing import NamedTuple

from ..calendar.lite_models import CanonicalEvent, SourceType
from ..calendar.text_utils import extract_text
from ..core.exceptions import InvalidDateError, InvalidRangeError, InvalidTimeError
from ..core.timezone_utils import get_local_timezone

logger = logging.getLogger(__name__)

MANUAL_TITLE_FALLBACK = "Manual Entry"
MANUAL_DESCRIPTION = "Created manually"
MIN_YEAR = 1970

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_UK_DATE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_TIME = re.compile(r"^(\d{2}):(\d{2})$")


class _ClockTime(NamedTuple):
    hours: int
    minutes: int


def parse_date_value(value: str) -> datetime.date | None:
    """Parse YYYY-MM-DD or DD/MM/YYYY into a real calendar date.

    Returns None for other formats, for impossible dates such as 31/02/2024
    and for years before 1970.
    """
    text = extract_text(value)

    iso_match = _ISO_DATE.match(text)
    if iso_match:
        year, month, day = (int(part) for part in iso_match.groups())
    else:
        uk_match = _UK_DATE.match(text)
        if not uk_match:
            return None
        day, month, year = (int(part) for part in uk_match.groups())

    if year < MIN_YEAR:
        return None
    try:
        parsed = datetime.date(year, month, day)
    except ValueError:
        return None

    # Components must survive reconstruction unchanged.
    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed


def parse_time_value(value: str) -> _ClockTime | None:
    """Parse a 24-hour HH:MM string; None when malformed or out of range."""
    match = _TIME.match(extract_text(value))
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return _ClockTime(hours, minutes)


def build_manual_event(
    title: str | None,
    date_text: str,
    start_time_text: str,
    end_time_text: str,
    tz: datetime.tzinfo | None = None,
) -> CanonicalEvent:
    """Validate user input and build a manual CanonicalEvent.

    Args:
        title: Optional title; blank means "Manual Entry"
        date_text: YYYY-MM-DD or DD/MM/YYYY
        start_time_text: HH:MM (24-hour)
        end_time_text: HH:MM (24-hour)
        tz: Timezone of the wall-clock input; host local zone when None

    Raises:
        InvalidDateError: date is malformed or not a real date
        InvalidTimeError: either time is malformed or out of range
        InvalidRangeError: end is not strictly after start
    """
    day = parse_date_value(date_text)
    if day is None:
        raise InvalidDateError()

    start_time = parse_time_value(start_time_text)
    end_time = parse_time_value(end_time_text)
    if start_time is None or end_time is None:
        raise InvalidTimeError()

    zone = tz or get_local_timezone()
    start = datetime.datetime.combine(day, datetime.time(*start_time), tzinfo=zone)
    end = datetime.datetime.combine(day, datetime.time(*end_time), tzinfo=zone)

    # Same-zone datetimes compare as wall clock; compare instants across DST shifts
    if end.astimezone(datetime.UTC) <= start.astimezone(datetime.UTC):
        raise InvalidRangeError()

    event = CanonicalEvent(
        uid=f"manual-{uuid.uuid4()}",
        title=extract_text(title, MANUAL_TITLE_FALLBACK),
        start=start,
        end=end,
        location="",
        description=MANUAL_DESCRIPTION,
        is_cancelled=False,
        source_type=SourceType.MANUAL,
        import_id=None,
    )
    logger.debug("Built manual event %s at %s", event.uid, event.start_iso)
    return event
