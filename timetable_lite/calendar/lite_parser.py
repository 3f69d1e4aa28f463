"""iCalendar parser producing canonical timetable events."""

import logging
import uuid
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional, Union

from icalendar import Calendar, Event as ICalEvent

from ..core.exceptions import CalendarParseError
from ..core.timezone_utils import resolve_timezone
from .cancellation import is_cancelled
from .lite_models import CanonicalEvent, SourceType
from .text_utils import extract_text

logger = logging.getLogger(__name__)

UNTITLED_EVENT = "Untitled Event"


def _property_value(prop: Any) -> Any:
    """Return ``prop.dt``, or None when the property is absent or broken.

    Newer icalendar releases keep unparseable values as broken properties
    whose ``dt`` access raises instead of returning a value.
    """
    if prop is None:
        return None
    try:
        return prop.dt
    except Exception as e:
        logger.debug("Ignoring unreadable date property %r: %s", prop, e)
        return None


def _to_instant(prop: Any, default_tz: tzinfo) -> Optional[datetime]:
    """Convert a DTSTART/DTEND property to an aware datetime.

    DATE values become midnight and floating datetimes are pinned to
    default_tz. Anything that is not a date or datetime returns None.
    """
    value = _property_value(prop)
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=default_tz)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=default_tz)
    return None


def _resolve_end(component: ICalEvent, start: datetime, default_tz: tzinfo) -> datetime:
    """Return the end instant, falling back to start when DTEND is missing or garbled."""
    end = _to_instant(component.get("DTEND"), default_tz)
    if end is not None:
        return end

    duration = _property_value(component.get("DURATION"))
    if isinstance(duration, timedelta):
        return start + duration

    return start


class LiteICSParser:
    """Turns raw iCalendar text into an ordered list of CanonicalEvent."""

    def __init__(self, settings: Any = None, default_timezone: Union[tzinfo, str, None] = None) -> None:
        """Initialize ICS parser.

        Args:
            settings: Optional settings; ``display_timezone`` pins floating times
            default_timezone: Explicit zone (tzinfo or IANA name); wins over settings
        """
        self.settings = settings
        if isinstance(default_timezone, tzinfo):
            self.default_timezone = default_timezone
        else:
            self.default_timezone = resolve_timezone(
                default_timezone or getattr(settings, "display_timezone", None)
            )

    def parse_events(self, ics_text: str) -> list[CanonicalEvent]:
        """Parse every VEVENT in ics_text.

        Events without a usable start are dropped. The result is sorted by
        start instant; ties keep their order of appearance.

        Raises:
            CalendarParseError: if the text is not decodable as a calendar
        """
        try:
            calendars = Calendar.from_ical(ics_text, multiple=True)
        except Exception as e:
            logger.warning("Failed to decode calendar container: %s", e)
            raise CalendarParseError(f"Failed to parse iCal file: {e}") from e

        events: list[CanonicalEvent] = []
        skipped = 0
        for calendar in calendars:
            for component in calendar.walk("VEVENT"):
                event = self.parse_event_component(component)
                if event is None:
                    skipped += 1
                    continue
                events.append(event)

        events.sort(key=lambda e: e.start)
        logger.debug("Parsed %d events (%d skipped)", len(events), skipped)
        return events

    def parse_event_component(self, component: ICalEvent) -> Optional[CanonicalEvent]:
        """Parse a single VEVENT, or return None if it has no valid start."""
        try:
            start = _to_instant(component.get("DTSTART"), self.default_timezone)
            if start is None:
                logger.debug("Skipping VEVENT %r without a valid DTSTART", component.get("UID"))
                return None

            end = _resolve_end(component, start, self.default_timezone)
            title = extract_text(component.get("SUMMARY"), UNTITLED_EVENT)
            description = extract_text(component.get("DESCRIPTION"))
            location = extract_text(component.get("LOCATION"))

            return CanonicalEvent(
                uid=extract_text(component.get("UID"), str(uuid.uuid4())),
                title=title,
                start=start,
                end=end,
                location=location,
                description=description,
                is_cancelled=is_cancelled(component.get("STATUS"), title, description),
                source_type=SourceType.FEED,
            )
        except Exception:
            logger.exception("Failed to parse event component")
            return None


def parse_ics_events(
    ics_text: str, default_timezone: Union[tzinfo, str, None] = None
) -> list[CanonicalEvent]:
    """Parse ics_text into canonical feed events sorted by start.

    Floating and all-day times are pinned to default_timezone (host zone when None).
    """
    return LiteICSParser(default_timezone=default_timezone).parse_events(ics_text)
