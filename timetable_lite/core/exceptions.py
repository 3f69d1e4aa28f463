"""Exception hierarchy for timetable_lite.

Every error raised by the fetch, parse, manual-entry and persistence layers
derives from TimetableError so the HTTP layer can map failures to responses in
one place. Messages are user-facing: the API returns ``str(exc)`` as the
``message`` field.
"""

from typing import Optional


class TimetableError(Exception):
    """Base exception for all timetable_lite errors."""


# Fetch stage


class FeedFetchError(TimetableError):
    """Base exception for remote iCal download failures.

    Raised before anything is written, so a failed fetch never leaves an
    import row or event rows behind.
    """


class InvalidFeedUrlError(FeedFetchError):
    """URL is not an absolute http(s) URL with a hostname."""

    def __init__(self, message: str = "Please provide a valid http or https iCal URL."):
        super().__init__(message)


class FeedTimeoutError(FeedFetchError):
    """Download did not finish before the deadline; the request was cancelled."""

    def __init__(self, message: str = "Request timed out while downloading the iCal file."):
        super().__init__(message)


class FeedHTTPError(FeedFetchError):
    """Remote server answered with a non-success status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        super().__init__(message or f"Failed to download iCal file ({status_code}).")
        self.status_code = status_code


class FeedTooLargeError(FeedFetchError):
    """Advertised or actual body size exceeded the configured cap."""

    def __init__(self, message: str = "iCal file is too large."):
        super().__init__(message)


class NotACalendarError(FeedFetchError):
    """Body does not contain the BEGIN:VCALENDAR marker."""

    def __init__(self, message: str = "URL did not return an iCal file."):
        super().__init__(message)


class FeedNetworkError(FeedFetchError):
    """Transport-level failure (DNS, refused connection, TLS)."""


# Parse stage


class CalendarParseError(TimetableError):
    """Calendar container could not be decoded at all.

    Individual malformed VEVENTs are not errors; they are dropped by the parser.
    """


# Manual entry


class ManualEventError(TimetableError):
    """Base exception for manual event validation failures."""


class InvalidDateError(ManualEventError):
    """Date text is not YYYY-MM-DD / DD/MM/YYYY or not a real calendar date."""

    def __init__(self, message: str = "Date must use DD/MM/YYYY or YYYY-MM-DD format."):
        super().__init__(message)


class InvalidTimeError(ManualEventError):
    """Time text is not a valid 24-hour HH:MM value."""

    def __init__(self, message: str = "Time must use HH:MM format."):
        super().__init__(message)


class InvalidRangeError(ManualEventError):
    """End instant is not strictly after the start instant."""

    def __init__(self, message: str = "End time must be after start time."):
        super().__init__(message)


# Storage


class PersistenceError(TimetableError):
    """A database operation could not be committed and was rolled back."""
