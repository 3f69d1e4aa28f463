"""Safe text extraction for loosely-typed iCalendar property values."""

from typing import Any


def extract_text(raw_value: Any, fallback: str = "") -> str:
    """Return the stripped text of raw_value, or fallback.

    Only ``str`` values count as text (icalendar's vText is a str subclass).
    Anything else, including None, bytes, lists and numbers, yields the
    fallback, as does a string that is empty after stripping.

    >>> extract_text("  Lecture  ")
    'Lecture'
    >>> extract_text(None, "Untitled Event")
    'Untitled Event'
    >>> extract_text("   ", "x")
    'x'
    """
    if not isinstance(raw_value, str):
        return fallback
    stripped = raw_value.strip()
    return stripped if stripped else fallback
