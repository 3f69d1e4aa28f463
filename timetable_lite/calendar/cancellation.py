"""Cancellation detection for feed events.

Some feeds mark cancellations with STATUS:CANCELLED; others only annotate the
title or description (for example university timetable exports that write
``Type: CANCELLED`` into DESCRIPTION). All heuristics live here.
"""

import re
from typing import Any

from .text_utils import extract_text

CANCELLED_STATUS = "CANCELLED"
_TITLE_MARKER = re.compile(r"\[CANCELLED\]", re.IGNORECASE)
_DESCRIPTION_MARKER = re.compile(r"Type:\s*CANCELLED", re.IGNORECASE)


def is_cancelled(status: Any, title: Any, description: Any) -> bool:
    """Classify an event as cancelled.

    Args:
        status: Raw STATUS value (any shape)
        title: Event title
        description: Event description

    Returns:
        True when the status is CANCELLED, the title carries ``[CANCELLED]``,
        or the description contains ``Type: CANCELLED`` (all case-insensitive).
    """
    if extract_text(status).upper() == CANCELLED_STATUS:
        return True
    if _TITLE_MARKER.search(extract_text(title)):
        return True
    return bool(_DESCRIPTION_MARKER.search(extract_text(description)))
