"""Event storage and display projections."""

from __future__ import annotations

import datetime
import logging
import sqlite3
from typing import Any

from ..calendar.lite_models import CanonicalEvent, ImportRecord, SourceType, StoredEvent
from ..core.database import DatabaseManager
from ..core.exceptions import PersistenceError
from ..core.timezone_utils import get_local_timezone, now_utc, parse_storage_iso, to_storage_iso

logger = logging.getLogger(__name__)

INVALID_DATE_LABEL = "Invalid Date"
INVALID_TIME_LABEL = "Invalid Time"

INSERT_EVENT_SQL = """
    INSERT INTO events (
        import_id,
        source_type,
        uid,
        title,
        start_iso,
        end_iso,
        location,
        description,
        is_cancelled,
        created_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

SELECT_EVENTS_SQL = """
    SELECT
        id,
        import_id,
        source_type,
        uid,
        title,
        start_iso,
        end_iso,
        location,
        description,
        is_cancelled
    FROM events
    ORDER BY start_iso ASC, id ASC
"""


def event_row_values(
    event: CanonicalEvent,
    source_type: SourceType,
    import_id: int | None,
    created_at: str,
) -> tuple[Any, ...]:
    """Map a CanonicalEvent onto INSERT_EVENT_SQL parameters."""
    return (
        import_id,
        source_type.value,
        event.uid,
        event.title,
        event.start_iso,
        event.end_iso,
        event.location,
        event.description,
        1 if event.is_cancelled else 0,
        created_at,
    )


def format_labels(start_iso: Any, tz: datetime.tzinfo) -> tuple[str, str]:
    """Return (DD/MM/YYYY, HH:MM) for a stored start, or the invalid markers."""
    start = parse_storage_iso(start_iso)
    if start is None:
        return INVALID_DATE_LABEL, INVALID_TIME_LABEL
    local = start.astimezone(tz)
    return local.strftime("%d/%m/%Y"), local.strftime("%H:%M")


class EventRepository:
    """Reads and writes canonical events across both source types."""

    def __init__(self, database: DatabaseManager, display_timezone: datetime.tzinfo | None = None):
        self.database = database
        self.display_timezone = display_timezone or get_local_timezone()

    async def insert_manual(self, event: CanonicalEvent) -> int:
        """Persist one manual event stamped with the insertion time.

        Returns:
            Row id of the new event

        Raises:
            PersistenceError: if the row could not be written
        """
        created_at = to_storage_iso(now_utc())
        try:
            async with self.database.connect() as db:
                cursor = await db.execute(
                    INSERT_EVENT_SQL,
                    event_row_values(event, SourceType.MANUAL, None, created_at),
                )
                await db.commit()
                row_id = cursor.lastrowid
        except (sqlite3.Error, OSError) as e:
            logger.exception("Failed to insert manual event %s", event.uid)
            raise PersistenceError(f"Failed to save manual event: {e}") from e

        logger.info("Inserted manual event %s (id=%s)", event.uid, row_id)
        return int(row_id)

    async def list_all(self) -> list[StoredEvent]:
        """Return every event ordered by start, then insertion id, with display labels."""
        try:
            async with self.database.connect() as db:
                cursor = await db.execute(SELECT_EVENTS_SQL)
                rows = await cursor.fetchall()
        except (sqlite3.Error, OSError) as e:
            logger.exception("Failed to list events")
            raise PersistenceError(f"Failed to load events: {e}") from e

        return [self._row_to_stored_event(row) for row in rows]

    async def list_imports(self) -> list[ImportRecord]:
        """Return import provenance records, newest first."""
        try:
            async with self.database.connect() as db:
                cursor = await db.execute(
                    "SELECT id, source_url, imported_at FROM imports ORDER BY id DESC"
                )
                rows = await cursor.fetchall()
        except (sqlite3.Error, OSError) as e:
            logger.exception("Failed to list imports")
            raise PersistenceError(f"Failed to load imports: {e}") from e

        return [
            ImportRecord(id=row["id"], source_url=row["source_url"], imported_at=row["imported_at"])
            for row in rows
        ]

    async def delete_import(self, import_id: int) -> bool:
        """Delete an import record; its events stay with import_id cleared.

        Returns:
            True if a record was deleted
        """
        try:
            async with self.database.write_lock, self.database.connect() as db:
                cursor = await db.execute("DELETE FROM imports WHERE id = ?", (import_id,))
                await db.commit()
                deleted = cursor.rowcount > 0
        except (sqlite3.Error, OSError) as e:
            logger.exception("Failed to delete import %s", import_id)
            raise PersistenceError(f"Failed to delete import: {e}") from e

        logger.info("Delete import %s: %s", import_id, "removed" if deleted else "not found")
        return deleted

    def _row_to_stored_event(self, row: Any) -> StoredEvent:
        date_label, time_label = format_labels(row["start_iso"], self.display_timezone)
        return StoredEvent(
            id=row["id"],
            import_id=row["import_id"],
            source_type=row["source_type"],
            uid=row["uid"],
            title=row["title"],
            start_iso=row["start_iso"],
            end_iso=row["end_iso"],
            location=row["location"] or "",
            description=row["description"] or "",
            is_cancelled=row["is_cancelled"] == 1,
            date_label=date_label,
            time_label=time_label,
        )
