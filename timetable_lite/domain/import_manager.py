"""Atomic replacement of feed-derived events."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence

from ..calendar.lite_models import CanonicalEvent, SourceType
from ..core.database import DatabaseManager
from ..core.exceptions import PersistenceError
from ..core.timezone_utils import now_utc, to_storage_iso
from .event_repository import INSERT_EVENT_SQL, event_row_values

logger = logging.getLogger(__name__)


class ImportTransactionManager:
    """Replaces the whole feed event set with a new import in one transaction.

    Only one generation of feed events exists at a time: every import deletes
    all feed events, whichever import produced them.
    """

    def __init__(self, database: DatabaseManager):
        self.database = database

    async def import_feed(self, url: str, parsed_events: Sequence[CanonicalEvent]) -> int:
        """Record an import and swap in its events atomically.

        Steps, all inside one BEGIN IMMEDIATE transaction:
        1. insert the imports row and take its id
        2. delete every feed event
        3. insert parsed_events tagged with the new id

        Args:
            url: Feed URL that was fetched
            parsed_events: Events from the parser (may be empty)

        Returns:
            Id of the new import record

        Raises:
            PersistenceError: if any step fails; nothing is committed
        """
        imported_at = to_storage_iso(now_utc())

        async with self.database.write_lock, self.database.connect() as db:
            try:
                await db.execute("BEGIN IMMEDIATE")
                cursor = await db.execute(
                    "INSERT INTO imports (source_url, imported_at) VALUES (?, ?)",
                    (url, imported_at),
                )
                import_id = int(cursor.lastrowid)

                deleted = await db.execute(
                    "DELETE FROM events WHERE source_type = ?", (SourceType.FEED.value,)
                )
                removed = deleted.rowcount

                await db.executemany(
                    INSERT_EVENT_SQL,
                    [
                        event_row_values(event, SourceType.FEED, import_id, imported_at)
                        for event in parsed_events
                    ],
                )
                await db.commit()
            except (sqlite3.Error, OSError, ValueError) as e:
                logger.exception("Import transaction for %s failed; rolling back", url)
                await db.rollback()
                raise PersistenceError(f"Failed to save imported events: {e}") from e

        logger.info(
            "Import %d from %s: replaced %d feed events with %d",
            import_id,
            url,
            removed,
            len(parsed_events),
        )
        return import_id
