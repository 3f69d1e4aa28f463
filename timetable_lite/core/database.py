"""SQLite database setup for the timetable store."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Union

import aiosqlite

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS imports (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_url TEXT NOT NULL,
        imported_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        import_id INTEGER,
        source_type TEXT NOT NULL,
        uid TEXT,
        title TEXT NOT NULL,
        start_iso TEXT NOT NULL,
        end_iso TEXT NOT NULL,
        location TEXT,
        description TEXT,
        is_cancelled INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (import_id) REFERENCES imports(id) ON DELETE SET NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_start ON events(start_iso)",
    "CREATE INDEX IF NOT EXISTS idx_events_source_type ON events(source_type)",
)


class DatabaseManager:
    """Owns the SQLite file, its schema and per-operation connections.

    Connections are opened per operation. WAL mode lets readers keep a
    consistent snapshot while the import transaction is in flight, and
    ``write_lock`` serializes writers inside the process.
    """

    def __init__(self, database_path: Union[Path, str]):
        """Initialize database manager.

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._initialization_lock: asyncio.Lock | None = None
        self._write_lock: asyncio.Lock | None = None

        logger.info("Database manager initialized (lazy): %s", self.database_path)

    @property
    def write_lock(self) -> asyncio.Lock:
        """Process-wide lock held by multi-statement writers."""
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        return self._write_lock

    async def initialize(self) -> None:
        """Create the schema if needed. Safe to call on every startup.

        Raises:
            PersistenceError: if the schema could not be created
        """
        if self._initialized:
            return

        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            if self._initialized:
                return
            try:
                async with aiosqlite.connect(str(self.database_path)) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.execute("PRAGMA foreign_keys=ON")
                    for statement in SCHEMA_STATEMENTS:
                        await db.execute(statement)
                    await db.commit()
            except Exception as e:
                logger.exception("Failed to initialize database schema")
                raise PersistenceError(f"Failed to initialize database: {e}") from e

            self._initialized = True
            logger.info("Database schema initialized successfully")

    @contextlib.asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with row access by name and foreign keys enabled."""
        await self.initialize()
        async with aiosqlite.connect(str(self.database_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON")
            yield db
