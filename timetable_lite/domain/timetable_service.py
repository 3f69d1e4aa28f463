"""Request-level orchestration of fetch, parse, import and manual entry."""

from __future__ import annotations

import datetime
import logging
from typing import Any

from ..calendar.lite_fetcher import LiteICSFetcher
from ..calendar.lite_parser import LiteICSParser
from .event_repository import EventRepository
from .import_manager import ImportTransactionManager
from .manual_event import build_manual_event

logger = logging.getLogger(__name__)


class TimetableService:
    """Composes the pipeline behind the HTTP API.

    Every method returns a JSON-ready mapping with camelCase keys. Fetch,
    parse and validation errors propagate before anything is written.
    """

    def __init__(
        self,
        fetcher: LiteICSFetcher,
        parser: LiteICSParser,
        repository: EventRepository,
        import_manager: ImportTransactionManager,
        display_timezone: datetime.tzinfo | None = None,
    ):
        self.fetcher = fetcher
        self.parser = parser
        self.repository = repository
        self.import_manager = import_manager
        self.display_timezone = display_timezone

    async def list_events(self) -> dict[str, Any]:
        """Return ``{count, events}`` for the whole timeline."""
        events = await self.repository.list_all()
        return {
            "count": len(events),
            "events": [event.model_dump(by_alias=True) for event in events],
        }

    async def import_feed(self, url: str) -> dict[str, Any]:
        """Fetch, parse and import a feed, then return the refreshed timeline."""
        url = url.strip()
        ics_text = await self.fetcher.fetch_calendar_text(url)
        parsed_events = self.parser.parse_events(ics_text)
        import_id = await self.import_manager.import_feed(url, parsed_events)

        timeline = await self.list_events()
        return {"importId": import_id, "importedCount": len(parsed_events), **timeline}

    async def add_manual_event(
        self,
        title: str | None,
        date: str,
        start_time: str,
        end_time: str,
    ) -> dict[str, Any]:
        """Validate and store a manual event, then return the refreshed timeline."""
        event = build_manual_event(title, date, start_time, end_time, tz=self.display_timezone)
        await self.repository.insert_manual(event)
        return await self.list_events()

    async def list_imports(self) -> dict[str, Any]:
        """Return ``{count, imports}`` newest first."""
        imports = await self.repository.list_imports()
        return {
            "count": len(imports),
            "imports": [record.model_dump(by_alias=True) for record in imports],
        }

    async def delete_import(self, import_id: int) -> bool:
        """Delete an import record, keeping its events."""
        return await self.repository.delete_import(import_id)
