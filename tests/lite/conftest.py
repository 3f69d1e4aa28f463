import datetime
from collections.abc import AsyncIterator, Callable, Generator
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from timetable_lite.core.database import DatabaseManager
from timetable_lite.core.http_client import close_all_clients
from timetable_lite.domain.event_repository import EventRepository
from timetable_lite.domain.import_manager import ImportTransactionManager


@pytest.fixture
def simple_settings() -> SimpleNamespace:
    """Lightweight settings object used across lite tests.

    Fields:
      - request_timeout: whole-download deadline in seconds
      - max_ics_bytes: feed size cap
      - display_timezone: pinned to UTC so labels are deterministic
    """
    return SimpleNamespace(
        request_timeout=15,
        max_ics_bytes=5_000_000,
        display_timezone="UTC",
    )


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear time and logging overrides between tests."""
    for key in ("TIMETABLE_TEST_TIME", "TIMETABLE_DEBUG", "TIMETABLE_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


# ==================== Storage Fixtures ====================


@pytest.fixture
def database(tmp_path: Any) -> DatabaseManager:
    """DatabaseManager backed by a fresh SQLite file."""
    return DatabaseManager(tmp_path / "timetable.sqlite")


@pytest.fixture
def repository(database: DatabaseManager) -> EventRepository:
    """EventRepository rendering labels in UTC."""
    return EventRepository(database, display_timezone=datetime.UTC)


@pytest.fixture
def import_manager(database: DatabaseManager) -> ImportTransactionManager:
    return ImportTransactionManager(database)


# ==================== HTTP Fixtures ====================


@pytest.fixture
async def mock_http_client() -> AsyncIterator[Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]]:
    """Factory building an httpx.AsyncClient over a MockTransport handler."""
    clients: list[httpx.AsyncClient] = []

    def _factory(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _factory

    for client in clients:
        await client.aclose()


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_simple() -> str:
    """
    Return a simple ICS calendar string with a single event.

    - Event: "Team Meeting" on 2024-01-15 10:00-11:00 UTC
    """
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Timetable Test//EN
CALSCALE:GREGORIAN
BEGIN:VEVENT
UID:test-event-001@timetable.test
DTSTART:20240115T100000Z
DTEND:20240115T110000Z
SUMMARY:Team Meeting
LOCATION:Conference Room A
DESCRIPTION:Weekly team sync meeting
DTSTAMP:20240115T090000Z
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def sample_ics_two_events() -> str:
    """
    Return an ICS string with two lectures, the earlier one cancelled.

    Events are listed out of chronological order on purpose.
    """
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Timetable Test//EN
BEGIN:VEVENT
UID:lecture-002@timetable.test
DTSTART:20240311T140000Z
DTEND:20240311T150000Z
SUMMARY:Databases Lecture
LOCATION:Room 2.01
DESCRIPTION:Type: Lecture
DTSTAMP:20240301T090000Z
END:VEVENT
BEGIN:VEVENT
UID:lecture-001@timetable.test
DTSTART:20240311T090000Z
DTEND:20240311T100000Z
SUMMARY:Algorithms Lecture
LOCATION:Room 1.12
STATUS:CANCELLED
DTSTAMP:20240301T090000Z
END:VEVENT
END:VCALENDAR
"""
