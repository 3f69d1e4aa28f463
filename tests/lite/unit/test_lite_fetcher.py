"""Unit tests for timetable_lite.calendar.lite_fetcher.

Network access is replaced by httpx.MockTransport handlers.
"""

import asyncio
from collections.abc import AsyncIterator
from types import SimpleNamespace

import httpx
import pytest

from timetable_lite.calendar.lite_fetcher import LiteICSFetcher, is_http_url
from timetable_lite.core.exceptions import (
    FeedHTTPError,
    FeedNetworkError,
    FeedTimeoutError,
    FeedTooLargeError,
    InvalidFeedUrlError,
    NotACalendarError,
)

pytestmark = pytest.mark.unit

FEED_URL = "https://example.com/timetable.ics"


class TestIsHttpUrl:
    """URL validation happens before any I/O."""

    @pytest.mark.parametrize(
        "url",
        ["http://example.com/cal.ics", "https://example.com/cal.ics", "https://10.0.0.1:8443/x"],
    )
    def test_is_http_url_when_http_or_https_then_true(self, url: str) -> None:
        assert is_http_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            "ftp://example.com/cal.ics",
            "file:///etc/passwd",
            "webcal://example.com/cal",
            "http:///x",
            "",
            "not a url",
            "http://[::1]:abc/x",
        ],
    )
    def test_is_http_url_when_other_scheme_or_no_host_then_false(self, url: str) -> None:
        assert is_http_url(url) is False


class TestFetchCalendarText:
    """Tests for LiteICSFetcher.fetch_calendar_text."""

    async def test_fetch_when_valid_calendar_then_returns_text(
        self, simple_settings: SimpleNamespace, mock_http_client, sample_ics_simple: str
    ) -> None:
        seen_headers: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen_headers.update(request.headers)
            return httpx.Response(200, text=sample_ics_simple)

        fetcher = LiteICSFetcher(simple_settings, client=mock_http_client(handler))

        text = await fetcher.fetch_calendar_text(f"  {FEED_URL}  ")

        assert "BEGIN:VCALENDAR" in text
        assert "Team Meeting" in text
        assert seen_headers["accept"].startswith("text/calendar")

    async def test_fetch_when_scheme_not_http_then_raises_before_request(
        self, simple_settings: SimpleNamespace, mock_http_client
    ) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text="BEGIN:VCALENDAR")

        fetcher = LiteICSFetcher(simple_settings, client=mock_http_client(handler))

        with pytest.raises(InvalidFeedUrlError, match="valid http or https"):
            await fetcher.fetch_calendar_text("ftp://example.com/cal.ics")
        assert calls == []

    async def test_fetch_when_url_unusable_by_client_then_invalid_url_error(
        self, simple_settings: SimpleNamespace, mock_http_client
    ) -> None:
        fetcher = LiteICSFetcher(
            simple_settings, client=mock_http_client(lambda request: httpx.Response(200))
        )

        with pytest.raises(InvalidFeedUrlError):
            await fetcher.fetch_calendar_text("http://[::1]:abc/x")

    async def test_fetch_when_status_404_then_raises_http_error(
        self, simple_settings: SimpleNamespace, mock_http_client
    ) -> None:
        fetcher = LiteICSFetcher(
            simple_settings, client=mock_http_client(lambda request: httpx.Response(404))
        )

        with pytest.raises(FeedHTTPError) as exc_info:
            await fetcher.fetch_calendar_text(FEED_URL)

        assert exc_info.value.status_code == 404
        assert str(exc_info.value) == "Failed to download iCal file (404)."

    async def test_fetch_when_body_not_calendar_then_raises(
        self, simple_settings: SimpleNamespace, mock_http_client
    ) -> None:
        fetcher = LiteICSFetcher(
            simple_settings,
            client=mock_http_client(lambda request: httpx.Response(200, text="<html>login</html>")),
        )

        with pytest.raises(NotACalendarError, match="did not return an iCal file"):
            await fetcher.fetch_calendar_text(FEED_URL)

    async def test_fetch_when_content_length_over_cap_then_raises(self, mock_http_client) -> None:
        settings = SimpleNamespace(request_timeout=15, max_ics_bytes=100)
        body = "BEGIN:VCALENDAR\n" + "X" * 500
        fetcher = LiteICSFetcher(
            settings, client=mock_http_client(lambda request: httpx.Response(200, text=body))
        )

        with pytest.raises(FeedTooLargeError, match="too large"):
            await fetcher.fetch_calendar_text(FEED_URL)

    async def test_fetch_when_streamed_body_over_cap_without_length_then_raises(
        self, mock_http_client
    ) -> None:
        settings = SimpleNamespace(request_timeout=15, max_ics_bytes=1000)
        produced: list[int] = []

        async def body() -> AsyncIterator[bytes]:
            yield b"BEGIN:VCALENDAR\n"
            for _ in range(100):
                produced.append(1)
                yield b"X" * 40_000

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body())

        fetcher = LiteICSFetcher(settings, client=mock_http_client(handler))

        with pytest.raises(FeedTooLargeError):
            await fetcher.fetch_calendar_text(FEED_URL)
        # Aborted early instead of draining the whole body
        assert len(produced) < 100

    def test_check_content_length_when_absent_or_bogus_then_ignored(
        self, simple_settings: SimpleNamespace
    ) -> None:
        fetcher = LiteICSFetcher(simple_settings)

        fetcher._check_content_length("not-a-number")
        fetcher._check_content_length(None)
        with pytest.raises(FeedTooLargeError):
            fetcher._check_content_length(str(simple_settings.max_ics_bytes + 1))

    async def test_fetch_when_server_too_slow_then_raises_timeout(self, mock_http_client) -> None:
        settings = SimpleNamespace(request_timeout=0.05, max_ics_bytes=5_000_000)

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, text="BEGIN:VCALENDAR")

        fetcher = LiteICSFetcher(settings, client=mock_http_client(handler))

        with pytest.raises(FeedTimeoutError, match="timed out"):
            await fetcher.fetch_calendar_text(FEED_URL)

    async def test_fetch_when_body_trickles_past_deadline_then_raises_timeout(
        self, mock_http_client
    ) -> None:
        settings = SimpleNamespace(request_timeout=0.05, max_ics_bytes=5_000_000)

        async def body() -> AsyncIterator[bytes]:
            yield b"BEGIN:VCALENDAR\n"
            await asyncio.sleep(5)
            yield b"END:VCALENDAR\n"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body())

        fetcher = LiteICSFetcher(settings, client=mock_http_client(handler))

        with pytest.raises(FeedTimeoutError):
            await fetcher.fetch_calendar_text(FEED_URL)

    async def test_fetch_when_transport_timeout_then_raises_timeout(
        self, simple_settings: SimpleNamespace, mock_http_client
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        fetcher = LiteICSFetcher(simple_settings, client=mock_http_client(handler))

        with pytest.raises(FeedTimeoutError):
            await fetcher.fetch_calendar_text(FEED_URL)

    async def test_fetch_when_connection_fails_then_raises_network_error(
        self, simple_settings: SimpleNamespace, mock_http_client
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = LiteICSFetcher(simple_settings, client=mock_http_client(handler))

        with pytest.raises(FeedNetworkError, match="connection refused"):
            await fetcher.fetch_calendar_text(FEED_URL)


class TestFetcherSettings:
    """Settings fall back to built-in limits."""

    def test_defaults_when_settings_missing(self) -> None:
        fetcher = LiteICSFetcher()

        assert fetcher.request_timeout == 15.0
        assert fetcher.max_bytes == 5_000_000
        assert fetcher.client is None
