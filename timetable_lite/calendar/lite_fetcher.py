"""HTTP client for downloading iCal feeds under time and size limits."""

import asyncio
import logging
from typing import Any, Optional

import httpx

from ..core.exceptions import (
    FeedHTTPError,
    FeedNetworkError,
    FeedTimeoutError,
    FeedTooLargeError,
    InvalidFeedUrlError,
    NotACalendarError,
)
from ..core.http_client import DEFAULT_HEADERS, get_shared_client

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 15.0
MAX_ICAL_BYTES = 5_000_000
CALENDAR_MARKER = "BEGIN:VCALENDAR"
CHUNK_SIZE = 64 * 1024


def is_http_url(url: str) -> bool:
    """Return True for absolute http(s) URLs that name a host and that httpx can request."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


class LiteICSFetcher:
    """Async downloader for remote iCal feeds.

    One download is bounded by ``request_timeout`` end to end and by
    ``max_ics_bytes`` on both the advertised and the received size.
    """

    def __init__(self, settings: Any = None, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize ICS fetcher.

        Args:
            settings: Object with optional ``request_timeout`` and ``max_ics_bytes``
            client: Optional injected client; the shared pooled client is used otherwise
        """
        self.settings = settings
        self.client = client
        self.request_timeout = float(
            getattr(settings, "request_timeout", REQUEST_TIMEOUT_SECONDS) or REQUEST_TIMEOUT_SECONDS
        )
        self.max_bytes = int(getattr(settings, "max_ics_bytes", MAX_ICAL_BYTES) or MAX_ICAL_BYTES)

        logger.debug(
            "Lite ICS fetcher initialized (timeout=%.1fs, max_bytes=%d, injected_client=%s)",
            self.request_timeout,
            self.max_bytes,
            client is not None,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self.client is not None:
            return self.client
        return await get_shared_client("lite_fetcher")

    async def fetch_calendar_text(self, url: str) -> str:
        """Download a feed and return its decoded text.

        Args:
            url: http(s) URL of the feed

        Returns:
            Calendar text containing BEGIN:VCALENDAR

        Raises:
            InvalidFeedUrlError: scheme is not http/https (checked before any I/O)
            FeedTimeoutError: download exceeded the deadline; the request is cancelled
            FeedHTTPError: non-success status
            FeedTooLargeError: advertised, streamed or decoded size over the cap
            NotACalendarError: body lacks BEGIN:VCALENDAR
            FeedNetworkError: transport failure
        """
        url = url.strip() if isinstance(url, str) else ""
        if not is_http_url(url):
            logger.debug("Blocked non-HTTP(S) URL: %r", url)
            raise InvalidFeedUrlError()

        client = await self._get_client()
        logger.debug("Fetching iCal feed from %s", url)

        try:
            # wait_for cancels _download on expiry, which closes the httpx stream.
            text = await asyncio.wait_for(self._download(client, url), timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Timeout after %.1fs fetching %s", self.request_timeout, url)
            raise FeedTimeoutError() from e
        except httpx.InvalidURL as e:
            logger.warning("Rejected unusable URL %s: %s", url, e)
            raise InvalidFeedUrlError() from e
        except httpx.TimeoutException as e:
            logger.warning("Transport timeout fetching %s: %s", url, e)
            raise FeedTimeoutError() from e
        except httpx.HTTPError as e:
            logger.warning("Network error fetching %s: %s", url, e)
            raise FeedNetworkError(f"Network error while downloading the iCal file: {e}") from e

        if CALENDAR_MARKER not in text:
            logger.warning("Content from %s does not look like an iCal file", url)
            raise NotACalendarError()

        logger.info("Fetched iCal feed from %s (%d chars)", url, len(text))
        return text

    async def _download(self, client: httpx.AsyncClient, url: str) -> str:
        """Stream the body, aborting as soon as a limit is exceeded."""
        async with client.stream("GET", url, headers=DEFAULT_HEADERS, follow_redirects=True) as response:
            if not response.is_success:
                raise FeedHTTPError(response.status_code)

            self._check_content_length(response.headers.get("content-length"))

            received = 0
            chunks: list[bytes] = []
            async for chunk in response.aiter_bytes(CHUNK_SIZE):
                received += len(chunk)
                if received > self.max_bytes:
                    logger.warning("Aborting download of %s after %d bytes", url, received)
                    raise FeedTooLargeError()
                chunks.append(chunk)

            encoding = response.encoding or "utf-8"

        text = b"".join(chunks).decode(encoding, errors="replace")
        if len(text) > self.max_bytes:
            raise FeedTooLargeError()
        return text

    def _check_content_length(self, header_value: Optional[str]) -> None:
        """Reject an advertised size above the cap; ignore absent or bogus headers."""
        if not header_value:
            return
        try:
            advertised = int(header_value)
        except ValueError:
            logger.debug("Ignoring non-numeric Content-Length %r", header_value)
            return
        if advertised > self.max_bytes:
            raise FeedTooLargeError()
