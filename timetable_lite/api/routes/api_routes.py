"""Main API routes for timetable_lite."""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web
from pydantic import BaseModel, ValidationError

from ...calendar.lite_models import ImportFeedRequest, ManualEventRequest
from ...core.exceptions import (
    CalendarParseError,
    FeedFetchError,
    ManualEventError,
    PersistenceError,
)
from ...domain.timetable_service import TimetableService

logger = logging.getLogger(__name__)


def _error_response(message: str, status: int) -> web.Response:
    return web.json_response({"message": message}, status=status)


async def _read_body(request: web.Request, model: type[BaseModel]) -> Any:
    """Parse the JSON body into model; raise HTTPBadRequest with a JSON message."""
    try:
        data = await request.json()
        return model.model_validate(data)
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
        logger.debug("Rejected request body for %s: %s", request.path, e)
        raise web.HTTPBadRequest(
            text=json.dumps({"message": "Invalid request body."}),
            content_type="application/json",
        ) from e


def register_api_routes(app: web.Application, service: TimetableService) -> None:
    """Register main API routes.

    Args:
        app: aiohttp web application
        service: TimetableService behind the endpoints
    """

    async def health_check(_request: web.Request) -> web.Response:
        """Liveness marker."""
        return web.json_response({"ok": True})

    async def get_events(_request: web.Request) -> web.Response:
        """Return the whole timeline."""
        try:
            payload = await service.list_events()
        except PersistenceError as e:
            return _error_response(str(e), 500)
        return web.json_response(payload)

    async def import_ical(request: web.Request) -> web.Response:
        """Fetch, parse and import a remote feed."""
        body = await _read_body(request, ImportFeedRequest)
        try:
            payload = await service.import_feed(body.url)
        except (FeedFetchError, CalendarParseError) as e:
            logger.warning("Import of %s rejected: %s", body.url, e)
            return _error_response(str(e), 400)
        except PersistenceError as e:
            return _error_response(str(e), 500)
        return web.json_response(payload)

    async def add_manual_event(request: web.Request) -> web.Response:
        """Validate and store a manual event."""
        body = await _read_body(request, ManualEventRequest)
        try:
            payload = await service.add_manual_event(
                body.title, body.date, body.start_time, body.end_time
            )
        except ManualEventError as e:
            logger.info("Manual event rejected: %s", e)
            return _error_response(str(e), 400)
        except PersistenceError as e:
            return _error_response(str(e), 500)
        return web.json_response(payload)

    async def get_imports(_request: web.Request) -> web.Response:
        """List import provenance records."""
        try:
            payload = await service.list_imports()
        except PersistenceError as e:
            return _error_response(str(e), 500)
        return web.json_response(payload)

    async def delete_import(request: web.Request) -> web.Response:
        """Delete an import record; its events are kept."""
        try:
            import_id = int(request.match_info["import_id"])
        except ValueError:
            return _error_response("Import id must be an integer.", 400)

        try:
            deleted = await service.delete_import(import_id)
        except PersistenceError as e:
            return _error_response(str(e), 500)

        if not deleted:
            return _error_response("Import not found.", 404)
        return web.json_response({"deleted": True})

    app.router.add_get("/api/health", health_check)
    app.router.add_get("/api/events", get_events)
    app.router.add_post("/api/import/ical", import_ical)
    app.router.add_post("/api/events/manual", add_manual_event)
    app.router.add_get("/api/imports", get_imports)
    app.router.add_delete("/api/imports/{import_id}", delete_import)
