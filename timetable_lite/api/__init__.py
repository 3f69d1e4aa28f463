"""HTTP layer for timetable_lite (aiohttp application, routes, middleware)."""
