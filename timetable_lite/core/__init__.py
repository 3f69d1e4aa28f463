"""Shared infrastructure: errors, database, HTTP client pool, time helpers."""
