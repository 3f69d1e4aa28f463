"""Timetable domain operations: manual entry, import transactions, repository."""
