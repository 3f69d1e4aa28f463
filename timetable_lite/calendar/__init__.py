"""iCalendar fetching, parsing and normalization."""
