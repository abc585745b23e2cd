"""Feature slices layered on top of the table engine."""
