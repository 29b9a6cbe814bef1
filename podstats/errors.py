from __future__ import annotations


class PodstatsError(Exception):
    """Base class for dashboard errors."""


class SourceUnreadable(PodstatsError):
    """The source payload could not be decoded as the expected format."""


class MissingTable(PodstatsError):
    def __init__(self, table: str):
        super().__init__(f"table {table!r} not found in source")
        self.table = table


class MissingColumn(PodstatsError):
    """Describes a defaulted column in the log; the loader never raises it."""

    def __init__(self, table: str, column: str):
        super().__init__(f"column {column!r} not found in table {table!r}")
        self.table = table
        self.column = column


class EnrichmentLookupFailed(PodstatsError):
    def __init__(self, name: str, reason: str):
        super().__init__(f"lookup for {name!r} failed: {reason}")
        self.name = name
        self.reason = reason
