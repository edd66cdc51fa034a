"""Data layer error hierarchy.

These propagate out of handlers unmodified; the ASGI boundary reports
them as 500s. The resolution pipeline never retries or hides them.
"""

from roost.errors import RoostError


class DataError(RoostError):
    """Base for all roost.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class QueryError(DataError):
    """Raised when a SQL query fails."""


class StaleRecordError(DataError):
    """Raised when an update or delete matches no row."""
