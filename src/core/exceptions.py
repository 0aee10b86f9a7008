"""
Exception hierarchy for the migration pipeline.

Only ManifestError and DestinationUnavailableError are meant to stop a run;
everything else is caught at table or row level and recorded in the stats.
"""


class MigrationError(Exception):
    """Base class for all migration pipeline errors."""
    pass


class ManifestError(MigrationError):
    """Raised when a manifest file is missing or cannot be parsed."""

    def __init__(self, path: str, message: str, hint: str | None = None):
        self.path = path
        self.message = message
        self.hint = hint
        super().__init__(f"{path}: {message}")


class DestinationUnavailableError(MigrationError):
    """Raised when the destination database cannot be reached."""
    pass


class SnapshotFormatError(MigrationError):
    """Raised when a table snapshot file is unreadable or malformed."""

    def __init__(self, filename: str, message: str = "Invalid data format"):
        self.filename = filename
        self.message = message
        super().__init__(message)


class TransformError(MigrationError):
    """Raised when a transform rule fails for a table."""

    def __init__(self, table: str, message: str):
        self.table = table
        self.message = message
        super().__init__(f"[{table}] {message}")


class DependencyOrderError(MigrationError):
    """Raised when a table order cannot be derived from foreign keys."""

    def __init__(self, message: str, tables: list[str] | None = None):
        self.tables = tables or []
        super().__init__(message)
