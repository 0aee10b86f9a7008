"""
Run accumulators for the transform and import stages.

A fresh accumulator is created at the start of each stage run, mutated only
by the worker driving that run, and returned to the caller for the final
summary. Nothing here is persisted.
"""

from typing import Any

from pydantic import BaseModel, Field


class TableError(BaseModel):
    """An error recorded against a table (or one of its rows)."""

    table: str
    error: str
    file: str | None = None
    record_id: Any = None


class TableSkip(BaseModel):
    """A table that was not processed, with the reason why."""

    table: str
    reason: str


class TableImportResult(BaseModel):
    """
    Outcome of loading one table.

    Attributes:
        table: Logical table name
        attempted: Records sent to the destination (conflicts included)
        inserted: Rows the destination reported as written
        failed: Rows that failed even after per-record fallback
        skipped: True when the table was skipped outright
        reason: Skip reason, if skipped
        error: Table-level error that aborted the load, if any
        fallback_batches: Batches that had to be retried row by row
    """

    table: str
    attempted: int = 0
    inserted: int = 0
    failed: int = 0
    skipped: bool = False
    reason: str | None = None
    error: str | None = None
    fallback_batches: int = 0

    @property
    def conflicts(self) -> int:
        """Rows silently skipped because their key already existed."""
        return max(self.attempted - self.inserted - self.failed, 0)


class SequenceUpdate(BaseModel):
    """A sequence moved past the highest imported value."""

    sequence: str
    table: str
    column: str
    next_value: int


class TransformStats(BaseModel):
    """Accumulator for one transform run."""

    total_files: int = 0
    transformed_files: int = 0
    total_records: int = 0
    transformed_records: int = 0
    errors: list[TableError] = Field(default_factory=list)
    skipped: list[TableSkip] = Field(default_factory=list)

    def record_error(self, table: str, error: str, file: str | None = None) -> None:
        self.errors.append(TableError(table=table, error=error, file=file))


class ImportStats(BaseModel):
    """Accumulator for one import run."""

    total_files: int = 0
    imported_files: int = 0
    total_records: int = 0
    imported_records: int = 0
    errors: list[TableError] = Field(default_factory=list)
    skipped: list[TableSkip] = Field(default_factory=list)
    tables: list[TableImportResult] = Field(default_factory=list)
    sequences: list[SequenceUpdate] = Field(default_factory=list)
    row_counts: dict[str, int] = Field(default_factory=dict)

    def record_error(self, table: str, error: str, record_id: Any = None) -> None:
        self.errors.append(TableError(table=table, error=error, record_id=record_id))

    def record_skip(self, table: str, reason: str) -> None:
        self.skipped.append(TableSkip(table=table, reason=reason))

    def record_table(self, result: TableImportResult) -> None:
        """Fold a loader result into the run totals."""
        self.tables.append(result)
        if result.error is not None:
            return
        if result.skipped:
            self.record_skip(result.table, result.reason or "Skipped")
            return
        self.imported_files += 1
        self.imported_records += result.attempted

    def errors_for(self, table: str) -> list[TableError]:
        return [e for e in self.errors if e.table == table]

    def result_for(self, table: str) -> TableImportResult | None:
        for result in self.tables:
            if result.table == table:
                return result
        return None

    @property
    def inserted_records(self) -> int:
        return sum(t.inserted for t in self.tables)
