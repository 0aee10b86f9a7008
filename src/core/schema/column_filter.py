"""
Client-side column filtering against the destination column set.

Snapshot records carry the full shape of the source schema, which may
include columns that were removed, renamed or never created at the
destination. Those keys are dropped before an insert is attempted.
"""

from typing import Any, Iterable


def filter_record(record: dict[str, Any], column_names: Iterable[str]) -> dict[str, Any]:
    """
    Keep only the keys of ``record`` that are destination columns.

    Args:
        record: Source record
        column_names: Destination column names

    Returns:
        New dict with the known keys, values unchanged and in record order
    """
    allowed = column_names if isinstance(column_names, (set, frozenset)) else set(column_names)
    return {key: value for key, value in record.items() if key in allowed}


def filter_records(records: list[dict[str, Any]], column_names: Iterable[str]) -> list[dict[str, Any]]:
    """Apply filter_record to every record."""
    allowed = set(column_names)
    return [filter_record(record, allowed) for record in records]


def dropped_columns(records: list[dict[str, Any]], column_names: Iterable[str]) -> set[str]:
    """Keys present in any record that the destination does not know."""
    allowed = set(column_names)
    return {key for record in records for key in record if key not in allowed}
