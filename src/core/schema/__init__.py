"""
Destination schema helpers: column filtering and dependency order.
"""

from .column_filter import dropped_columns, filter_record, filter_records
from .dependency_order import (
    DECLARED_FOREIGN_KEYS,
    DEFAULT_IMPORT_ORDER,
    derive_import_order,
    find_order_violations,
)

__all__ = [
    "filter_record",
    "filter_records",
    "dropped_columns",
    "DEFAULT_IMPORT_ORDER",
    "DECLARED_FOREIGN_KEYS",
    "derive_import_order",
    "find_order_violations",
]
