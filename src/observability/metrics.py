"""
Prometheus metrics collection for snapshot-migrator

Counters and histograms for both pipeline stages, kept on a private
registry so they can be exposed while a long import is running.
"""
import os
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


# Private registry; the process-wide default registry is left untouched
REGISTRY = CollectorRegistry()


# =======================
# RECORD METRICS
# =======================

# status: transformed, imported, inserted, failed
records_processed_total = Counter(
    name="migration_records_processed_total",
    documentation="Total number of records processed per stage and table",
    labelnames=["stage", "table", "status"],
    registry=REGISTRY,
)

# =======================
# TABLE METRICS
# =======================

# outcome: imported, skipped, error
tables_processed_total = Counter(
    name="migration_tables_processed_total",
    documentation="Total number of tables processed per stage and outcome",
    labelnames=["stage", "outcome"],
    registry=REGISTRY,
)

table_import_duration_seconds = Histogram(
    name="migration_table_import_duration_seconds",
    documentation="Time spent loading one table in seconds",
    labelnames=["table"],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)

# =======================
# WAREHOUSE METRICS
# =======================

batch_fallbacks_total = Counter(
    name="migration_batch_fallbacks_total",
    documentation="Batches retried record by record after a failed batch insert",
    labelnames=["table"],
    registry=REGISTRY,
)

sequences_reconciled_total = Counter(
    name="migration_sequences_reconciled_total",
    documentation="Sequence reconciliation attempts",
    labelnames=["status"],  # status: success, failure
    registry=REGISTRY,
)


# =======================
# EXPOSITION
# =======================

def generate_metrics() -> bytes:
    """Current metrics in Prometheus text format."""
    return generate_latest(REGISTRY)


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Serve REGISTRY over HTTP for the lifetime of the process.

    Args:
        port: Listening port; METRICS_PORT or 8000 when None
    """
    # imported here so importing this module never binds a port
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class track_duration:
    """
    Observe the time spent in a block on a labelled histogram.

    Usage:
        with track_duration(table_import_duration_seconds, table="profiles"):
            loader.import_table("profiles", records, stats)
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(**self.labels).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """Increment a labelled counter; zero increments create no series."""
    if value:
        counter.labels(**labels).inc(value)


# =======================
# STAGE HELPERS
# =======================

def record_table_transform(table: str, record_count: int, success: bool) -> None:
    """Record the outcome of transforming one table file."""
    outcome = "transformed" if success else "error"
    increment_counter(tables_processed_total, 1, stage="transform", outcome=outcome)
    increment_counter(records_processed_total, record_count, stage="transform", table=table, status="transformed")


def record_table_import(
    table: str,
    attempted: int,
    inserted: int,
    failed: int,
    skipped: bool,
    fallback_batches: int = 0,
) -> None:
    """
    Record the outcome of loading one table.

    Args:
        table: Logical table name
        attempted: Records sent to the destination
        inserted: Rows the destination reported as written
        failed: Rows that failed after fallback
        skipped: Whether the table was skipped outright
        fallback_batches: Batches retried record by record
    """
    outcome = "skipped" if skipped else "imported"
    increment_counter(tables_processed_total, 1, stage="import", outcome=outcome)
    increment_counter(records_processed_total, attempted, stage="import", table=table, status="imported")
    increment_counter(records_processed_total, inserted, stage="import", table=table, status="inserted")
    increment_counter(records_processed_total, failed, stage="import", table=table, status="failed")
    increment_counter(batch_fallbacks_total, fallback_batches, table=table)


def record_table_error(stage: str) -> None:
    """Record a table that failed as a whole."""
    increment_counter(tables_processed_total, 1, stage=stage, outcome="error")
