"""
Import stage orchestration.

Coordinates the flow: manifest -> per-table load in dependency order ->
sequence reconciliation -> row-count validation
"""

import time
from typing import Callable

from src.config.settings import DEFAULT_KEY_TABLES
from src.core.exceptions import SnapshotFormatError
from src.core.models import ImportStats, Manifest, TableImportResult
from src.core.schema import (
    DEFAULT_IMPORT_ORDER,
    derive_import_order,
    find_order_violations,
)
from src.observability import metrics
from src.observability.logger import get_logger, log_operation
from src.warehouse.introspection import SchemaIntrospector
from src.warehouse.loader import BatchLoader
from src.warehouse.sequences import SequenceReconciler

from .readers import SnapshotReader

logger = get_logger(__name__)

DEFAULT_TABLE_DELAY = 0.05


class ImportOrchestrator:
    """
    Orchestrates the import of a transformed snapshot.

    Flow:
    1. Walk the import order, parents before children
    2. Load each table present in the manifest
    3. Pause briefly between tables
    4. Reconcile sequences
    5. Report row counts of the key tables

    Tables in the manifest but not in the import order are never loaded.
    """

    MANIFEST_HINT = "Run the transform stage first."

    def __init__(
        self,
        reader: SnapshotReader,
        loader: BatchLoader,
        introspector: SchemaIntrospector,
        reconciler: SequenceReconciler,
        import_order: list[str] | None = None,
        key_tables: list[str] | None = None,
        table_delay: float = DEFAULT_TABLE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        derive_order: bool = False,
    ):
        """
        Initialize import orchestrator.

        Args:
            reader: Reader over the transformed snapshot
            loader: Per-table batch loader
            introspector: Destination schema introspector
            reconciler: Sequence reconciler
            import_order: Tables to load, parents first
            key_tables: Tables whose row counts are reported at the end
            table_delay: Seconds to pause after each table
            sleep: Sleep function (replaced in tests)
            derive_order: Compute the order from live foreign keys
        """
        self.reader = reader
        self.loader = loader
        self.introspector = introspector
        self.reconciler = reconciler
        self.import_order = list(import_order or DEFAULT_IMPORT_ORDER)
        self.key_tables = list(DEFAULT_KEY_TABLES if key_tables is None else key_tables)
        self.table_delay = table_delay
        self.sleep = sleep
        self.derive_order = derive_order

    def resolve_order(self, manifest: Manifest) -> list[str]:
        """
        Return the order tables are loaded in.

        With ``derive_order`` the configured order is re-sorted against the
        destination's foreign keys; otherwise it is used as is and any
        foreign key it contradicts is logged.

        Raises:
            DependencyOrderError: If the live foreign keys contain a cycle
        """
        fk_pairs = self.introspector.get_foreign_keys()

        if not self.derive_order:
            for child, parent in find_order_violations(self.import_order, fk_pairs):
                logger.warning(
                    f"Import order loads {child} before its parent {parent}; "
                    f"the order may be out of date"
                )
            return self.import_order

        tables = list(self.import_order)
        tables.extend(f.table_name for f in manifest.files if f.table_name not in tables)
        known = set(tables)
        pairs = [(c, p) for c, p in fk_pairs if c in known and p in known]

        order = derive_import_order(tables, pairs, preferred=self.import_order)
        logger.info(f"Derived import order from {len(pairs)} foreign keys")
        return order

    def import_file(self, table_name: str, stats: ImportStats) -> TableImportResult:
        """Read one transformed table file and load it."""
        filename = f"{table_name}.json"
        logger.info(f"Importing: {table_name}")

        try:
            snapshot = self.reader.read_table(filename)
        except SnapshotFormatError as e:
            logger.error(f"Error importing {table_name}: {e.message}")
            stats.record_error(table_name, e.message)
            return TableImportResult(table=table_name, error=e.message)

        stats.total_records += len(snapshot.records)
        with metrics.track_duration(metrics.table_import_duration_seconds, table=table_name):
            return self.loader.import_table(table_name, snapshot.records, stats)

    def import_all_tables(self, manifest: Manifest, stats: ImportStats) -> None:
        """Load every table of the order that the manifest lists."""
        stats.total_files = len(manifest.files)

        for table_name in self.resolve_order(manifest):
            filename = f"{table_name}.json"
            if not manifest.has_file(filename):
                logger.info(
                    f"File {filename} not found in snapshot, skipping",
                    extra={"stage": "import", "table": table_name},
                )
                stats.record_skip(table_name, "File not found")
            elif not self.reader.has_file(filename):
                logger.warning(
                    f"File {filename} is listed in the manifest but missing, skipping",
                    extra={"stage": "import", "table": table_name},
                )
                stats.record_skip(table_name, "File not found")
            else:
                result = self.import_file(table_name, stats)
                stats.record_table(result)
                if result.error is not None:
                    metrics.record_table_error("import")
                else:
                    metrics.record_table_import(
                        table_name,
                        attempted=result.attempted,
                        inserted=result.inserted,
                        failed=result.failed,
                        skipped=result.skipped,
                        fallback_batches=result.fallback_batches,
                    )

            # Pause between tables to keep load on the destination low
            if self.table_delay > 0:
                self.sleep(self.table_delay)

    def validate_import(self, stats: ImportStats) -> dict[str, int]:
        """
        Count rows in the key tables that exist.

        Returns:
            Row count per counted table
        """
        logger.info("Validating imported data...")
        counts = {}
        for table_name in self.key_tables:
            if not self.introspector.table_exists(table_name):
                continue
            count = self.introspector.count_rows(table_name)
            if count is not None:
                logger.info(f"{table_name}: {count} records")
                counts[table_name] = count
        stats.row_counts.update(counts)
        return counts

    def run_import(self, manifest: Manifest | None = None) -> ImportStats:
        """
        Run the import stage.

        Args:
            manifest: Transformed manifest (loaded from the reader when None)

        Returns:
            ImportStats for the run

        Raises:
            ManifestError: If the manifest is missing or unparsable
        """
        stats = ImportStats()

        with log_operation("Data import", logger=logger, stage="import"):
            if manifest is None:
                manifest = self.reader.load_manifest(hint=self.MANIFEST_HINT)

            self.import_all_tables(manifest, stats)
            stats.sequences = self.reconciler.reconcile_sequences()
            self.validate_import(stats)

        return stats
