"""
Transform stage: exported snapshot -> destination-compatible snapshot.

Flow: load manifest -> transform every listed table file -> write the
transformed files -> write the transformed manifest.
"""

from datetime import datetime, timezone
from typing import Any, Callable

from src.core.exceptions import MigrationError, TransformError
from src.core.models import (
    Manifest,
    ManifestFile,
    TransformedSnapshot,
    TransformStats,
)
from src.core.rules import TransformRuleRegistry
from src.observability import metrics
from src.observability.logger import get_logger, log_operation

from .readers import SnapshotReader
from .writers import SnapshotWriter

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with milliseconds and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordTransformer:
    """
    Applies the registered transform rule to every record of every table
    listed in an export manifest.

    A failure in one table is recorded in the run's TransformStats and that
    table's output file is not produced; the run continues.
    """

    MANIFEST_HINT = "Make sure the data has been exported first."

    def __init__(
        self,
        reader: SnapshotReader,
        writer: SnapshotWriter,
        registry: TransformRuleRegistry | None = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize the transformer.

        Args:
            reader: Reader over the exported snapshot
            writer: Writer for the transformed snapshot
            registry: Transform rules (built-in rules when None)
            clock: Source of "now" for defaulted timestamps
        """
        self.reader = reader
        self.writer = writer
        self.registry = registry or TransformRuleRegistry()
        self.clock = clock

    def now(self) -> str:
        return iso_timestamp(self.clock())

    def transform_records(self, table_name: str, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Apply the table's rule to ``records``.

        Raises:
            TransformError: If the rule fails for any record
        """
        now = self.now()
        try:
            return self.registry.transform(table_name, records, now)
        except Exception as e:
            raise TransformError(table_name, f"{type(e).__name__}: {e}") from e

    def transform_file(self, file_info: ManifestFile, stats: TransformStats) -> ManifestFile | None:
        """
        Transform one table file and write the result.

        Args:
            file_info: Manifest entry of the exported file
            stats: Run accumulator

        Returns:
            Manifest entry of the written file, or None if the table failed
        """
        table_name = file_info.table_name
        logger.info(f"Transforming: {table_name}")

        try:
            snapshot = self.reader.read_table(file_info.filename)
            stats.total_records += len(snapshot.records)

            transformed_records = self.transform_records(table_name, snapshot.records)

            payload = snapshot.model_dump(exclude={"records"})
            payload.update(
                transformedAt=self.now(),
                originalRecordCount=len(snapshot.records),
                transformedRecordCount=len(transformed_records),
                records=transformed_records,
            )
            transformed = TransformedSnapshot.model_validate(payload)
            size = self.writer.write_table(file_info.filename, transformed)

        except (MigrationError, OSError, ValueError) as e:
            message = getattr(e, "message", None) or str(e)
            logger.warning(f"Error transforming {file_info.filename}: {message}")
            stats.record_error(table_name, message, file=file_info.filename)
            metrics.record_table_transform(table_name, 0, success=False)
            return None

        stats.transformed_files += 1
        stats.transformed_records += len(transformed_records)
        metrics.record_table_transform(table_name, len(transformed_records), success=True)
        logger.info(f"Transformed {len(transformed_records)} records for {table_name}")

        return ManifestFile(
            filename=file_info.filename,
            table=file_info.table or table_name,
            size=size,
            recordCount=len(transformed_records),
        )

    def build_manifest(self, stats: TransformStats, files: list[ManifestFile]) -> Manifest:
        """Build the transformed manifest for the files produced in this run."""
        return Manifest(
            transformedAt=self.now(),
            totalFiles=stats.total_files,
            transformedFiles=stats.transformed_files,
            totalRecords=stats.transformed_records,
            errors=[e.model_dump(exclude_none=True, exclude={"record_id"}) for e in stats.errors],
            files=files,
        )

    def run(self) -> tuple[TransformStats, Manifest]:
        """
        Run the transform stage.

        Returns:
            Tuple of (stats, transformed manifest)

        Raises:
            ManifestError: If the export manifest is missing or unparsable
        """
        stats = TransformStats()

        with log_operation("Data transformation", logger=logger, stage="transform"):
            manifest = self.reader.load_manifest(hint=self.MANIFEST_HINT)
            self.writer.ensure_directory()
            logger.info(f"Transformed directory ready: {self.writer.directory}")

            stats.total_files = len(manifest.files)

            written = []
            for file_info in manifest.files:
                result = self.transform_file(file_info, stats)
                if result is not None:
                    written.append(result)

            transformed_manifest = self.build_manifest(stats, written)
            self.writer.write_manifest(transformed_manifest)
            logger.info("Transformation manifest created")

        return stats, transformed_manifest
