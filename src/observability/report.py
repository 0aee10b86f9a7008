"""
Human-readable end-of-run summaries for both pipeline stages.

The summary is the primary diagnostic surface of a run: it must be possible
to reconstruct what happened to every table from it alone.
"""

from src.core.models import ImportStats, TransformStats

RULE = "=" * 60


def render_transform_summary(stats: TransformStats, output_dir: str | None = None) -> str:
    """
    Render the transform stage summary.

    Args:
        stats: Accumulator returned by the transform run
        output_dir: Directory the transformed snapshot was written to

    Returns:
        Multi-line summary text
    """
    lines = [
        RULE,
        "TRANSFORMATION SUMMARY",
        RULE,
        f"Files transformed: {stats.transformed_files}/{stats.total_files}",
        f"Records read: {stats.total_records}",
        f"Records transformed: {stats.transformed_records}",
    ]
    if output_dir:
        lines.append(f"Output directory: {output_dir}")

    if stats.skipped:
        lines.append("")
        lines.append(f"Skipped files: {len(stats.skipped)}")
        lines.extend(f"  - {skip.table}: {skip.reason}" for skip in stats.skipped)

    if stats.errors:
        lines.append("")
        lines.append(f"Errors encountered: {len(stats.errors)}")
        lines.extend(f"  - {err.file or err.table}: {err.error}" for err in stats.errors)

    lines.append("")
    lines.append("Next steps:")
    lines.append("  1. Review the transformed data files")
    lines.append("  2. Import data into the destination: python -m src.cli.migrate_cli import")
    lines.append(RULE)
    return "\n".join(lines)


def render_import_summary(stats: ImportStats) -> str:
    """
    Render the import stage summary.

    Args:
        stats: Accumulator returned by the import run

    Returns:
        Multi-line summary text
    """
    lines = [
        RULE,
        "IMPORT SUMMARY",
        RULE,
        f"Files imported: {stats.imported_files}/{stats.total_files}",
        f"Records imported: {stats.imported_records}",
        f"Rows written: {stats.inserted_records}",
        f"Files skipped: {len(stats.skipped)}",
    ]

    loaded = [t for t in stats.tables if not t.skipped]
    if loaded:
        lines.append("")
        lines.append(f"{'Table':<28} {'Attempted':>9} {'Written':>8} {'Conflict':>8} {'Failed':>7}")
        lines.append("-" * 64)
        for result in loaded:
            lines.append(
                f"{result.table:<28} {result.attempted:>9} {result.inserted:>8} "
                f"{result.conflicts:>8} {result.failed:>7}"
            )

    if stats.skipped:
        lines.append("")
        lines.append("Skipped files:")
        lines.extend(f"  - {skip.table}: {skip.reason}" for skip in stats.skipped)

    if stats.errors:
        lines.append("")
        lines.append(f"Errors encountered: {len(stats.errors)}")
        for err in stats.errors:
            suffix = f" (record {err.record_id})" if err.record_id is not None else ""
            lines.append(f"  - {err.table}{suffix}: {err.error}")

    if stats.sequences:
        lines.append("")
        lines.append(f"Sequences reconciled: {len(stats.sequences)}")
        lines.extend(
            f"  - {seq.sequence} ({seq.table}.{seq.column}) next value {seq.next_value}"
            for seq in stats.sequences
        )

    if stats.row_counts:
        lines.append("")
        lines.append("Row counts:")
        lines.extend(f"  - {table}: {count}" for table, count in stats.row_counts.items())

    lines.append("")
    lines.append("Next steps:")
    lines.append("  1. Review the errors above, if any")
    lines.append("  2. Verify data integrity in the application")
    lines.append(RULE)
    return "\n".join(lines)
