"""
Command-line interface for snapshot migration.

Usage:
    python -m src.cli.migrate_cli transform [options]
    python -m src.cli.migrate_cli import [options]
"""

import argparse
import sys

import yaml

from src.batch import ImportOrchestrator, RecordTransformer, SnapshotReader, SnapshotWriter
from src.config import MigrationSettings, load_settings
from src.core.exceptions import ManifestError, MigrationError
from src.observability.logger import configure_logging, get_logger
from src.observability.metrics import start_metrics_server
from src.observability.report import render_import_summary, render_transform_summary
from src.warehouse.connection import DatabaseConnectionPool
from src.warehouse.introspection import SchemaIntrospector
from src.warehouse.loader import BatchLoader
from src.warehouse.sequences import SequenceReconciler


logger = get_logger(__name__)


def build_settings(args) -> MigrationSettings:
    """Resolve settings from environment, config file and CLI flags."""
    return load_settings(
        config_path=args.config,
        env_file=args.env_file,
        snapshot_dir=getattr(args, "snapshot_dir", None),
        transformed_dir=getattr(args, "transformed_dir", None),
        db_host=getattr(args, "db_host", None),
        db_port=getattr(args, "db_port", None),
        db_name=getattr(args, "db_name", None),
        db_user=getattr(args, "db_user", None),
        db_password=getattr(args, "db_password", None),
        batch_size=getattr(args, "batch_size", None),
        derive_order=getattr(args, "derive_order", None) or None,
        log_level=args.log_level,
        log_format=args.log_format,
        metrics_port=args.metrics_port,
    )


def transform_command(settings: MigrationSettings) -> int:
    """
    Execute the transform stage.

    Args:
        settings: Resolved settings

    Returns:
        Process exit code
    """
    logger.info("Starting data transformation...")
    logger.info(f"Snapshot directory: {settings.snapshot_dir}")

    transformer = RecordTransformer(
        reader=SnapshotReader(settings.snapshot_dir),
        writer=SnapshotWriter(settings.transformed_dir),
    )
    stats, _ = transformer.run()

    print(render_transform_summary(stats, output_dir=str(settings.transformed_dir)))
    logger.info("Data transformation completed successfully")
    return 0


def import_command(settings: MigrationSettings) -> int:
    """
    Execute the import stage.

    The transformed manifest is checked before any connection is made.

    Args:
        settings: Resolved settings

    Returns:
        Process exit code
    """
    logger.info("Starting data import...")
    logger.info(f"Transformed directory: {settings.transformed_dir}")

    reader = SnapshotReader(settings.transformed_dir)
    manifest = reader.load_manifest(hint=ImportOrchestrator.MANIFEST_HINT)

    logger.info(
        f"Connecting to {settings.db_host}:{settings.db_port}/{settings.db_name} as {settings.db_user}"
    )
    with DatabaseConnectionPool.from_settings(settings) as pool:
        pool.check_connection()
        logger.info("Database connection successful")

        introspector = SchemaIntrospector(pool)
        orchestrator = ImportOrchestrator(
            reader=reader,
            loader=BatchLoader(pool, introspector, batch_size=settings.batch_size),
            introspector=introspector,
            reconciler=SequenceReconciler(pool),
            import_order=settings.import_order,
            key_tables=settings.key_tables,
            table_delay=settings.table_delay_seconds,
            derive_order=settings.derive_order,
        )
        stats = orchestrator.run_import(manifest)

    print(render_import_summary(stats))
    logger.info("Data import completed successfully")
    return 0


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Path to YAML configuration file"
    )
    parser.add_argument(
        "--env-file",
        help="Path to .env file (default: ./.env)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log format (default: text)"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port while running"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Snapshot migration: transform an exported snapshot and import it into PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Transform ./data-export into ./data-transformed
  python -m src.cli.migrate_cli transform

  # Transform from a custom location
  python -m src.cli.migrate_cli transform --snapshot-dir /backups/export \\
      --transformed-dir /backups/transformed

  # Import into the local database
  DB_PASSWORD=secret python -m src.cli.migrate_cli import

  # Import with an order derived from the destination's foreign keys
  python -m src.cli.migrate_cli import --derive-order --batch-size 500
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Transform command
    transform_parser = subparsers.add_parser("transform", help="Transform an exported snapshot")
    transform_parser.add_argument(
        "--snapshot-dir",
        help="Exported snapshot directory (default: data-export)"
    )
    transform_parser.add_argument(
        "--transformed-dir",
        help="Output directory (default: data-transformed)"
    )
    add_common_arguments(transform_parser)

    # Import command
    import_parser = subparsers.add_parser("import", help="Import a transformed snapshot")
    import_parser.add_argument(
        "--transformed-dir",
        help="Transformed snapshot directory (default: data-transformed)"
    )
    import_parser.add_argument(
        "--batch-size",
        type=int,
        help="Records per batched insert (default: 100)"
    )
    import_parser.add_argument(
        "--derive-order",
        action="store_true",
        help="Derive the import order from the destination's foreign keys"
    )

    # Database connection arguments
    import_parser.add_argument(
        "--db-host",
        help="Database host (default: localhost)"
    )
    import_parser.add_argument(
        "--db-port",
        type=int,
        help="Database port (default: 5432)"
    )
    import_parser.add_argument(
        "--db-name",
        help="Database name (default: hemera_db)"
    )
    import_parser.add_argument(
        "--db-user",
        help="Database user (default: hemera_user)"
    )
    import_parser.add_argument(
        "--db-password",
        help="Database password (default: DB_PASSWORD)"
    )
    add_common_arguments(import_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = build_settings(args)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        # pydantic.ValidationError is a ValueError
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level, settings.log_format)
    if settings.metrics_port:
        start_metrics_server(settings.metrics_port)

    try:
        if args.command == "transform":
            return transform_command(settings)
        return import_command(settings)
    except ManifestError as e:
        logger.error(f"Could not load manifest {e.path}: {e.message}")
        if e.hint:
            logger.error(e.hint)
        return 1
    except MigrationError as e:
        logger.error(f"Migration failed: {e}")
        return 1
    except ValueError as e:
        # Missing database password or unreadable snapshot data
        logger.error(f"{e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
