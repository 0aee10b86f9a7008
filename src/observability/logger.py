"""
Logging for snapshot-migrator

Every module logs through ``get_logger(__name__)``. Output goes to stderr,
either as JSON lines (python-json-logger) for log shippers or as plain text
for a terminal; stdout is left to the end-of-stage summary.
"""
import logging
import os
import sys
import time

from pythonjsonlogger import jsonlogger

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Context keys callers may pass through ``extra=``; copied into JSON output
CONTEXT_FIELDS = ("stage", "table", "record_id", "operation")

# Names handed out by get_logger; configure_logging re-applies to all of them
_managed_loggers: set[str] = set()
_defaults: dict[str, str | None] = {"level": None, "format_type": None}


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with a fixed set of top-level fields.

    Always emits timestamp, level, logger, module and function, plus any of
    the migration context keys present on the record.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", self.formatTime(record, self.datefmt))
        log_record["level"] = (log_record.get("level") or record.levelname).upper()
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_record[key] = value


def _build_formatter(format_type: str) -> logging.Formatter:
    if format_type == "json":
        return CustomJsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%H:%M:%S")


def setup_logger(
    name: str = "snapshot-migrator",
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    (Re)configure the named logger with a single stderr handler.

    Level and format fall back to the values set by configure_logging, then
    to LOG_LEVEL / LOG_FORMAT, then to INFO / text.

    Args:
        name: Logger name
        level: Level name, case-insensitive
        format_type: "json" or "text"

    Returns:
        The configured logger
    """
    level_name = level or _defaults["level"] or os.getenv("LOG_LEVEL", "INFO")
    log_level = LOG_LEVELS.get(level_name.upper(), logging.INFO)
    format_type = format_type or _defaults["format_type"] or os.getenv("LOG_FORMAT", "text")

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(_build_formatter(format_type))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = "snapshot-migrator") -> logging.Logger:
    """Return the named logger, configuring it on first use."""
    _managed_loggers.add(name)
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    return setup_logger(name)


def configure_logging(level: str | None = None, format_type: str | None = None) -> None:
    """
    Set the run-wide level and format.

    Applies to every logger handed out so far and to those created later.
    """
    if level:
        _defaults["level"] = level
    if format_type:
        _defaults["format_type"] = format_type
    for name in list(_managed_loggers):
        setup_logger(name)


class log_operation:
    """
    Log the start, end and duration of a pipeline stage.

    Usage:
        with log_operation("Data import", logger=logger, stage="import") as op:
            ...
        op.duration  # seconds
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time: float | None = None
        self.duration: float | None = None

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.monotonic() - self.start_time
        fields = {
            "operation": self.operation_name,
            "duration_seconds": round(self.duration, 3),
            **self.extra_fields,
        }

        if exc_type is None:
            self.logger.info(
                f"Completed: {self.operation_name} in {self.duration:.2f}s",
                extra={**fields, "status": "success"},
            )
        else:
            self.logger.error(
                f"Failed: {self.operation_name} after {self.duration:.2f}s: {exc_val}",
                extra={**fields, "status": "error", "error_type": exc_type.__name__},
                exc_info=True,
            )
        # exceptions propagate to the caller
        return False
