"""
Structured logging configuration for the migration planner.

The planning engine only ever logs through loggers it is given (or its own
module loggers); this module decides where those records go. JSON output is
produced by python-json-logger, console output by a readable formatter.
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator

from pythonjsonlogger.json import JsonFormatter

PACKAGE_LOGGER = "migration_planner"

JSON_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
CONSOLE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Record attributes surfaced by HumanReadableFormatter when present
CONTEXT_FIELDS = ("plan_id",)


def create_json_formatter(service_name: str, environment: str) -> JsonFormatter:
    """JSON formatter carrying static ``service`` and ``environment`` fields."""
    return JsonFormatter(
        JSON_LOG_FORMAT,
        rename_fields={"levelname": "level", "name": "logger", "asctime": "timestamp"},
        static_fields={"service": service_name, "environment": environment},
    )


class HumanReadableFormatter(logging.Formatter):
    """Console formatter: UTC time, level, logger, message and any plan context."""

    converter = time.gmtime

    def __init__(self):
        super().__init__(CONSOLE_LOG_FORMAT, datefmt="%H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        text = super().formatMessage(record)
        context = [f"{name}={getattr(record, name)}" for name in CONTEXT_FIELDS if hasattr(record, name)]
        if context:
            text = f"{text} [{', '.join(context)}]"
        return text


def setup_structured_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    log_file: str | None = None,
    service_name: str = "migration-planner",
    environment: str = "development",
) -> logging.Logger:
    """
    Route all records to stderr (and optionally a file) through one formatter.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output. stdout is left to the CLI's own progress lines.

    Returns:
        The ``migration_planner`` package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    if json_format:
        formatter: logging.Formatter = create_json_formatter(service_name, environment)
    else:
        formatter = HumanReadableFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.debug("Logging configured", extra={"json_format": json_format, "log_file": log_file})
    return logger


@contextmanager
def log_context(**fields) -> Iterator[None]:
    """Attach ``fields`` to every log record created inside the block."""
    previous = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = previous(*args, **kwargs)
        for key, value in fields.items():
            setattr(record, key, value)
        return record

    logging.setLogRecordFactory(record_factory)
    try:
        yield
    finally:
        logging.setLogRecordFactory(previous)
