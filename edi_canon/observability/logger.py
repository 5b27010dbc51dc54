"""
Structured logging for edi-canon

Every module logs through a child of the ``edi_canon`` logger, which is
configured once (JSON through python-json-logger, or plain text for local
runs). Per-record context such as the source record id, company and
customer PO travels in ``extra`` so it can be queried from the log stream.
"""
import logging
import os
import sys
import time
from typing import Any, MutableMapping

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "edi_canon"
SERVICE_NAME = "edi-canon"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter stamping every entry with service, level, logger and
    call-site fields.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", None)
        if not log_record["timestamp"]:
            log_record["timestamp"] = self.formatTime(record, self.datefmt)

        level = log_record.get("level")
        log_record["level"] = level.upper() if level else record.levelname
        log_record["service"] = SERVICE_NAME
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["thread_id"] = record.thread


def _formatter(format_type: str) -> logging.Formatter:
    if format_type == "json":
        return CustomJsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Configure a logger with a single stdout handler

    Args:
        name: Logger name
        level: Log level (defaults to env var LOG_LEVEL or INFO)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT or json)

    Returns:
        Configured logger instance
    """
    log_level = LOG_LEVELS.get((level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(_formatter(format_type or os.getenv("LOG_FORMAT", "json")))

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger instance

    Module loggers (``edi_canon.core.builder...``) hand their records to
    the ``edi_canon`` logger, which is configured on first use. Loggers
    outside that tree get their own handler.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        setup_logger(ROOT_LOGGER_NAME)

    logger = logging.getLogger(name)
    in_tree = name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + ".")
    if in_tree or logger.handlers:
        return logger
    return setup_logger(name)


class RecordLogger(logging.LoggerAdapter):
    """
    Logger adapter carrying the context of one source record.

    Fields passed in ``extra`` at the call site are merged over the bound
    context instead of replacing it.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def record_logger(logger: logging.Logger, **context: Any) -> RecordLogger:
    """Bind per-record context (source_record_id, company, ...) to a logger."""
    return RecordLogger(logger, context)


class log_operation:
    """
    Context manager logging the start, end and duration of an operation

    Usage:
        with log_operation("Recalculating header versions", logger=logger, groups=12):
            # do work
            pass
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        """
        Initialize operation logger

        Args:
            operation_name: Name of the operation
            logger: Logger instance (uses the engine logger if None)
            **extra_fields: Additional fields to include in logs
        """
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.started = 0.0

    def __enter__(self):
        self.started = time.perf_counter()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        fields = {
            "operation": self.operation_name,
            "duration_seconds": round(time.perf_counter() - self.started, 3),
            **self.extra_fields,
        }

        if exc_type is None:
            self.logger.info(f"Completed: {self.operation_name}", extra={**fields, "status": "success"})
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra={
                    **fields,
                    "status": "error",
                    "error_type": exc_type.__name__,
                    "error_message": str(exc_val),
                },
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
