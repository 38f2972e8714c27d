"""Structured logging for fsblobstore.

Store operations log through children of the ``fsblobstore`` logger and
attach the container and key they act on as ``extra`` fields. This module
turns those records into one JSON object per line (or plain text) and lets
callers add their own fields for a scope with ``log_context()``.
"""

import json
import logging
import sys
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Union

ROOT_LOGGER_NAME = "fsblobstore"

_log_context = threading.local()


def _get_context() -> Dict[str, Any]:
    """Return the context fields bound to the current thread."""
    if not hasattr(_log_context, "data"):
        _log_context.data = {}
    data: Dict[str, Any] = _log_context.data
    return data


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents.

    Standard fields are ``timestamp``, ``level``, ``logger``, ``message``,
    ``filename`` and ``lineno``; ``exception`` is added when the record
    carries exc_info. Every non-standard attribute on the record (``extra``
    fields, context fields) is copied as-is when it is JSON serializable and
    as ``str()`` otherwise.

    Example output:
        {"timestamp": "2026-10-19T10:00:00.000001", "level": "DEBUG",
         "logger": "fsblobstore.storage_strategy", "message": "Stored blob",
         "filename": "storage_strategy.py", "lineno": 310,
         "container": "photos", "key": "2026/10/cat.jpg"}
    """

    RESERVED_FIELDS = frozenset(
        {
            "name",
            "msg",
            "args",
            "created",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "module",
            "msecs",
            "message",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "thread",
            "threadName",
            "taskName",
            "exc_info",
            "exc_text",
            "stack_info",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "filename": record.filename,
            "lineno": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in self.RESERVED_FIELDS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            payload[key] = value

        return json.dumps(payload)


class ContextFilter(logging.Filter):
    """Copy static fields and the thread's ``log_context()`` fields onto records.

    Args:
        context: Fields added to every record passing through the filter
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__()
        self.context = context or {}

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            setattr(record, key, value)
        for key, value in _get_context().items():
            setattr(record, key, value)
        return True


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach fields to every record logged by this thread inside the block.

    Nested blocks see the union of their fields and the enclosing ones; the
    previous context is restored on exit.

    Example:
        with log_context(request_id="r-42"):
            store.put_blob("photos", blob)
    """
    context = _get_context()
    saved = dict(context)
    try:
        context.update(fields)
        yield
    finally:
        context.clear()
        context.update(saved)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up handlers for the ``fsblobstore`` logger tree.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines when True, plain text otherwise
        log_file: Optional file receiving the same records as stdout

    Returns:
        The configured ``fsblobstore`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter: Union[JSONFormatter, logging.Formatter]
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the ``fsblobstore.<name>`` child logger."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
