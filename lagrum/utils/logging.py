"""
Logging setup for lagrum
Colored console lines for interactive use, JSON lines for batch ingestion.
Records emitted while a document is being ingested carry its id.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, UTC
from typing import Iterator, Optional

_current_document_id: ContextVar[Optional[str]] = ContextVar("lagrum_document_id", default=None)

CONSOLE_FORMAT = "%(timestamp)s │ %(level_colored)-17s │ %(module_name)-20s │ %(document_prefix)s%(message)s"


def get_document_id() -> Optional[str]:
    """Return the document id bound by ``document_context``, if any."""
    return _current_document_id.get()


@contextmanager
def document_context(document_id: str) -> Iterator[None]:
    """Bind ``document_id`` to every log record emitted inside the block."""
    token = _current_document_id.set(document_id)
    try:
        yield
    finally:
        _current_document_id.reset(token)


class DocumentContextFilter(logging.Filter):
    """Stamps ``record.document_id`` while a document context is active. Never drops records."""

    def filter(self, record: logging.LogRecord) -> bool:
        document_id = get_document_id()
        if document_id:
            record.document_id = document_id
        return True


class ColoredFormatter(logging.Formatter):
    """Console formatter; adds timestamp, short module name and a colored level."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Extra attributes only; levelname stays plain for other handlers
        color = self.LEVEL_COLORS.get(record.levelno, "")
        record.level_colored = f"{color}{record.levelname}{self.RESET}" if color else record.levelname
        record.timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        record.module_name = record.name.rsplit(".", 1)[-1]
        document_id = getattr(record, "document_id", None)
        record.document_prefix = f"[{document_id}] " if document_id else ""
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """One JSON object per line. Swedish characters are written unescaped."""

    CONTEXT_FIELDS = ("document_id", "provision_ref")

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in self.CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _handler(handler: logging.Handler, formatter: logging.Formatter, context_filter: logging.Filter) -> logging.Handler:
    handler.setLevel(logging.DEBUG)
    handler.addFilter(context_filter)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO", json_output: bool = False, log_file: Optional[str] = None
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines on stdout instead of colored console output
        log_file: Also append JSON lines to this file
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.handlers.clear()

    context_filter = DocumentContextFilter()
    console_formatter = JSONFormatter() if json_output else ColoredFormatter(fmt=CONSOLE_FORMAT)
    root_logger.addHandler(_handler(logging.StreamHandler(sys.stdout), console_formatter, context_filter))

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        root_logger.addHandler(_handler(file_handler, JSONFormatter(), context_filter))


def get_logger(name: str) -> logging.Logger:
    """Logger for a lagrum module (pass ``__name__``)."""
    return logging.getLogger(name)
