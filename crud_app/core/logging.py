"""Structured JSON logging to the console and an append-only file.

Records are written one JSON object per line::

    {"timestamp": "...", "level": "INFO", "message": "...", "context": {...}}

Callers attach context through ``extra``::

    logger.info("User created", extra={"context": {"id": user_id}})

The package logger only enqueues records; a listener thread owns the console
and file handlers, so request handlers never wait on a write.
"""

import logging
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path

from pythonjsonlogger import jsonlogger

from crud_app.core.config import Settings

PACKAGE_LOGGER = "crud_app"

_LEVEL_NAMES = {logging.WARNING: "WARN"}

_listener: QueueListener | None = None


class JsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):  # noqa: ANN001
        super().add_fields(log_record, record, message_dict)
        context = log_record.pop("context", None)
        context = dict(context) if isinstance(context, dict) else {}
        stack = log_record.pop("exc_info", None)
        if stack:
            context.setdefault("stack", stack)

        log_record.clear()
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = _LEVEL_NAMES.get(record.levelno, record.levelname)
        log_record["message"] = record.getMessage()
        log_record["context"] = context


class _InProcessQueueHandler(QueueHandler):
    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # The listener's handlers do the formatting; keep exc_info and args intact.
        return record


def _formatted(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(JsonFormatter(json_ensure_ascii=False, json_default=str))
    return handler


def configure_logging(settings: Settings, *, log_to_file: bool = True) -> Path | None:
    """Route the package logger through a queue to the console and file sinks.

    Returns the log file path, or ``None`` when logging to the console only.
    A log directory that cannot be created is reported on stderr and the
    file sink is skipped.
    """
    global _listener

    reset_logging()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    handlers = [_formatted(logging.StreamHandler(sys.stdout))]
    log_path: Path | None = None
    if log_to_file:
        candidate = Path(settings.log_dir) / settings.log_file_name
        try:
            candidate.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(_formatted(logging.FileHandler(str(candidate), mode="a", encoding="utf-8")))
            log_path = candidate
        except OSError as exc:
            print(f"Unable to open log file {candidate}: {exc}", file=sys.stderr)

    records: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    queue_handler = _InProcessQueueHandler(records)
    queue_handler._crud_app_handler = True  # type: ignore[attr-defined]
    logger.addHandler(queue_handler)

    _listener = QueueListener(records, *handlers)
    _listener.start()
    return log_path


def reset_logging() -> None:
    """Detach the queue handler, drain pending records and close the sinks."""
    global _listener

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_crud_app_handler", False):
            logger.removeHandler(handler)
            handler.close()

    if _listener is None:
        return
    _listener.stop()
    for handler in _listener.handlers:
        handler.close()
    _listener = None
