"""Process-wide structured logging configuration."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

_DEFAULT_LEVEL = logging.INFO

_RESERVED_ATTRS = frozenset(
    {
        "args",
        "exc_info",
        "exc_text",
        "message",
        "msg",
        "levelno",
        "levelname",
        "name",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "stack_info",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                payload[key] = value
            except (TypeError, ValueError):
                payload[key] = repr(value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


class PlainLineFormatter(logging.Formatter):
    """Emit the bare message; used for W3C access-log style files."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def configure_logging(level: int | str | None = None) -> None:
    """Configure root logger with JSON formatter; later calls only adjust the level."""

    root = logging.getLogger()
    if getattr(root, "_structured_configured", False):  # type: ignore[attr-defined]
        if level is not None:
            root.setLevel(level)
        return

    root.setLevel(level if level is not None else _DEFAULT_LEVEL)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.handlers.clear()
    root.addHandler(handler)

    root._structured_configured = True  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def get_line_logger(name: str, path: str | None = None) -> logging.Logger:
    """Return a non-propagating logger writing raw lines to ``path`` (or stderr)."""

    logger = logging.getLogger(name)
    if getattr(logger, "_line_configured", False):  # type: ignore[attr-defined]
        return logger

    handler: logging.Handler = logging.FileHandler(path, encoding="utf-8") if path else logging.StreamHandler()
    handler.setFormatter(PlainLineFormatter())
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    logger._line_configured = True  # type: ignore[attr-defined]
    return logger
