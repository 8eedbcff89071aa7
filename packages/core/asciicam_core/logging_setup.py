"""Logging for pipeline runs: JSON lines on disk, short tagged lines on the console."""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType
from typing import Any

from .config import config_root


_LOGGER_NAME = "asciicam"
_LOG_FILE = "asciicam.log"
_FAULT_FILE = "fault.log"

# Structured fields callers attach with ``extra=``.
_EXTRA_KEYS = ("event", "frame", "reason", "crash_id", "thread")
# The subset worth repeating on a console line.
_CONSOLE_TAGS = ("frame", "reason", "crash_id")


def log_dir() -> Path:
    path = config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _extras(record: logging.LogRecord, keys: tuple[str, ...] = _EXTRA_KEYS) -> dict[str, Any]:
    return {key: getattr(record, key) for key in keys if getattr(record, key, None) is not None}


def _component(name: str) -> str:
    """``asciicam.pipeline`` -> ``pipeline``; the root logger keeps its name."""
    prefix = _LOGGER_NAME + "."
    return name[len(prefix):] if name.startswith(prefix) else name


class JsonFormatter(logging.Formatter):
    """One object per line; structured extras become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(_extras(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


class ConsoleFormatter(logging.Formatter):
    """``LEVEL component: message [frame=12 reason=broken_pipe]``."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname} {_component(record.name)}: {record.getMessage()}"
        tags = _extras(record, _CONSOLE_TAGS)
        if tags:
            line += " [" + " ".join(f"{key}={value}" for key, value in tags.items()) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    keep_files: int = 7,
    console: bool = True,
    level: int = logging.INFO,
    directory: Path | None = None,
) -> logging.Logger:
    """Attach the file (and console) handlers once; later calls are no-ops."""
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    # Runs log under "asciicam" only; keep records out of the root logger.
    logger.propagate = False
    path = (directory or log_dir()) / _LOG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(stream_handler)

    logger.debug("logging to %s", path, extra={"event": "logging_configured"})
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Per-component logger under the ``asciicam`` tree, e.g. ``get_logger("pipeline")``."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME)


def report_crash(
    message: str,
    exc_info: tuple[type[BaseException], BaseException, TracebackType | None],
    event: str,
    thread: str | None = None,
) -> str:
    """Log an uncaught exception at CRITICAL and return the crash id quoted in it."""
    crash_id = uuid.uuid4().hex[:12]
    get_logger().critical(
        "%s crash_id=%s",
        message,
        crash_id,
        exc_info=exc_info,
        extra={"event": event, "crash_id": crash_id, "thread": thread},
    )
    return crash_id


def install_crash_hooks(directory: Path | None = None) -> Path:
    """Route uncaught exceptions through logging and dump native faults to a file.

    Returns the fault log path.
    """

    def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        report_crash("uncaught exception", (exc_type, exc_value, exc_tb), "uncaught_exception")

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        name = getattr(args.thread, "name", None)
        report_crash(
            f"exception in thread {name or '?'}",
            (args.exc_type, args.exc_value, args.exc_traceback),
            "thread_exception",
            thread=name,
        )

    sys.excepthook = _log_uncaught
    threading.excepthook = _thread_hook

    fault_path = (directory or log_dir()) / _FAULT_FILE
    fault_path.parent.mkdir(parents=True, exist_ok=True)
    faulthandler.enable(file=fault_path.open("a", encoding="utf-8"), all_threads=True)
    return fault_path
