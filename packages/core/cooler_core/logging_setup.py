"""JSON-lines logging for the agent packages, plus crash and fault hooks."""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import os
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

from .config import config_root


ROOT_LOGGER = "cooler"
LEVEL_ENV = "COOLER_LOG_LEVEL"

# Package loggers that share the agent handlers; modules log under __name__.
_LOGGER_NAMES = (ROOT_LOGGER, "cooler_core", "cooler_telemetry", "cooler_toolset", "cooler_app")

# `extra=` keys copied into the JSON line when a record carries them.
_EXTRA_FIELDS = ("event", "crash_id", "step", "status")

_fault_file: IO[str] | None = None


def log_dir() -> Path:
    path = config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def resolve_level(level: int | str | None = None) -> int:
    """Level from the argument, else ``COOLER_LOG_LEVEL``, else INFO."""
    if level is None:
        level = os.environ.get(LEVEL_ENV, "").strip() or logging.INFO
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).upper(), None)
    return value if isinstance(value, int) else logging.INFO


def _build_handlers(keep_files: int, console: bool) -> list[logging.Handler]:
    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(log_dir() / "cooler.log"),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    file_handler.setFormatter(JsonFormatter())
    handlers: list[logging.Handler] = [file_handler]

    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        handlers.append(stream)
    return handlers


def configure_logging(keep_files: int = 7, console: bool = True, level: int | str | None = None) -> logging.Logger:
    root = get_logger()
    if root.handlers:
        return root

    resolved = resolve_level(level)
    handlers = _build_handlers(keep_files, console)
    for name in _LOGGER_NAMES:
        named = logging.getLogger(name)
        named.setLevel(resolved)
        named.propagate = False
        for handler in handlers:
            named.addHandler(handler)

    root.info(
        "logging configured at %s",
        logging.getLevelName(resolved),
        extra={"event": "logging_configured"},
    )
    return root


def get_logger() -> logging.Logger:
    return logging.getLogger(ROOT_LOGGER)


def _report_crash(kind: str, exc_info: tuple) -> str:
    crash_id = uuid.uuid4().hex
    get_logger().critical(
        "%s crash_id=%s",
        kind.replace("_", " "),
        crash_id,
        exc_info=exc_info,
        extra={"event": kind, "crash_id": crash_id},
    )
    return crash_id


def _enable_fault_handler() -> None:
    global _fault_file
    if _fault_file is not None:
        return
    _fault_file = (log_dir() / "fault.log").open("a", encoding="utf-8")
    faulthandler.enable(file=_fault_file, all_threads=True)
    get_logger().info("fault handler enabled", extra={"event": "fault_handler_enabled"})


def install_crash_hooks() -> None:
    """Route uncaught main and worker thread exceptions to the agent log."""

    def _main_hook(exc_type, exc_value, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        _report_crash("uncaught_exception", (exc_type, exc_value, exc_tb))

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        _report_crash("thread_exception", (args.exc_type, args.exc_value, args.exc_traceback))

    sys.excepthook = _main_hook
    threading.excepthook = _thread_hook
    _enable_fault_handler()
