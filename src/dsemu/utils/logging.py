"""
Structured logging for dsemu.

Records are JSON lines written to stderr, so stdout stays free for the
emulator's own output and the `dsemu start` export line. Every record is
also appended to artifacts/logs/dsemu.log.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, merge_contextvars, unbind_contextvars

LOG_FILE = Path("artifacts/logs/dsemu.log")

# Keys bound for the lifetime of a spawned emulator
_EMULATOR_CONTEXT_KEYS = ("emulator", "pid")

# Names accepted by DSEMU_LOG_LEVEL; TRACE sits below DEBUG
_LEVELS = {
    "TRACE": 5,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

_sink_lock = threading.Lock()
_configured = False


def log_path() -> Path:
    """Return the JSON log file shared by all emulator runs, creating its directory."""
    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return LOG_FILE


def _add_message(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any]:
    event_dict.setdefault("message", event_dict.get("event"))
    return event_dict


def _without_none(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any]:
    return {k: v for k, v in event_dict.items() if v is not None}


def _append_to_log_file(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    line = json.dumps(event_dict, ensure_ascii=False, default=str)
    try:
        with _sink_lock, log_path().open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError:
        # A read-only working directory must not break the emulator
        pass
    return event_dict


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger so pytest/CliRunner stream swaps are honoured
    return structlog.PrintLogger(file=sys.stderr)


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog once for the process.

    Args:
        level (str | None): TRACE|DEBUG|INFO|WARNING|ERROR; defaults to
                            DSEMU_LOG_LEVEL, then INFO.
    """
    global _configured
    if _configured:
        return

    name = (level or os.getenv("DSEMU_LOG_LEVEL", "INFO")).upper()
    numeric = _LEVELS.get(name, logging.INFO)

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.CallsiteParameterAdder(
                [structlog.processors.CallsiteParameter.MODULE]
            ),
            _add_message,
            _without_none,
            _append_to_log_file,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=_stderr_logger,
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        # Loggers are rebuilt per call so the current sys.stderr is used
        cache_logger_on_first_use=False,
    )
    logging.getLogger().setLevel(numeric)
    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, configuring logging on first use."""
    setup_logging()
    return structlog.get_logger(name or __name__)


def bind_context(*, emulator: str, pid: int) -> None:
    """Attach the emulator name and child PID to every record logged from this context."""
    bind_contextvars(emulator=emulator, pid=pid)


def unbind_context() -> None:
    """Drop the keys added by bind_context()."""
    unbind_contextvars(*_EMULATOR_CONTEXT_KEYS)


__all__ = ["bind_context", "get_logger", "log_path", "setup_logging", "unbind_context"]
