"""
Provides structured logging with log levels for rename and backup runs.

Records are written as a single line: a UTC timestamp, the level, an event
name, and key-value pairs::

    2024-05-01 12:30:00 | [WARN] | rename.event | type="warning" | msg="No pattern matched: x.mkv"

Log lines go to stderr through ``tqdm.write`` so that they never tear an active
progress bar and never mix with the plain output on stdout. The initial level
comes from ``AUTOTITLE_LOG_LEVEL`` (default INFO).
"""
import os
import sys
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, Optional

from tqdm import tqdm

_print_lock = threading.Lock()
_separator = " | "


class LogLevel(Enum):
    """Log level enumeration."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4

    @classmethod
    def parse(cls, name: str, default: Optional["LogLevel"] = None) -> "LogLevel":
        """Look a level up by name, case-insensitive; ``WARNING`` is accepted for WARN."""
        key = (name or "").strip().upper()
        if key == "WARNING":
            key = "WARN"
        try:
            return cls[key]
        except KeyError:
            if default is None:
                raise ValueError(f"unknown log level: {name!r}")
            return default


_current_level = LogLevel.parse(os.getenv("AUTOTITLE_LOG_LEVEL", ""), LogLevel.INFO)


def set_log_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_log_level() -> LogLevel:
    return _current_level


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, PurePath):
        value = str(value)
    if isinstance(value, (list, tuple, set)):
        value = ",".join(str(v) for v in value)
    if isinstance(value, str):
        # Single-line records: escape newlines and quotes.
        escaped = value.replace("\r", "\\r").replace("\n", "\\n").replace('"', '\\"')
        return f'"{escaped}"'
    return str(value)


def _format_kv(data: Dict[str, Any]) -> str:
    return _separator.join(f"{key}={_format_value(value)}" for key, value in data.items())


def _should_log(level: LogLevel) -> bool:
    return level.value >= _current_level.value


def log(event: str, level: LogLevel = LogLevel.INFO, **kwargs) -> None:
    """
    Structured logging function.

    Args:
        event: Event name (e.g., 'rename.event', 'backup.create')
        level: Log level (TRACE, DEBUG, INFO, WARN, ERROR)
        **kwargs: Key-value pairs to log; paths, enums and lists are flattened
    """
    if not _should_log(level):
        return

    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    parts = [timestamp, f"[{level.name}]", event]
    if kwargs:
        parts.append(_format_kv(kwargs))
    with _print_lock:
        tqdm.write(_separator.join(parts), file=sys.stderr)


def safe_print(*args, **kwargs) -> None:
    """
    Thread-safe print for plain user-facing output (previews, summaries).
    Use log() for structured logging instead.
    """
    with _print_lock:
        print(*args, **kwargs, flush=True)
