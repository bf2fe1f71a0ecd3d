"""
Logging for reqrox.
Every record emitted while a request runs carries the id of the issuing
context and the target URL, so interleaved output from concurrent contexts
can be told apart.
"""

import json
import logging
import sys
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any

# Per-request fields attached to records by RoxLoggerAdapter
CONTEXT_FIELDS = ("context_id", "url")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, request fields included when set."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread_name": record.threadName,
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter: colored level, context id when a request is running."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s%(context_tag)s | %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        context_id = getattr(record, "context_id", None)
        record.context_tag = f" [{context_id}]" if context_id else ""

        levelname = record.levelname
        if self.use_colors and levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class RoxLoggerAdapter(logging.LoggerAdapter):
    """Adapter that stamps records with the calling thread's request fields."""

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})
        self._local = threading.local()

    def _fields(self) -> Dict[str, Any]:
        if not hasattr(self._local, "fields"):
            self._local.fields = {}
        return self._local.fields

    def process(self, msg, kwargs):
        kwargs["extra"] = {**kwargs.get("extra", {}), **self._fields()}
        return msg, kwargs

    def set_context(self, **fields):
        """Attach `fields` to records logged from this thread."""
        self._fields().update(fields)

    def clear_context(self):
        self._fields().clear()

    def context_snapshot(self) -> Dict[str, Any]:
        return dict(self._fields())


_loggers: Dict[str, RoxLoggerAdapter] = {}
_initialized = False
_lock = threading.Lock()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    use_colors: bool = True,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure the `reqrox` logger hierarchy. Only the first call has effect.

    Console records go to stderr, leaving stdout to response bodies. With
    `log_file`, JSON lines are also written to a rotating file.
    """
    global _initialized

    with _lock:
        if _initialized:
            return

        package_logger = logging.getLogger("reqrox")
        package_logger.setLevel(getattr(logging, level.upper()))
        package_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stderr)
        if json_format:
            console_handler.setFormatter(StructuredFormatter())
        else:
            console_handler.setFormatter(ColoredFormatter(use_colors=use_colors))
        package_logger.addHandler(console_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=max_file_size,
                backupCount=backup_count,
            )
            file_handler.setFormatter(StructuredFormatter())
            package_logger.addHandler(file_handler)

        _initialized = True


def get_logger(name: str) -> RoxLoggerAdapter:
    """Cached adapter for `reqrox.<name>`."""
    full_name = name if name.startswith("reqrox.") else f"reqrox.{name}"

    with _lock:
        if full_name not in _loggers:
            _loggers[full_name] = RoxLoggerAdapter(logging.getLogger(full_name))
        return _loggers[full_name]


class LogContext:
    """Set request fields on `logger` for the duration of a block."""

    def __init__(self, logger: RoxLoggerAdapter, **fields):
        self.logger = logger
        self.fields = fields
        self._previous: Dict[str, Any] = {}

    def __enter__(self):
        self._previous = self.logger.context_snapshot()
        self.logger.set_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.clear_context()
        self.logger.set_context(**self._previous)
        return False
