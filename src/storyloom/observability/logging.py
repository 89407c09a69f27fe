"""Structured logging configuration for storyloom.

Console output goes through rich on stderr and is gated by ``-v``. When a
log directory is given, every event (down to DEBUG) is also appended to
``{log_path}/logs/debug.jsonl`` as one JSON object per line, including any
context bound with :func:`bind_command`.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import Processor

LOG_FILE_NAME = "debug.jsonl"
VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}

# Keys structlog adds that the JSONL entry carries under its own names
_RESERVED_KEYS = ("level", "timestamp")

_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None


def _jsonl_entry(record: logging.LogRecord) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
        "level": record.levelname,
        "logger": record.name,
    }
    if not isinstance(record.msg, dict):
        entry["message"] = record.getMessage()
        return entry

    fields = {k: v for k, v in record.msg.items() if k not in _RESERVED_KEYS}
    entry["message"] = fields.pop("event", "")
    entry.update(fields)
    return entry


class JSONLFileHandler(logging.FileHandler):
    """Append each record as a JSON line, flattening structlog event dicts."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = json.dumps(_jsonl_entry(record), default=str)
            if self.stream is None:
                self.stream = self._open()
            self.stream.write(line + "\n")
            self.flush()
        except Exception:
            self.handleError(record)


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        level=VERBOSITY_LEVELS.get(verbosity, logging.DEBUG),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
    )


def _open_file_handler(log_path: Path) -> JSONLFileHandler:
    global _logs_dir

    _logs_dir = log_path / "logs"
    _logs_dir.mkdir(parents=True, exist_ok=True)
    handler = JSONLFileHandler(_logs_dir / LOG_FILE_NAME, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_path: Path | None = None,
) -> None:
    """Configure stdlib logging and structlog for storyloom.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also write JSONL debug logs under ``{log_path}/logs/``.
        log_path: Base directory for file logging. Required with log_to_file.

    Raises:
        ValueError: If log_to_file is set but log_path is not provided.
    """
    global _configured, _file_handler, _logs_dir

    if log_to_file and log_path is None:
        raise ValueError("log_path is required when log_to_file=True")

    close_file_logging()
    _logs_dir = None
    structlog.contextvars.clear_contextvars()

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_path is not None:
        _file_handler = _open_file_handler(log_path)
        handlers.append(_file_handler)

    # The root logger stays open to DEBUG whenever any handler wants it
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def bind_command(command: str, **fields: Any) -> None:
    """Attach the running CLI command (and extra fields) to every later event."""
    structlog.contextvars.bind_contextvars(command=command, **fields)


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger, configuring defaults on first use."""
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def get_logs_dir() -> Path | None:
    """Directory holding ``debug.jsonl``, or None when file logging is off."""
    return _logs_dir


def close_file_logging() -> None:
    """Flush and close the JSONL handler if one is open."""
    global _file_handler

    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
