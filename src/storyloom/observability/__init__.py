"""Observability module for storyloom.

Provides structured logging and the injectable trace capability used by
the detection and repair code.
"""

from storyloom.observability.logging import (
    bind_command,
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)
from storyloom.observability.tracing import (
    NULL_TRACER,
    LogTracer,
    NullTracer,
    RecordingTracer,
    TraceEvent,
    Tracer,
)

__all__ = [
    "NULL_TRACER",
    "LogTracer",
    "NullTracer",
    "RecordingTracer",
    "TraceEvent",
    "Tracer",
    "bind_command",
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
