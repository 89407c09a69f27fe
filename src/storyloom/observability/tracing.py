"""Injectable trace capability for the detection and repair code.

Detectors and repair passes never reach for a module-level logger. They take
a ``Tracer`` argument and report what they decided through it, which keeps
them pure with respect to the outside world and lets tests assert on the
decisions themselves.

Usage::

    from storyloom.observability.tracing import LogTracer, RecordingTracer

    pipeline = ImportPipeline(tracer=LogTracer())          # to structlog
    recorder = RecordingTracer()
    detect_chapters(lines, tracer=recorder)
    assert recorder.names() == ["chapter_accepted"]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from storyloom.observability.logging import get_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


@runtime_checkable
class Tracer(Protocol):
    """Receives named diagnostic events with structured fields."""

    def event(self, name: str, /, **fields: Any) -> None:
        """Record one event."""
        ...


class NullTracer:
    """Tracer that discards everything. The default for all pure code."""

    def event(self, name: str, /, **fields: Any) -> None:  # noqa: ARG002
        return None


class LogTracer:
    """Forwards trace events to a structlog logger at DEBUG level."""

    def __init__(self, logger: FilteringBoundLogger | None = None) -> None:
        self._log = logger if logger is not None else get_logger("storyloom.trace")

    def event(self, name: str, /, **fields: Any) -> None:
        self._log.debug(name, **fields)


@dataclass(frozen=True)
class TraceEvent:
    """One recorded trace event."""

    name: str
    fields: dict[str, Any]


@dataclass
class RecordingTracer:
    """Keeps every event in memory, in emission order."""

    events: list[TraceEvent] = field(default_factory=list)

    def event(self, name: str, /, **fields: Any) -> None:
        self.events.append(TraceEvent(name=name, fields=dict(fields)))

    def names(self) -> list[str]:
        """Event names in emission order."""
        return [e.name for e in self.events]

    def of(self, name: str) -> list[TraceEvent]:
        """All events with the given name."""
        return [e for e in self.events if e.name == name]


NULL_TRACER = NullTracer()
