"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from storyloom.models.story import StoryGraph
from storyloom.observability.tracing import RecordingTracer
from tests.fixtures.story_graphs import make_consistent_graph

MANUSCRIPT = """The Lighthouse Keeper

Chapter 1: Arrival

"Maria" said nothing as the boat pulled in.
Maria walked up the hill toward the lighthouse.
"Tomas" said, "You must be the new keeper."

* * *

The lamp room smelled of oil.
Maria looked at the great lens.

Chapter 2: The Storm

Tomas ran down the stairs.
"Maria" shouted, "Close the shutters!"



Morning came grey and quiet.
Tomas sat by the window.
"""


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep environment overrides from leaking into config tests."""
    monkeypatch.delenv("STORYLOOM_MAX_FILE_MB", raising=False)
    monkeypatch.delenv("STORYLOOM_READING_WPM", raising=False)


@pytest.fixture
def manuscript_text() -> str:
    """A short two-chapter manuscript with dialogue and scene breaks."""
    return MANUSCRIPT


@pytest.fixture
def manuscript_file(tmp_path: Path) -> Path:
    """The sample manuscript written to ``lighthouse.txt``."""
    path = tmp_path / "lighthouse.txt"
    path.write_text(MANUSCRIPT, encoding="utf-8")
    return path


@pytest.fixture
def consistent_graph() -> StoryGraph:
    return make_consistent_graph()


@pytest.fixture
def recorder() -> RecordingTracer:
    return RecordingTracer()
