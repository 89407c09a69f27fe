"""Persistence collaborator protocol and two simple implementations.

The import and repair code never touches storage. Callers that need to
persist a graph go through a ``StoryStore``; ``GuardedStore`` in
``storyloom.graph.guard`` adds integrity checks around any of them.

MemoryStoryStore keeps JSON snapshots in a dict, so stored graphs cannot be
mutated through a reference the caller still holds. JsonStoryStore writes
one ``<story_id>.json`` per graph into a directory.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol, runtime_checkable

from storyloom.models.story import StoryGraph

_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]+$")


@runtime_checkable
class StoryStore(Protocol):
    """Key-value storage of story graphs keyed by story id."""

    def load(self, story_id: str) -> StoryGraph | None:
        """Return the stored graph, or None if there is none."""
        ...

    def save(self, graph: StoryGraph) -> None:
        """Store a graph, replacing any graph with the same story id."""
        ...

    def list_ids(self) -> list[str]:
        """Ids of all stored stories, sorted."""
        ...


class MemoryStoryStore:
    """In-memory store holding JSON snapshots."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, story_id: str) -> StoryGraph | None:
        raw = self._data.get(story_id)
        if raw is None:
            return None
        return StoryGraph.model_validate_json(raw)

    def save(self, graph: StoryGraph) -> None:
        self._data[graph.story.id] = graph.model_dump_json()

    def list_ids(self) -> list[str]:
        return sorted(self._data)

    def put_raw(self, story_id: str, raw: str) -> None:
        """Store raw JSON without validation (simulates a damaged backup)."""
        self._data[story_id] = raw


class JsonStoryStore:
    """Directory of ``<story_id>.json`` files.

    Attributes:
        root: Directory holding the files; created on first save.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, story_id: str) -> Path:
        if not _SAFE_ID.match(story_id):
            msg = f"Story id {story_id!r} is not usable as a file name"
            raise ValueError(msg)
        return self.root / f"{story_id}.json"

    def load(self, story_id: str) -> StoryGraph | None:
        path = self._path(story_id)
        if not path.exists():
            return None
        return StoryGraph.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, graph: StoryGraph) -> None:
        path = self._path(graph.story.id)
        self.root.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(graph.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(path)

    def list_ids(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))
