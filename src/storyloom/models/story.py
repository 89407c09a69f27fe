"""Story graph models: Story -> Chapters -> Scenes, plus detected characters.

These are the persisted entities. They are deliberately permissive about
ordering and references (any integer ``order``, any id string) because a
graph loaded from storage or a backup may be damaged; ``graph.integrity``
reports the damage and ``graph.repair`` fixes it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

SceneStatus = Literal["draft", "revised", "final"]


def _now() -> datetime:
    return datetime.now(UTC)


class Story(BaseModel):
    """Root of the graph. Owns the canonical chapter ordering."""

    id: str = Field(min_length=1)
    title: str
    chapter_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Chapter(BaseModel):
    """A chapter. ``order`` is 1-based and unique within its story."""

    id: str = Field(min_length=1)
    title: str
    story_id: str
    order: int
    scene_ids: list[str] = Field(default_factory=list)


class Scene(BaseModel):
    """A scene. ``order`` is 1-based and unique within its chapter."""

    id: str = Field(min_length=1)
    title: str
    chapter_id: str
    order: int
    content: str = ""
    word_count: int = Field(default=0, ge=0)
    status: SceneStatus = "draft"
    emotion: str = "neutral"


class Character(BaseModel):
    """A character found by the detector. Story-wide, not owned by any chapter."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)
    occurrences: int = Field(ge=0)
    first_seen: int = Field(ge=0)
    description: str = ""


class StoryGraph(BaseModel):
    """One story with all of its chapters, scenes and characters.

    ``chapters`` and ``scenes`` are flat arrays; their array position is the
    tiebreaker when two entities claim the same ``order``.
    """

    story: Story
    chapters: list[Chapter] = Field(default_factory=list)
    scenes: list[Scene] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)

    def chapter(self, chapter_id: str) -> Chapter | None:
        """First chapter with this id, or None."""
        return next((c for c in self.chapters if c.id == chapter_id), None)

    def scene(self, scene_id: str) -> Scene | None:
        """First scene with this id, or None."""
        return next((s for s in self.scenes if s.id == scene_id), None)

    def scenes_of(self, chapter_id: str) -> list[Scene]:
        """Scenes whose chapter reference is ``chapter_id``, in array order."""
        return [s for s in self.scenes if s.chapter_id == chapter_id]
