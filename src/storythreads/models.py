"""Domain models used across the thread engine."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import AwareDatetime, BaseModel, Field

UpdateType = Literal["new_development", "clarification", "correction", "follow_up"]
ThreadStatus = Literal["active", "archived", "merged"]

DEFAULT_POST_SIGNIFICANCE = 0.5


class Post(BaseModel):
    """A single item from the ingestion feed."""

    id: str
    title: str
    body: str = ""
    source: str = ""
    timestamp: AwareDatetime
    priority_score: float | None = Field(None, ge=0.0, le=1.0)

    @property
    def text(self) -> str:
        return f"{self.title} {self.body}"

    @property
    def significance(self) -> float:
        """Engagement/priority proxy; 0.5 when the feed supplied none."""
        if self.priority_score is None:
            return DEFAULT_POST_SIGNIFICANCE
        return self.priority_score


class OriginalPost(BaseModel):
    id: str
    title: str
    content: str = ""
    timestamp: datetime


class SourcePost(BaseModel):
    id: str
    title: str
    content: str = ""
    source: str = ""


class UpdateChanges(BaseModel):
    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    corrected: list[str] = Field(default_factory=list)


class StoryUpdate(BaseModel):
    id: str
    thread_id: str
    timestamp: AwareDatetime
    update_type: UpdateType = "new_development"
    source_post: SourcePost
    summary: str = ""
    significance: float = Field(DEFAULT_POST_SIGNIFICANCE, ge=0.0, le=1.0)
    changes: UpdateChanges | None = None


class StoryThread(BaseModel):
    id: str
    topic: str
    keywords: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    created_at: datetime
    last_updated: datetime
    significance_score: float = DEFAULT_POST_SIGNIFICANCE
    update_count: int = 0
    original_post: OriginalPost
    updates: list[StoryUpdate] = Field(default_factory=list)
    status: ThreadStatus = "active"
    related_threads: list[str] = Field(default_factory=list)


class ThreadMatchResult(BaseModel):
    is_match: bool = False
    thread_id: str | None = None
    confidence: float = 0.0
    match_reasons: list[str] = Field(default_factory=list)
    suggested_update_type: UpdateType | None = None


class ProcessResult(BaseModel):
    thread_id: str
    is_new_thread: bool
    is_update: bool
    update_type: UpdateType | None = None
