"""
Domain models for the suggestions feature.

Job rows, game records coming out of the game store, and the in-memory
candidates the pipeline ranks. Shared by the repositories, the pipeline and
the worker; only trivial derived properties live here.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED})
ACTIVE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.RUNNING})


class CandidateSource(str, Enum):
    SAME_DEVELOPER = "same-developer"
    TAG_SEARCH = "tag-search"


@dataclass(slots=True)
class SuggestionJob:
    """Represents a suggestion_jobs row."""

    id: str
    source_app_id: int
    status: JobStatus
    created_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(slots=True)
class GameDetails:
    """Full record for one game as returned by the game store."""

    app_id: int
    name: str | None
    developer: str
    owners: str
    tags: dict[str, int] = field(default_factory=dict)
    content_descriptors: list[int] = field(default_factory=list)

    @property
    def primary_developer(self) -> str | None:
        """First credited developer of a comma-separated developer field."""
        for name in (self.developer or "").split(","):
            name = name.strip()
            if name:
                return name
        return None


@dataclass(slots=True)
class TaggedGame:
    """Lightweight entry from a tag listing (no tag weights)."""

    app_id: int
    name: str | None
    owners: str


@dataclass(slots=True)
class Candidate:
    """A potential suggestion that has not been persisted yet."""

    app_id: int
    name: str
    score: float
    shared_tags: list[str]
    source: CandidateSource
    owners: str
    is_indie: bool
    is_adult: bool = False
    content_descriptors: list[int] = field(default_factory=list)


@dataclass(slots=True)
class SuggestionRow:
    """Represents a game_suggestions row."""

    source_app_id: int
    suggested_app_id: int
    reason: str


@dataclass(slots=True)
class PipelineResult:
    source_app_id: int
    suggestions: list[SuggestionRow]
    candidates: list[Candidate] = field(default_factory=list)
    empty_reason: str | None = None
