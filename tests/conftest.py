from datetime import UTC, datetime, timedelta
from itertools import count

import pytest

from gamefinder.features.suggestions.domain import (
    GameDetails,
    JobStatus,
    SuggestionJob,
    SuggestionRow,
    TaggedGame,
)


def make_game(
    app_id: int,
    name: str | None = None,
    developer: str = "",
    owners: str = "0 .. 20,000",
    tags: dict[str, int] | None = None,
    descriptors: list[int] | None = None,
) -> GameDetails:
    return GameDetails(
        app_id=app_id,
        name=name if name is not None else f"Game {app_id}",
        developer=developer,
        owners=owners,
        tags=dict(tags or {}),
        content_descriptors=list(descriptors or []),
    )


class FakeGameStore:
    """In-memory GameStore. Every lookup returns copies so tests can't leak state."""

    def __init__(self):
        self.games: dict[int, GameDetails] = {}
        self.developers: dict[str, list[int]] = {}
        self.tag_listings: dict[str, list[TaggedGame]] = {}
        self.failing: set[int] = set()
        self.detail_calls: list[int] = []

    def add(self, game: GameDetails, listed_under: list[str] | None = None) -> GameDetails:
        self.games[game.app_id] = game
        developer = game.primary_developer
        if developer:
            self.developers.setdefault(developer, []).append(game.app_id)
        for tag in listed_under or []:
            self.tag_listings.setdefault(tag, []).append(
                TaggedGame(app_id=game.app_id, name=game.name, owners=game.owners)
            )
        return game

    async def get_game_by_app_id(self, app_id: int) -> GameDetails | None:
        self.detail_calls.append(app_id)
        if app_id in self.failing:
            raise RuntimeError(f"upstream error for {app_id}")
        game = self.games.get(app_id)
        if game is None:
            return None
        return make_game(
            game.app_id,
            name=game.name,
            developer=game.developer,
            owners=game.owners,
            tags=game.tags,
            descriptors=game.content_descriptors,
        )

    async def get_games_by_developer(self, developer: str) -> list[int]:
        return list(self.developers.get(developer, []))

    async def get_games_by_tag(self, tag: str) -> list[TaggedGame]:
        return list(self.tag_listings.get(tag, []))


class FakeJobRepository:
    """Job queue with the same claim/terminal-guard rules as the SQL repository."""

    def __init__(self):
        self.jobs: dict[str, SuggestionJob] = {}
        self._ids = count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=UTC)
        self.lose_next_claim = False

    async def create_job(self, source_app_id: int) -> SuggestionJob:
        self._clock += timedelta(seconds=1)
        job = SuggestionJob(
            id=f"job-{next(self._ids)}",
            source_app_id=source_app_id,
            status=JobStatus.QUEUED,
            created_at=self._clock,
        )
        self.jobs[job.id] = job
        return job

    async def load_job(self, job_id: str) -> SuggestionJob | None:
        return self.jobs.get(job_id)

    async def load_latest_job_for_source(self, source_app_id: int) -> SuggestionJob | None:
        matching = [job for job in self.jobs.values() if job.source_app_id == source_app_id]
        return max(matching, key=lambda job: job.created_at, default=None)

    async def list_oldest_queued(self, limit: int = 1) -> list[SuggestionJob]:
        queued = [job for job in self.jobs.values() if job.status is JobStatus.QUEUED]
        queued.sort(key=lambda job: (job.created_at, job.id))
        return queued[:limit]

    async def try_claim(self, job_id: str) -> SuggestionJob | None:
        job = self.jobs.get(job_id)
        if self.lose_next_claim and job is not None:
            # Another worker flips the row between our select and update
            self.lose_next_claim = False
            job.status = JobStatus.RUNNING
            job.started_at = datetime.now(UTC)
            return None
        if job is None or job.status is not JobStatus.QUEUED:
            return None
        job.status = JobStatus.RUNNING
        job.started_at = datetime.now(UTC)
        return job

    async def update_status(self, job_id: str, to_status: JobStatus, **fields) -> SuggestionJob | None:
        job = self.jobs.get(job_id)
        if job is None or job.is_terminal:
            return None
        job.status = JobStatus(to_status)
        for key, value in fields.items():
            setattr(job, key, value)
        return job


class FakeSuggestionRepository:
    def __init__(self):
        self.rows: dict[int, list[SuggestionRow]] = {}
        self.replace_calls = 0

    async def replace_for_source(self, source_app_id: int, rows: list[SuggestionRow]) -> int:
        self.replace_calls += 1
        suggested = [row.suggested_app_id for row in rows]
        assert len(suggested) == len(set(suggested)), "duplicate suggested app ids"
        self.rows[source_app_id] = list(rows)
        return len(rows)


@pytest.fixture
def game_store():
    return FakeGameStore()


@pytest.fixture
def job_repository():
    return FakeJobRepository()


@pytest.fixture
def suggestion_repository():
    return FakeSuggestionRepository()
