"""
Candidate generators.

Two independent strategies turn a source game into candidate suggestions:

* SameDeveloperGenerator - other games by the source's first credited
  developer, scored at least at a fixed floor.
* TagSearchGenerator - niche games found through the source's two heaviest
  tags, kept only when their tag profile overlaps enough and doesn't clash.

Per-candidate detail fetches run concurrently behind a semaphore. A fetch
that fails or comes back empty drops that candidate only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING

from gamefinder.features.suggestions.domain import Candidate, CandidateSource, GameDetails
from gamefinder.infrastructure.observability.logging import get_logger

from .overlap import DEFAULT_VIBE_CONFLICTS, MIN_OVERLAP_SCORE, VibeConflict, has_vibe_conflict, overlap
from .tags import (
    NICHE_OWNER_THRESHOLD,
    SEED_TAG_COUNT,
    VIBE_PROFILE_SIZE,
    has_indie_tag,
    is_niche,
    top_tags,
)

if TYPE_CHECKING:  # pragma: no cover - avoids importing HTTP clients at runtime
    from gamefinder.features.suggestions.services.game_store import GameStore

logger = get_logger(__name__)

DEFAULT_MAX_CONCURRENCY = 4

# Best-effort: store titles are the only signal that an app is a soundtrack,
# art book or DLC. Swap the predicate once the data source exposes an app type.
NON_GAME_TITLE_MARKERS = ("soundtrack", "art book", "artbook", "dlc")

TitleFilter = Callable[[str | None], bool]


def looks_like_non_game(title: str | None) -> bool:
    lowered = (title or "").lower()
    return any(marker in lowered for marker in NON_GAME_TITLE_MARKERS)


async def fetch_game_details(
    game_store: GameStore, app_ids: Sequence[int], max_concurrency: int = DEFAULT_MAX_CONCURRENCY
) -> list[GameDetails | None]:
    """Fetch details for each app id, None where the fetch failed or found nothing."""
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _fetch(app_id: int) -> GameDetails | None:
        async with semaphore:
            try:
                return await game_store.get_game_by_app_id(app_id)
            except Exception as e:
                logger.warning(
                    "Candidate detail fetch failed, dropping candidate",
                    app_id=app_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return None

    return list(await asyncio.gather(*(_fetch(app_id) for app_id in app_ids)))


class SameDeveloperGenerator:
    MAX_CANDIDATES = 5
    PRIOR_SCORE = 0.9
    SCORE_FLOOR = 0.85

    def __init__(
        self,
        game_store: GameStore,
        title_filter: TitleFilter = looks_like_non_game,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        self.game_store = game_store
        self.title_filter = title_filter
        self.max_concurrency = max_concurrency

    async def generate(self, source: GameDetails) -> list[Candidate]:
        candidates = await self.lookup(source.app_id, source.developer)
        if not candidates:
            return []
        return await self.enrich(candidates, source.tags)

    async def lookup(self, source_app_id: int, developer: str | None) -> list[Candidate]:
        """Unscored candidates for the first credited developer, source excluded."""
        if not developer:
            return []
        developer = developer.split(",")[0].strip()
        if not developer:
            return []

        app_ids = await self.game_store.get_games_by_developer(developer)

        unique: list[int] = []
        for app_id in app_ids:
            if app_id != source_app_id and app_id not in unique:
                unique.append(app_id)

        logger.debug(
            "Same-developer lookup",
            developer=developer,
            found=len(unique),
            kept=min(len(unique), self.MAX_CANDIDATES),
        )

        return [
            Candidate(
                app_id=app_id,
                name="Unknown",
                score=self.PRIOR_SCORE,
                shared_tags=[],
                source=CandidateSource.SAME_DEVELOPER,
                owners="unknown",
                is_indie=True,
            )
            for app_id in unique[: self.MAX_CANDIDATES]
        ]

    async def enrich(self, candidates: list[Candidate], source_tags: dict[str, int]) -> list[Candidate]:
        games = await fetch_game_details(
            self.game_store, [c.app_id for c in candidates], self.max_concurrency
        )

        enriched: list[Candidate] = []
        for candidate, game in zip(candidates, games):
            if game is None:
                continue

            name = game.name or candidate.name
            if self.title_filter(name):
                logger.debug("Skipping non-game title", app_id=candidate.app_id, name=name)
                continue

            result = overlap(source_tags, game.tags)
            candidate.name = name
            candidate.score = max(result.score, self.SCORE_FLOOR)
            candidate.shared_tags = result.shared
            candidate.owners = game.owners
            candidate.is_indie = has_indie_tag(game.tags)
            candidate.content_descriptors = list(game.content_descriptors)
            enriched.append(candidate)

        return enriched


class TagSearchGenerator:
    CANDIDATE_POOL_SIZE = 15
    DEFAULT_LIMIT = 10

    def __init__(
        self,
        game_store: GameStore,
        conflicts: Iterable[VibeConflict] = DEFAULT_VIBE_CONFLICTS,
        min_score: float = MIN_OVERLAP_SCORE,
        niche_threshold: int = NICHE_OWNER_THRESHOLD,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        self.game_store = game_store
        self.conflicts = tuple(conflicts)
        self.min_score = min_score
        self.niche_threshold = niche_threshold
        self.max_concurrency = max_concurrency

    async def generate(self, source: GameDetails, limit: int = DEFAULT_LIMIT) -> list[Candidate]:
        seed_tags = top_tags(source.tags, SEED_TAG_COUNT)
        if not seed_tags or limit <= 0:
            return []

        pool = await self._collect_pool(source.app_id, seed_tags)
        if not pool:
            return []

        games = await fetch_game_details(
            self.game_store, [app_id for app_id, _ in pool], self.max_concurrency
        )
        source_profile = top_tags(source.tags, VIBE_PROFILE_SIZE)

        results: list[Candidate] = []
        for (app_id, listed_name), game in zip(pool, games):
            if len(results) >= limit:
                break
            if game is None or not game.tags:
                continue

            target_profile = top_tags(game.tags, VIBE_PROFILE_SIZE)
            if has_vibe_conflict(source_profile, target_profile, self.conflicts):
                logger.debug("Vibe conflict, skipping", app_id=app_id)
                continue

            result = overlap(source.tags, game.tags)
            if result.score < self.min_score:
                continue

            results.append(
                Candidate(
                    app_id=app_id,
                    name=game.name or listed_name or "Unknown",
                    score=result.score,
                    shared_tags=result.shared,
                    source=CandidateSource.TAG_SEARCH,
                    owners=game.owners,
                    is_indie=any(tag.lower() == "indie" for tag in target_profile),
                    content_descriptors=list(game.content_descriptors),
                )
            )

        results.sort(key=lambda c: c.score, reverse=True)
        logger.debug(
            "Tag search finished",
            seed_tags=seed_tags,
            pool_size=len(pool),
            kept=len(results),
        )
        return results

    async def _collect_pool(self, source_app_id: int, seed_tags: list[str]) -> list[tuple[int, str | None]]:
        """Niche games hit by the seed tags, most hits first, capped to the pool size."""
        hits: dict[int, list] = {}
        for tag in seed_tags:
            for game in await self.game_store.get_games_by_tag(tag):
                if game.app_id == source_app_id:
                    continue
                entry = hits.get(game.app_id)
                if entry:
                    entry[2] += 1
                else:
                    hits[game.app_id] = [game.name, game.owners, 1]

        ranked = [
            (app_id, entry)
            for app_id, entry in hits.items()
            if is_niche(entry[1], self.niche_threshold)
        ]
        ranked.sort(key=lambda item: item[1][2], reverse=True)
        return [(app_id, entry[0]) for app_id, entry in ranked[: self.CANDIDATE_POOL_SIZE]]
