"""
Suggestion pipeline - turns one source game into a ranked suggestion list.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING

from gamefinder.features.suggestions.domain import (
    Candidate,
    CandidateSource,
    GameDetails,
    PipelineResult,
    SuggestionRow,
)
from gamefinder.infrastructure.observability.logging import get_logger

from .content import is_adult_content
from .explanations import ExplanationGenerator, TemplateExplainer
from .generators import SameDeveloperGenerator, TagSearchGenerator

if TYPE_CHECKING:  # pragma: no cover - avoids importing HTTP clients at runtime
    from gamefinder.features.suggestions.services.game_store import GameStore

logger = get_logger(__name__)

MAX_SUGGESTIONS = 12
TAG_SEARCH_LIMIT = 10

EMPTY_SOURCE_NOT_FOUND = "No suggestions generated: source game not found"
EMPTY_NO_SOURCE_SIGNALS = "No suggestions generated: source game has no tags or developer"
EMPTY_NO_CANDIDATES = "No suggestions generated"
EMPTY_NO_VERIFIED = "No verified suggestions generated"


class SuggestionPipelineError(Exception):
    """Raised when the pipeline can't run for a source game."""

    def __init__(self, message: str, source_app_id: int | None = None, recoverable: bool = True):
        super().__init__(message)
        self.source_app_id = source_app_id
        self.recoverable = recoverable


def merge_candidates(*candidate_lists: Iterable[Candidate]) -> list[Candidate]:
    """One candidate per app id, keeping the highest score (first wins on ties)."""
    merged: dict[int, Candidate] = {}
    for candidates in candidate_lists:
        for candidate in candidates:
            existing = merged.get(candidate.app_id)
            if existing is None or candidate.score > existing.score:
                merged[candidate.app_id] = candidate
    return list(merged.values())


def filter_adult_content(source_is_adult: bool, candidates: Iterable[Candidate]) -> list[Candidate]:
    """Flag adult candidates and drop them unless the source is adult too."""
    kept: list[Candidate] = []
    for candidate in candidates:
        candidate.is_adult = is_adult_content(candidate.content_descriptors)
        if candidate.is_adult and not source_is_adult:
            logger.debug("Dropping adult candidate", app_id=candidate.app_id, name=candidate.name)
            continue
        kept.append(candidate)
    return kept


def rank_candidates(candidates: Iterable[Candidate], limit: int = MAX_SUGGESTIONS) -> list[Candidate]:
    """Same-developer first, then indie first, then score descending."""
    ranked = sorted(
        candidates,
        key=lambda c: (
            c.source is not CandidateSource.SAME_DEVELOPER,
            not c.is_indie,
            -c.score,
        ),
    )
    return ranked[: max(limit, 0)]


class SuggestionPipeline:
    """
    Orchestrates candidate generation, merging, content filtering and ranking.

    Errors from the game store or a generator propagate to the caller; only
    individual candidate fetches are allowed to fail quietly.
    """

    def __init__(
        self,
        game_store: GameStore,
        same_developer: SameDeveloperGenerator | None = None,
        tag_search: TagSearchGenerator | None = None,
        explainer: ExplanationGenerator | None = None,
        max_suggestions: int = MAX_SUGGESTIONS,
        tag_search_limit: int = TAG_SEARCH_LIMIT,
    ):
        self.game_store = game_store
        self.same_developer = same_developer or SameDeveloperGenerator(game_store)
        self.tag_search = tag_search or TagSearchGenerator(game_store)
        self.explainer = explainer or TemplateExplainer()
        self.max_suggestions = max_suggestions
        self.tag_search_limit = tag_search_limit

    async def run(self, source_app_id: int) -> PipelineResult:
        start_time = time.time()

        try:
            source = await self.game_store.get_game_by_app_id(source_app_id)
        except Exception as e:
            logger.error(
                "Failed to load source game",
                source_app_id=source_app_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise SuggestionPipelineError(
                f"Failed to load source game {source_app_id}: {e}", source_app_id=source_app_id
            ) from e

        if source is None:
            logger.info("Source game not found", source_app_id=source_app_id)
            return PipelineResult(source_app_id, suggestions=[], empty_reason=EMPTY_SOURCE_NOT_FOUND)

        if not source.tags and not source.primary_developer:
            logger.info("Source game has no tags or developer", source_app_id=source_app_id)
            return PipelineResult(source_app_id, suggestions=[], empty_reason=EMPTY_NO_SOURCE_SIGNALS)

        same_developer, tag_search = await asyncio.gather(
            self.same_developer.generate(source),
            self.tag_search.generate(source, limit=self.tag_search_limit),
        )

        merged = merge_candidates(same_developer, tag_search)
        source_is_adult = is_adult_content(source.content_descriptors)
        filtered = filter_adult_content(source_is_adult, merged)
        ranked = rank_candidates(filtered, self.max_suggestions)

        logger.info(
            "Suggestion pipeline finished",
            source_app_id=source_app_id,
            same_developer=len(same_developer),
            tag_search=len(tag_search),
            merged=len(merged),
            after_content_filter=len(filtered),
            returned=len(ranked),
            source_is_adult=source_is_adult,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )

        if not ranked:
            reason = EMPTY_NO_VERIFIED if merged else EMPTY_NO_CANDIDATES
            return PipelineResult(source_app_id, suggestions=[], empty_reason=reason)

        rows = await self.build_rows(source, ranked)
        return PipelineResult(source_app_id, suggestions=rows, candidates=ranked)

    async def build_rows(self, source: GameDetails, candidates: list[Candidate]) -> list[SuggestionRow]:
        reasons = await asyncio.gather(
            *(self.explainer.explain(source, c, c.shared_tags) for c in candidates)
        )
        return [
            SuggestionRow(
                source_app_id=source.app_id,
                suggested_app_id=candidate.app_id,
                reason=reason,
            )
            for candidate, reason in zip(candidates, reasons)
        ]
