"""
Suggestions worker job runner.

Wires settings into the Steam-backed game store, the suggestion pipeline and
the queue worker, then runs the worker until it is told to stop.
"""

import asyncio

from gamefinder.config import settings
from gamefinder.db.pool import db_pool
from gamefinder.features.suggestions.pipeline import SuggestionPipeline
from gamefinder.features.suggestions.pipeline.explanations import build_explainer
from gamefinder.features.suggestions.pipeline.generators import (
    SameDeveloperGenerator,
    TagSearchGenerator,
)
from gamefinder.features.suggestions.services.game_store import SteamGameStore
from gamefinder.features.suggestions.services.worker import SuggestionWorker
from gamefinder.infrastructure.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_suggestion_worker(game_store: SteamGameStore) -> SuggestionWorker:
    """Assemble a worker around `game_store` using the configured limits."""
    max_concurrency = settings.SUGGESTIONS_MAX_CONCURRENT_FETCHES
    pipeline = SuggestionPipeline(
        game_store,
        same_developer=SameDeveloperGenerator(game_store, max_concurrency=max_concurrency),
        tag_search=TagSearchGenerator(game_store, max_concurrency=max_concurrency),
        explainer=build_explainer(),
    )
    return SuggestionWorker(pipeline, poll_interval_seconds=settings.poll_interval_seconds())


async def start_suggestions_worker() -> None:
    """Entry point for the suggestions queue worker process."""
    setup_logging(settings.LOG_LEVEL)
    await db_pool.initialize()

    game_store = SteamGameStore()
    try:
        worker = build_suggestion_worker(game_store)
        await worker.run()
    finally:
        await game_store.close()
        await db_pool.close()
        logger.info("Suggestions worker shut down")


if __name__ == "__main__":
    asyncio.run(start_suggestions_worker())
