"""
Suggestion job enqueue helpers.

Used by tooling and the web app to request suggestions for a game. A new
job is only created when the latest one for that game isn't still pending.
"""

from gamefinder.db.helpers import DatabaseError
from gamefinder.features.suggestions.domain import ACTIVE_STATUSES, SuggestionJob
from gamefinder.features.suggestions.repository import SuggestionJobRepository
from gamefinder.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class SuggestionSchedulerError(Exception):
    """Raised when a suggestion job can't be enqueued."""

    def __init__(self, message: str, source_app_id: int | None = None, recoverable: bool = True):
        super().__init__(message)
        self.source_app_id = source_app_id
        self.recoverable = recoverable


async def enqueue_suggestion_job(
    source_app_id: int,
    force: bool = False,
    repository: type[SuggestionJobRepository] = SuggestionJobRepository,
) -> SuggestionJob:
    """
    Queue suggestion generation for a game.

    Args:
        source_app_id: Steam app id to generate suggestions for.
        force: Queue a new job even if one is already queued or running.

    Returns:
        The newly created job, or the active job that made this a no-op.
    """
    if source_app_id <= 0:
        raise SuggestionSchedulerError("Invalid source app id", source_app_id=source_app_id, recoverable=False)

    try:
        if not force:
            latest = await repository.load_latest_job_for_source(source_app_id)
            if latest and latest.status in ACTIVE_STATUSES:
                logger.info(
                    "Suggestion job already pending",
                    source_app_id=source_app_id,
                    job_id=latest.id,
                    status=latest.status.value,
                )
                return latest

        return await repository.create_job(source_app_id)

    except DatabaseError as e:
        logger.error("Failed to enqueue suggestion job", source_app_id=source_app_id, error=str(e))
        raise SuggestionSchedulerError(
            f"Failed to enqueue suggestion job: {e}", source_app_id=source_app_id
        ) from e
