"""
Service layer for suggestions: job scheduler and queue worker.

The Steam-backed game store lives in `.game_store` and is imported directly
by the job runner.
"""

from .scheduler import SuggestionSchedulerError, enqueue_suggestion_job
from .worker import SuggestionWorker

__all__ = ["SuggestionSchedulerError", "SuggestionWorker", "enqueue_suggestion_job"]
