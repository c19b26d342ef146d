"""
Job runners for the suggestions feature.
"""

from .suggestions_job import build_suggestion_worker, start_suggestions_worker

__all__ = ["build_suggestion_worker", "start_suggestions_worker"]
