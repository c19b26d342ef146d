"""
Persistence for suggestion jobs and suggestion rows.
"""

from .job_repository import SuggestionJobRepository, SuggestionJobRepositoryError
from .suggestion_repository import SuggestionRepository

__all__ = ["SuggestionJobRepository", "SuggestionJobRepositoryError", "SuggestionRepository"]
