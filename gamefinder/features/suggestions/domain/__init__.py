"""
Domain dataclasses shared across the suggestions feature.
"""

from .models import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Candidate,
    CandidateSource,
    GameDetails,
    JobStatus,
    PipelineResult,
    SuggestionJob,
    SuggestionRow,
    TaggedGame,
)

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Candidate",
    "CandidateSource",
    "GameDetails",
    "JobStatus",
    "PipelineResult",
    "SuggestionJob",
    "SuggestionRow",
    "TaggedGame",
]
