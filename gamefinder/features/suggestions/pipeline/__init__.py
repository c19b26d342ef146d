"""
Suggestion-generation pipeline.

Candidate generators, the overlap scorer, the content classifier and the
orchestrating SuggestionPipeline.
"""

from .service import SuggestionPipeline, SuggestionPipelineError

__all__ = ["SuggestionPipeline", "SuggestionPipelineError"]
