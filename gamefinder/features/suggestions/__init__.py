"""
Game suggestions feature package.

Everything needed to turn a queued suggestion job into a persisted list of
similar games lives here: domain models, the scoring pipeline, repositories,
the queue worker and its job runner.
"""

from .domain.models import Candidate, GameDetails, JobStatus, SuggestionJob, SuggestionRow  # noqa: F401
from .pipeline import SuggestionPipeline, SuggestionPipelineError  # noqa: F401
from .services.scheduler import enqueue_suggestion_job  # noqa: F401
from .services.worker import SuggestionWorker  # noqa: F401
