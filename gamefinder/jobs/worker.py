"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and delegates to the matching job runner.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from gamefinder.features.suggestions.jobs.suggestions_job import start_suggestions_worker
from gamefinder.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]

DEFAULT_JOB = "suggestions"

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "suggestions": start_suggestions_worker,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", DEFAULT_JOB).strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    job = JOB_REGISTRY.get(name)
    if job is None:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY))}"
        )

    logger.info("Starting background worker", job=name)
    await job()


def main() -> None:
    """CLI entrypoint."""
    asyncio.run(run_worker(_resolve_job_name()))


if __name__ == "__main__":
    main()
