"""
Suggestions queue worker.

Polls the suggestion_jobs table, claims one queued job at a time, runs the
suggestion pipeline for its source game and persists the result. Any number
of worker processes can share the table: claims go through a conditional
update, so each job is won by exactly one worker.

A job that is already running when the process is told to stop is allowed
to finish. A process killed outright leaves its job in `running`; nothing
here reconciles that.
"""

import asyncio
import signal
import time
from datetime import UTC, datetime

from structlog.contextvars import bound_contextvars

from gamefinder.config import settings
from gamefinder.features.suggestions.domain import JobStatus, SuggestionJob, SuggestionRow
from gamefinder.features.suggestions.pipeline import SuggestionPipeline
from gamefinder.features.suggestions.pipeline.service import EMPTY_NO_CANDIDATES, EMPTY_NO_VERIFIED
from gamefinder.features.suggestions.repository import SuggestionJobRepository, SuggestionRepository
from gamefinder.infrastructure.observability.logging import get_logger, log_job_transition

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class WorkerMetrics:
    """Counters for the lifetime of one worker instance."""

    def __init__(self):
        self.started_at = _utcnow()
        self.last_poll_at: datetime | None = None
        self.jobs_claimed = 0
        self.jobs_succeeded = 0
        self.jobs_empty = 0
        self.jobs_failed = 0
        self.poll_errors = 0

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "last_poll_at": self.last_poll_at.isoformat() if self.last_poll_at else None,
            "jobs_claimed": self.jobs_claimed,
            "jobs_succeeded": self.jobs_succeeded,
            "jobs_empty": self.jobs_empty,
            "jobs_failed": self.jobs_failed,
            "poll_errors": self.poll_errors,
        }


class SuggestionWorker:
    """
    Single-flight polling worker.

    The busy flag belongs to the instance, so several workers can live in
    one process without sharing state.
    """

    def __init__(
        self,
        pipeline: SuggestionPipeline,
        job_repository=SuggestionJobRepository,
        suggestion_repository=SuggestionRepository,
        poll_interval_seconds: float | None = None,
    ):
        self.pipeline = pipeline
        self.jobs = job_repository
        self.suggestions = suggestion_repository
        self.poll_interval_seconds = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else settings.poll_interval_seconds()
        )
        self.is_busy = False
        self.metrics = WorkerMetrics()
        self._stop_event = asyncio.Event()
        self._in_flight: set[asyncio.Task] = set()

    async def claim_next_job(self) -> SuggestionJob | None:
        """Claim the oldest queued job, or None if there is none or we lost the race."""
        jobs = await self.jobs.list_oldest_queued(limit=1)
        if not jobs:
            return None

        job = await self.jobs.try_claim(jobs[0].id)
        if job is None:
            logger.debug("Lost claim race", job_id=jobs[0].id)
            return None

        self.metrics.jobs_claimed += 1
        log_job_transition(job.id, job.source_app_id, JobStatus.RUNNING.value)
        return job

    async def process_job(self, job: SuggestionJob) -> JobStatus:
        """
        Run the pipeline for a claimed job and record the terminal status.

        Errors never escape except from the final status write itself.
        """
        start_time = time.time()
        with bound_contextvars(job_id=job.id, source_app_id=job.source_app_id):
            logger.info("Processing suggestion job")
            try:
                result = await self.pipeline.run(job.source_app_id)
                rows = self._verified_rows(result.suggestions)

                if not rows:
                    # Recorded as success so the job isn't picked up again and again
                    if result.suggestions:
                        message = EMPTY_NO_VERIFIED
                    else:
                        message = result.empty_reason or EMPTY_NO_CANDIDATES
                    await self.jobs.update_status(
                        job.id, JobStatus.SUCCEEDED, finished_at=_utcnow(), error=message
                    )
                    self.metrics.jobs_empty += 1
                    log_job_transition(
                        job.id,
                        job.source_app_id,
                        JobStatus.SUCCEEDED.value,
                        duration_ms=(time.time() - start_time) * 1000,
                        error=message,
                        suggestion_count=0,
                    )
                    return JobStatus.SUCCEEDED

                await self.suggestions.replace_for_source(job.source_app_id, rows)
                await self.jobs.update_status(
                    job.id, JobStatus.SUCCEEDED, finished_at=_utcnow(), error=None
                )
                self.metrics.jobs_succeeded += 1
                log_job_transition(
                    job.id,
                    job.source_app_id,
                    JobStatus.SUCCEEDED.value,
                    duration_ms=(time.time() - start_time) * 1000,
                    suggestion_count=len(rows),
                )
                return JobStatus.SUCCEEDED

            except Exception as e:
                message = str(e) or type(e).__name__
                await self.jobs.update_status(
                    job.id, JobStatus.FAILED, finished_at=_utcnow(), error=message
                )
                self.metrics.jobs_failed += 1
                log_job_transition(
                    job.id,
                    job.source_app_id,
                    JobStatus.FAILED.value,
                    duration_ms=(time.time() - start_time) * 1000,
                    error=message,
                    error_type=type(e).__name__,
                )
                return JobStatus.FAILED

    @staticmethod
    def _verified_rows(rows: list[SuggestionRow]) -> list[SuggestionRow]:
        """Rows pointing at a real app id, first occurrence per suggested app."""
        seen: set[int] = set()
        verified: list[SuggestionRow] = []
        for row in rows:
            if row.suggested_app_id <= 0 or row.suggested_app_id in seen:
                continue
            seen.add(row.suggested_app_id)
            verified.append(row)
        return verified

    async def poll_once(self) -> bool:
        """
        One poll cycle: claim and process at most one job.

        Returns True if a job was processed. Never raises; the busy flag is
        always released.
        """
        if self.is_busy:
            return False

        self.is_busy = True
        self.metrics.last_poll_at = _utcnow()
        try:
            job = await self.claim_next_job()
            if job is None:
                return False
            await self.process_job(job)
            return True
        except Exception as e:
            self.metrics.poll_errors += 1
            logger.error("Error in poll cycle", error=str(e), error_type=type(e).__name__)
            return False
        finally:
            self.is_busy = False

    def _spawn_poll(self) -> None:
        task = asyncio.create_task(self.poll_once())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def stop(self) -> None:
        """Ask the run loop to exit after any in-flight job completes."""
        if not self._stop_event.is_set():
            logger.info("Suggestions worker stopping", busy=self.is_busy)
            self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def _install_signal_handlers(self) -> list[signal.Signals]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handlers unavailable", signal=sig.name)
        return installed

    async def run(self, install_signal_handlers: bool = True) -> None:
        """Poll immediately, then every poll interval, until stop() or SIGINT/SIGTERM."""
        logger.info(
            "Starting suggestions worker",
            poll_interval_ms=int(self.poll_interval_seconds * 1000),
        )
        installed = self._install_signal_handlers() if install_signal_handlers else []

        try:
            await self.poll_once()
            while not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval_seconds)
                except TimeoutError:
                    self._spawn_poll()
        finally:
            if self._in_flight:
                logger.info("Waiting for in-flight job", in_flight=len(self._in_flight))
                await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            if installed:
                loop = asyncio.get_running_loop()
                for sig in installed:
                    loop.remove_signal_handler(sig)
            logger.info("Suggestions worker stopped", **self.metrics.to_dict())

    def get_status(self) -> dict:
        return {
            "service": "suggestions_worker",
            "is_busy": self.is_busy,
            "stopping": self.stopping,
            "poll_interval_seconds": self.poll_interval_seconds,
            **self.metrics.to_dict(),
        }
