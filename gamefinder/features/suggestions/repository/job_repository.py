"""
Persistence for the suggestion job queue.

Claiming is an update-if-unchanged: the status flips to running only when
the row is still queued, so concurrent workers never both win the same job.
"""

from datetime import UTC, datetime
from typing import Any

from gamefinder.db.helpers import DatabaseError, fetch_all, fetch_one
from gamefinder.features.suggestions.domain import JobStatus, SuggestionJob
from gamefinder.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class SuggestionJobRepositoryError(DatabaseError):
    """More specific exception for job queue failures."""


class SuggestionJobRepository:
    """SQL helpers backing the suggestion job queue."""

    JOB_SELECT_COLUMNS = """
        id, source_appid, status, created_at, started_at, finished_at, error
    """
    UPDATABLE_FIELDS = frozenset({"started_at", "finished_at", "error"})
    MAX_ERROR_LENGTH = 500

    @classmethod
    def _row_to_job(cls, row: dict | None) -> SuggestionJob | None:
        if not row:
            return None

        return SuggestionJob(
            id=str(row["id"]),
            source_app_id=int(row["source_appid"]),
            status=JobStatus(row["status"]),
            created_at=row.get("created_at"),
            started_at=row.get("started_at"),
            finished_at=row.get("finished_at"),
            error=row.get("error"),
        )

    @classmethod
    def _build_set_clause(cls, to_status: JobStatus, fields: dict[str, Any]) -> tuple[str, list]:
        unknown = set(fields) - cls.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported job fields: {', '.join(sorted(unknown))}")

        assignments = ["status = %s", "updated_at = NOW()"]
        params: list = [JobStatus(to_status).value]
        for column in sorted(fields):
            value = fields[column]
            if column == "error" and value is not None:
                value = str(value)[: cls.MAX_ERROR_LENGTH]
            assignments.append(f"{column} = %s")
            params.append(value)
        return ", ".join(assignments), params

    @classmethod
    async def create_job(cls, source_app_id: int) -> SuggestionJob:
        """Insert a new queued job and return it."""
        query = f"""
            INSERT INTO suggestion_jobs (source_appid, status)
            VALUES (%s, 'queued')
            RETURNING {cls.JOB_SELECT_COLUMNS}
        """

        row = await fetch_one(query, (source_app_id,))
        if not row:
            raise SuggestionJobRepositoryError(
                "Failed to create suggestion job", operation="create_job"
            )

        job = cls._row_to_job(row)
        logger.info("Suggestion job created", job_id=job.id, source_app_id=source_app_id)
        return job

    @classmethod
    async def load_job(cls, job_id: str) -> SuggestionJob | None:
        query = f"SELECT {cls.JOB_SELECT_COLUMNS} FROM suggestion_jobs WHERE id = %s"
        return cls._row_to_job(await fetch_one(query, (job_id,)))

    @classmethod
    async def load_latest_job_for_source(cls, source_app_id: int) -> SuggestionJob | None:
        query = f"""
            SELECT {cls.JOB_SELECT_COLUMNS}
            FROM suggestion_jobs
            WHERE source_appid = %s
            ORDER BY created_at DESC
            LIMIT 1
        """
        return cls._row_to_job(await fetch_one(query, (source_app_id,)))

    @classmethod
    async def list_oldest_queued(cls, limit: int = 1) -> list[SuggestionJob]:
        """Queued jobs, oldest first."""
        query = f"""
            SELECT {cls.JOB_SELECT_COLUMNS}
            FROM suggestion_jobs
            WHERE status = 'queued'
            ORDER BY created_at ASC, id ASC
            LIMIT %s
        """
        rows = await fetch_all(query, (limit,))
        return [cls._row_to_job(row) for row in rows]

    @classmethod
    async def conditional_update_status(
        cls, job_id: str, from_status: JobStatus, to_status: JobStatus, **fields: Any
    ) -> SuggestionJob | None:
        """
        Move a job from `from_status` to `to_status` only if it is still in
        `from_status`. Returns the updated job, or None when the guard didn't match.
        """
        set_clause, params = cls._build_set_clause(to_status, fields)
        query = f"""
            UPDATE suggestion_jobs
            SET {set_clause}
            WHERE id = %s
              AND status = %s
            RETURNING {cls.JOB_SELECT_COLUMNS}
        """
        row = await fetch_one(query, (*params, job_id, JobStatus(from_status).value))
        return cls._row_to_job(row)

    @classmethod
    async def try_claim(cls, job_id: str) -> SuggestionJob | None:
        """Claim a queued job for this worker; None if another worker got it first."""
        job = await cls.conditional_update_status(
            job_id,
            JobStatus.QUEUED,
            JobStatus.RUNNING,
            started_at=datetime.now(UTC),
        )
        if job is None:
            logger.debug("Suggestion job already claimed", job_id=job_id)
        return job

    @classmethod
    async def update_status(
        cls, job_id: str, to_status: JobStatus, **fields: Any
    ) -> SuggestionJob | None:
        """
        Set a job's status. Terminal jobs are never moved; None is returned
        when the job is missing or already terminal.
        """
        set_clause, params = cls._build_set_clause(to_status, fields)
        query = f"""
            UPDATE suggestion_jobs
            SET {set_clause}
            WHERE id = %s
              AND status NOT IN ('succeeded', 'failed')
            RETURNING {cls.JOB_SELECT_COLUMNS}
        """
        job = cls._row_to_job(await fetch_one(query, (*params, job_id)))
        if job is None:
            logger.warning(
                "Suggestion job status not updated",
                job_id=job_id,
                to_status=JobStatus(to_status).value,
            )
        return job
