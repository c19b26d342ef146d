"""
Structured logging for the gamefinder workers.

JSON lines on stdout through structlog on top of stdlib logging. Fields bound
with `structlog.contextvars.bound_contextvars` (the worker binds job_id and
source_app_id while a job runs) are merged into every event.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

NOISY_LOGGERS = ("httpx", "httpcore", "openai", "psycopg.pool")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Logger for a module, usually called as get_logger(__name__)."""
    return structlog.get_logger(name)


def log_job_transition(
    job_id: str,
    source_app_id: int,
    status: str,
    duration_ms: float | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log suggestion job status changes with consistent fields."""
    logger = get_logger("jobs")

    log_data = {
        "job_id": job_id,
        "source_app_id": source_app_id,
        "status": status,
        **extra,
    }
    if duration_ms is not None:
        log_data["duration_ms"] = round(duration_ms, 2)
    if error:
        log_data["error"] = error

    if status == "failed":
        logger.error("Suggestion job failed", **log_data)
    elif error:
        logger.warning("Suggestion job finished with note", **log_data)
    else:
        logger.info("Suggestion job status changed", **log_data)
