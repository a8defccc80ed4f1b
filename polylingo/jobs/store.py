"""
Job Record Store

Narrow interface over core.database used by the scheduler, the job service and
the web routes. Status changes go through the job state machine here, so no
caller can persist an illegal transition.
"""

import logging
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from polylingo.ai.exceptions import JobNotFoundError
from polylingo.core import database as db
from polylingo.jobs.models import Job, JobStats, JobStatus, ensure_transition
from polylingo.logger import get_logger

logger = get_logger(__name__)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, JobStatus) else value


class JobStore:
    """Durable job state (status, progress, error, token usage) and per-job logs."""

    def create(self, content_id: int, content_title: str, source_language: str,
               target_language: str) -> Job:
        row = db.create_job(content_id, content_title, source_language, target_language,
                            status=JobStatus.PENDING.value)
        return Job.from_row(row)

    def get(self, job_id: str) -> Optional[Job]:
        row = db.get_job(job_id)
        return Job.from_row(row) if row else None

    def list(self, status: Optional[str] = None) -> List[Job]:
        return [Job.from_row(row) for row in db.get_all_jobs(_plain(status))]

    def list_by_status(self, statuses: Iterable[JobStatus]) -> List[Job]:
        return [Job.from_row(row) for row in db.get_jobs_by_status(_plain(s) for s in statuses)]

    def stats(self) -> JobStats:
        """Job counts, items with a finished translation, and tokens spent so far."""
        raw = db.get_job_stats([JobStatus.COMPLETED.value, JobStatus.PUBLISHED.value])
        counts = raw["by_status"]
        return JobStats(
            total_jobs=sum(counts.values()),
            pending_jobs=counts.get(JobStatus.PENDING.value, 0) + counts.get(JobStatus.PROCESSING.value, 0),
            completed_jobs=counts.get(JobStatus.COMPLETED.value, 0),
            published_jobs=counts.get(JobStatus.PUBLISHED.value, 0),
            failed_jobs=counts.get(JobStatus.FAILED.value, 0),
            translated_items=raw["translated_items"],
            tokens_used=raw["tokens_used"],
        )

    def update(self, job_id: str, **fields) -> Job:
        """
        Persist a partial update.

        Raises:
            JobNotFoundError: The record no longer exists.
            InvalidTransitionError: fields["status"] is not reachable from the current status.
        """
        fields = {key: _plain(value) for key, value in fields.items()}
        if "status" in fields:
            current = db.get_job(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            ensure_transition(current["status"], fields["status"])

        row = db.update_job(job_id, **fields)
        if row is None:
            raise JobNotFoundError(job_id)
        return Job.from_row(row)

    def append_log(self, job_id: str, level: str, message: str,
                   metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Write a job log entry and mirror it to the application log."""
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "[job %s] %s %s",
                   job_id, message, metadata or "")
        try:
            return db.create_log(job_id, level, message, metadata)
        except sqlite3.IntegrityError:
            # Foreign key: the job row was deleted
            raise JobNotFoundError(job_id) from None

    def logs(self, job_id: str) -> List[Dict[str, Any]]:
        return db.get_logs_by_job_id(job_id)

    def delete(self, job_id: str) -> bool:
        return db.delete_job(job_id)
