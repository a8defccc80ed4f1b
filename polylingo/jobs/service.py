"""
Job Service

Operations behind the HTTP API: creating and submitting jobs, manual publish,
restart recovery and deletion. `scheduler` is anything with a
submit(job_id, content_id, target_language) method, either a Scheduler on the
current loop or a BackgroundScheduler.
"""

from typing import Any, Dict, Iterable, List, Optional

from polylingo.logger import get_logger
from polylingo import language_codes as lc
from polylingo.ai.exceptions import JobNotFoundError, TranslationError
from polylingo.jobs.models import Job, JobStatus
from polylingo.jobs.store import JobStore

logger = get_logger(__name__)

RESTORABLE_STATUSES = (JobStatus.PENDING, JobStatus.PROCESSING)


def resolve_target_languages(config: Dict[str, Any], languages: Optional[Iterable[str]] = None) -> List[str]:
    """Requested languages, or the configured targets, without the source language and duplicates."""
    source_language = config.get('source_language', 'en')
    requested = list(languages) if languages else list(config.get('target_languages', []))
    targets: List[str] = []
    for code in requested:
        code = (code or '').strip()
        if not code or code in targets or lc.languages_match(code, source_language, strict=True):
            continue
        targets.append(code)
    return targets


def create_translation_jobs(
    store: JobStore,
    scheduler,
    config: Dict[str, Any],
    content_ids: Iterable[int],
    target_languages: Optional[Iterable[str]] = None,
    titles: Optional[Dict[int, str]] = None,
) -> List[Job]:
    """
    Create one PENDING job per (content id, target language) and submit it.

    Args:
        store: Job records
        scheduler: Scheduler or BackgroundScheduler
        config: Application configuration
        content_ids: Content items to translate
        target_languages: Languages to translate into (default: configured targets)
        titles: Optional known titles by content id; the pipeline fills in the
            fetched title otherwise

    Raises:
        TranslationError: No content ids or no target languages.
    """
    content_ids = [int(content_id) for content_id in content_ids]
    if not content_ids:
        raise TranslationError("No content selected", code="invalid_request")

    targets = resolve_target_languages(config, target_languages)
    if not targets:
        raise TranslationError(
            "No target languages selected. Configure target languages in Settings.",
            code="invalid_request",
        )

    titles = titles or {}
    source_language = config.get('source_language', 'en')
    jobs: List[Job] = []
    for content_id in content_ids:
        for target_language in targets:
            job = store.create(content_id, titles.get(content_id, ""), source_language, target_language)
            store.append_log(job.id, "info", "Job created",
                             {"content_id": content_id, "target_language": target_language})
            scheduler.submit(job.id, content_id, target_language)
            jobs.append(job)

    logger.info(f"Created {len(jobs)} translation jobs for {len(content_ids)} items ({', '.join(targets)})")
    return jobs


async def publish_job(
    store: JobStore,
    source,
    job_id: str,
    title: Optional[str] = None,
    content: Optional[str] = None,
) -> Job:
    """
    Publish a COMPLETED job's translation, optionally with edited title/content.

    Raises:
        JobNotFoundError: Unknown job.
        TranslationError: The job is not COMPLETED or has no translation.
    """
    job = store.get(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    if job.status != JobStatus.COMPLETED:
        raise TranslationError(
            f"Only completed jobs can be published (job is {job.status.value})",
            code="invalid_status",
            details={"status": job.status.value},
        )

    title = title if title is not None else job.translated_title
    content = content if content is not None else job.translated_content
    if not title:
        raise TranslationError("Job has no translation to publish", code="no_translation")

    updates: Dict[str, Any] = {}
    if title != job.translated_title:
        updates["translated_title"] = title
    if content != job.translated_content:
        updates["translated_content"] = content
    if updates:
        store.update(job_id, **updates)

    external_id = await source.publish(job.content_id, job.target_language, title, content or "")
    job = store.update(job_id, status=JobStatus.PUBLISHED, external_id=external_id)
    store.append_log(job_id, "success", "Translation published", {"external_id": external_id})
    return job


def restore_pending_jobs(store: JobStore, scheduler) -> int:
    """Resubmit jobs interrupted by a restart (PENDING or PROCESSING), oldest first."""
    jobs = store.list_by_status(RESTORABLE_STATUSES)
    restored = 0
    for job in jobs:
        if scheduler.submit(job.id, job.content_id, job.target_language):
            restored += 1
    if restored:
        logger.info(f"Restored {restored} unfinished translation jobs")
    return restored


def delete_job(store: JobStore, job_id: str) -> None:
    """
    Delete a job record and its logs.

    A running job is not interrupted; its worker drops it at the next store write.

    Raises:
        JobNotFoundError: Unknown job.
    """
    if not store.delete(job_id):
        raise JobNotFoundError(job_id)
    logger.info(f"Job {job_id} deleted")
