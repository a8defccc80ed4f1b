"""
Job Pipeline

Runs one admitted job from PROCESSING to COMPLETED (or PUBLISHED), writing a
progress checkpoint before each step:

    10  started (configuration validated, clients built)
    20  fetching source content
    40  content fetched (an empty body completes right here)
    60  translating title and body
    80  translation persisted
    100 COMPLETED

Errors raised before COMPLETED propagate to the scheduler, which decides between
retry and FAILED. A failed auto-publish only leaves a warning in the job log.
"""

from typing import Any, Callable, Dict

from polylingo.logger import get_logger
from polylingo.ai.exceptions import JobNotFoundError, TranslationError
from polylingo.ai.service import validate_ai_config
from polylingo.jobs.models import Job, JobDescriptor, JobStatus
from polylingo.jobs.rate_limiter import RateLimiter
from polylingo.jobs.store import JobStore

logger = get_logger(__name__)

SourceFactory = Callable[[Dict[str, Any]], Any]
ProviderFactory = Callable[[Dict[str, Any]], Any]


class JobPipeline:
    """One pass of one job. Built fresh for every attempt."""

    def __init__(
        self,
        store: JobStore,
        source_factory: SourceFactory,
        provider_factory: ProviderFactory,
        rate_limiter: RateLimiter,
        config: Dict[str, Any],
    ):
        self.store = store
        self.source_factory = source_factory
        self.provider_factory = provider_factory
        self.rate_limiter = rate_limiter
        self.config = config

    def _checkpoint(self, job_id: str, progress: int, **fields) -> Job:
        """Persist progress (never below the stored value) along with other fields."""
        current = self.store.get(job_id)
        if current is None:
            raise JobNotFoundError(job_id)
        return self.store.update(job_id, progress=max(progress, current.progress), **fields)

    async def run(self, descriptor: JobDescriptor) -> Job:
        job_id = descriptor.job_id
        target_lang = descriptor.target_language

        job = self._checkpoint(job_id, 10, status=JobStatus.PROCESSING)
        source_lang = job.source_language or self.config.get('source_language', 'en')
        self.store.append_log(job_id, "info", "Translation started", {
            "content_id": descriptor.content_id,
            "source_language": source_lang,
            "target_language": target_lang,
        })

        validate_ai_config(self.config)
        source = self.source_factory(self.config)
        provider = self.provider_factory(self.config)

        self._checkpoint(job_id, 20)
        item = await source.fetch(descriptor.content_id)
        self.store.append_log(job_id, "info", f"Fetched content: {item.title}",
                              {"post_type": item.post_type, "length": len(item.body)})

        self._checkpoint(job_id, 40, content_title=item.title)
        if not item.body.strip():
            job = self._checkpoint(
                job_id, 100,
                status=JobStatus.COMPLETED,
                tokens_used=0,
                translated_title=item.title,
                translated_content="",
            )
            self.store.append_log(job_id, "success", "Content is empty, nothing to translate")
            return job

        self._checkpoint(job_id, 60)
        await self.rate_limiter.acquire()
        translated_title = await provider.translate_title(item.title, source_lang, target_lang)
        title_tokens = provider.last_token_usage

        await self.rate_limiter.acquire()
        result = await provider.translate_body(
            item.body, source_lang, target_lang, self.config.get('system_instruction') or None
        )
        tokens_used = title_tokens + result.tokens_used

        self._checkpoint(
            job_id, 80,
            translated_title=translated_title,
            translated_content=result.text,
            tokens_used=tokens_used,
        )

        job = self._checkpoint(job_id, 100, status=JobStatus.COMPLETED)
        self.store.append_log(job_id, "success", "Translation completed", {"tokens_used": tokens_used})

        if self.config.get('scheduler', {}).get('auto_publish', False):
            job = await self._publish(job, source)
        return job

    async def _publish(self, job: Job, source) -> Job:
        """Push the translation to the content source; failure keeps the job COMPLETED."""
        try:
            external_id = await source.publish(
                job.content_id, job.target_language, job.translated_title or "", job.translated_content or ""
            )
        except JobNotFoundError:
            raise
        except Exception as e:
            # The job is already COMPLETED; a publish error must not reach the retry logic
            logger.warning(f"Auto-publish of job {job.id} failed: {e}")
            metadata = {"type": type(e).__name__}
            if isinstance(e, TranslationError):
                metadata.update(code=e.code, details=e.details)
            self.store.append_log(job.id, "warning", f"Auto-publish failed: {e}", metadata)
            return job

        job = self.store.update(job.id, status=JobStatus.PUBLISHED, external_id=external_id)
        self.store.append_log(job.id, "success", "Translation published", {"external_id": external_id})
        return job
