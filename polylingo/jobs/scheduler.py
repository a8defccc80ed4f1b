"""
Translation Job Scheduler

A fixed pool of asyncio worker tasks pulls job descriptors from a FIFO queue
and drives each through the JobPipeline. The pool size is the concurrency cap.

Retries: a worker that hits a retryable error sleeps through the backoff while
still holding its slot, then puts the same descriptor back at the front of the
queue. The job therefore stays PROCESSING in the store and never counts against
the cap twice.

All scheduler state (queue, active set, retry counters) is touched only from the
event loop thread. Use jobs.runner.BackgroundScheduler from synchronous code.
"""

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set

from polylingo.config import load_config
from polylingo.logger import get_logger
from polylingo.ai.exceptions import JobNotFoundError, TranslationError
from polylingo.jobs.models import JobDescriptor, JobStatus, QueueStatus, RetryState
from polylingo.jobs.pipeline import JobPipeline, ProviderFactory, SourceFactory
from polylingo.jobs.rate_limiter import RateLimiter
from polylingo.jobs.retry import RetryPolicy
from polylingo.jobs.store import JobStore

logger = get_logger(__name__)


def _policy_from(settings: Dict[str, Any]) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.get('max_retries', 3),
        base_delay=settings.get('base_delay', 2.0),
    )


class Scheduler:
    """Bounded-concurrency, rate-limited, retrying job runner."""

    def __init__(
        self,
        store: JobStore,
        source_factory: SourceFactory,
        provider_factory: ProviderFactory,
        config: Optional[Dict[str, Any]] = None,
        *,
        max_parallel_jobs: Optional[int] = None,
        max_requests_per_minute: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            store: Durable job records
            source_factory: Builds the content source client from a config dict
            provider_factory: Builds a fresh translation provider from a config dict
            config: Fixed configuration; None reloads the saved config for every job run
            max_parallel_jobs: Worker pool size (defaults to scheduler.max_parallel_jobs)
            max_requests_per_minute: Provider call limit used when no rate_limiter is given
            retry_policy: Retry decisions (defaults from the scheduler config block,
                re-read before every run when config is None)
            rate_limiter: Shared limiter for provider calls
            sleep: Coroutine used for backoff waits (injectable for tests)
        """
        self.store = store
        self.source_factory = source_factory
        self.provider_factory = provider_factory
        self._config = config

        settings = (config if config is not None else load_config()).get('scheduler', {})
        if max_parallel_jobs is None:
            max_parallel_jobs = settings.get('max_parallel_jobs', 2)
        self.max_parallel_jobs = max_parallel_jobs
        if self.max_parallel_jobs < 1:
            raise ValueError("max_parallel_jobs must be at least 1")
        # Retry settings follow the saved config unless a policy or a fixed config was given
        self._reload_retry_policy = retry_policy is None and config is None
        self.retry_policy = retry_policy or _policy_from(settings)
        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests_per_minute or settings.get('max_requests_per_minute', 10)
        )
        self._sleep = sleep

        self._queue: Deque[JobDescriptor] = deque()
        self._queued: Set[str] = set()
        self._active: Dict[str, JobDescriptor] = {}
        self._retry_state: Dict[str, RetryState] = {}
        self._available = asyncio.Semaphore(0)
        self._idle = asyncio.Event()
        self._idle.set()
        self._workers: List[asyncio.Task] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, job_id: str, content_id: int, target_language: str) -> bool:
        """
        Queue a job for execution. Returns immediately.

        Returns:
            False when the job is already queued or running (nothing is added).
        """
        if job_id in self._queued or job_id in self._active:
            logger.debug(f"Job {job_id} already scheduled, ignoring duplicate submit")
            return False
        self._enqueue(JobDescriptor(job_id, content_id, target_language), front=False)
        logger.info(f"Job {job_id} queued (content {content_id} -> {target_language}), "
                    f"queue length {len(self._queue)}")
        return True

    def status(self) -> QueueStatus:
        return QueueStatus(
            queue_length=len(self._queue),
            active_count=len(self._active),
            max_parallel=self.max_parallel_jobs,
        )

    def start(self) -> None:
        """Start the worker pool. Must be called from inside the running event loop."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"translation-worker-{index}")
            for index in range(self.max_parallel_jobs)
        ]
        logger.info(f"Scheduler started with {self.max_parallel_jobs} workers")

    async def join(self) -> None:
        """Wait until the queue is drained and no job is running."""
        await self._idle.wait()

    async def stop(self) -> None:
        """Cancel the workers. Running jobs are interrupted and stay in their current state."""
        workers, self._workers = self._workers, []
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        logger.info("Scheduler stopped")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enqueue(self, descriptor: JobDescriptor, front: bool) -> None:
        if front:
            self._queue.appendleft(descriptor)
        else:
            self._queue.append(descriptor)
        self._queued.add(descriptor.job_id)
        self._idle.clear()
        self._available.release()

    def _job_config(self) -> Dict[str, Any]:
        return self._config if self._config is not None else load_config()

    def _check_idle(self) -> None:
        if not self._queue and not self._active:
            self._idle.set()

    async def _worker(self, index: int) -> None:
        while True:
            await self._available.acquire()
            descriptor = self._queue.popleft()
            self._queued.discard(descriptor.job_id)
            self._active[descriptor.job_id] = descriptor
            try:
                await self._run(descriptor)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Worker {index}: unexpected error while handling job {descriptor.job_id}")
            finally:
                self._active.pop(descriptor.job_id, None)
                self._check_idle()

    async def _run(self, descriptor: JobDescriptor) -> None:
        job_id = descriptor.job_id
        state = self._retry_state.setdefault(job_id, RetryState())
        config = self._job_config()
        if self._reload_retry_policy:
            self.retry_policy = _policy_from(config.get('scheduler', {}))
        pipeline = JobPipeline(self.store, self.source_factory, self.provider_factory,
                               self.rate_limiter, config)
        try:
            await pipeline.run(descriptor)
        except JobNotFoundError:
            self._retry_state.pop(job_id, None)
            logger.info(f"Job {job_id} no longer exists, dropping it")
            return
        except Exception as error:
            if self.retry_policy.should_retry(error, state.attempts):
                try:
                    await self._retry_later(descriptor, state, error)
                except JobNotFoundError:
                    self._retry_state.pop(job_id, None)
                    logger.info(f"Job {job_id} deleted during backoff, dropping it")
            else:
                self._retry_state.pop(job_id, None)
                self._fail(job_id, error)
            return

        self._retry_state.pop(job_id, None)

    async def _retry_later(self, descriptor: JobDescriptor, state: RetryState, error: Exception) -> None:
        """Back off while holding the slot, then requeue the same descriptor at the front."""
        delay = self.retry_policy.next_delay(state.attempts)
        state.attempts += 1
        self.store.append_log(
            descriptor.job_id, "warning",
            f"Attempt failed: {error}. Retrying in {delay:g}s "
            f"({state.attempts}/{self.retry_policy.max_retries})",
            {"attempt": state.attempts, "delay": delay},
        )
        await self._sleep(delay)
        self._enqueue(descriptor, front=True)

    def _fail(self, job_id: str, error: Exception) -> None:
        message = self.retry_policy.user_message(error)
        details = {"error": str(error), "type": type(error).__name__}
        if isinstance(error, TranslationError):
            details["code"] = error.code
        try:
            self.store.update(job_id, status=JobStatus.FAILED, error_message=message)
            self.store.append_log(job_id, "error", f"Translation failed: {message}", details)
        except JobNotFoundError:
            logger.info(f"Job {job_id} was deleted before it could be marked failed")
        except TranslationError as e:
            logger.error(f"Could not mark job {job_id} as failed: {e}")
