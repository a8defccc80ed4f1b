"""
Background scheduler host for synchronous callers (the Flask app).

The Scheduler lives on an asyncio event loop running in a daemon thread. Every
public method here hands its work to that loop, so the scheduler state is only
ever touched from one thread.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Optional

from polylingo.logger import get_logger
from polylingo.jobs.models import QueueStatus
from polylingo.jobs.scheduler import Scheduler

logger = get_logger(__name__)

_CALL_TIMEOUT_SECONDS = 10


class BackgroundScheduler:
    """Owns one event loop thread and the Scheduler running on it."""

    def __init__(self, *args: Any, **kwargs: Any):
        """Arguments are passed through to Scheduler, which is built on the loop thread."""
        self._args = args
        self._kwargs = kwargs
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._scheduler: Optional[Scheduler] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._ready.clear()
            self._thread = threading.Thread(
                target=self._run_loop,
                name="translation-scheduler",
                daemon=True,
            )
            self._thread.start()
        self._ready.wait(_CALL_TIMEOUT_SECONDS)
        if self._scheduler is None:
            raise RuntimeError("Translation scheduler failed to start")

    def _run_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            loop.run_until_complete(self._setup())
            self._ready.set()
            loop.run_forever()
        except Exception:
            logger.exception("Translation scheduler loop crashed")
        finally:
            self._ready.set()
            loop.close()
            self._loop = None
            logger.info("Translation scheduler loop closed")

    async def _setup(self) -> None:
        scheduler = Scheduler(*self._args, **self._kwargs)
        scheduler.start()
        self._scheduler = scheduler

    def _call(self, coro, timeout: Optional[float] = _CALL_TIMEOUT_SECONDS):
        if self._loop is None or self._scheduler is None:
            coro.close()
            raise RuntimeError("Translation scheduler is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout)

    def submit(self, job_id: str, content_id: int, target_language: str) -> bool:
        async def _submit():
            return self._scheduler.submit(job_id, content_id, target_language)

        return self._call(_submit())

    def status(self) -> QueueStatus:
        async def _status():
            return self._scheduler.status()

        return self._call(_status())

    def join(self, timeout: Optional[float] = None) -> None:
        """Block until every queued job has finished."""
        async def _join():
            await self._scheduler.join()

        self._call(_join(), timeout=timeout)

    def stop(self) -> None:
        if not self.running or self._loop is None:
            return
        try:
            async def _stop():
                await self._scheduler.stop()

            self._call(_stop())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(_CALL_TIMEOUT_SECONDS)
            self._thread = None
            self._scheduler = None
