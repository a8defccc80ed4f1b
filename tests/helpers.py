"""
Test doubles shared by the test modules.
"""
import asyncio
from typing import Dict, List, Optional

from polylingo.ai.exceptions import ContentSourceError
from polylingo.jobs.models import ContentItem, JobStatus, QueueStatus, TranslationResult
from polylingo.jobs.store import JobStore


class VirtualClock:
    """Monotonic clock that only moves when someone sleeps on it."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeSource:
    """In-memory content source."""

    def __init__(self, items: Optional[Dict[int, ContentItem]] = None,
                 publish_error: Optional[Exception] = None):
        self.items = items or {}
        self.publish_error = publish_error
        self.fetch_calls: List[int] = []
        self.published: List[tuple] = []
        self.on_fetch = None

    async def fetch(self, content_id: int) -> ContentItem:
        self.fetch_calls.append(content_id)
        if self.on_fetch:
            self.on_fetch(content_id)
        if content_id not in self.items:
            raise ContentSourceError(f"Content {content_id} not found", status_code=404)
        return self.items[content_id]

    async def publish(self, content_id, target_language, title, body) -> int:
        if self.publish_error:
            raise self.publish_error
        self.published.append((content_id, target_language, title, body))
        return 9000 + len(self.published)

    async def test_connection(self) -> dict:
        return {"success": True, "user": "Fake editor"}


class ProviderScript:
    """
    Shared behaviour of every FakeProvider built from it.

    errors: exceptions raised by the next provider calls, in order (None = succeed).
    """

    def __init__(self, errors: Optional[list] = None, delay: float = 0.0,
                 clock: Optional[VirtualClock] = None, store: Optional[JobStore] = None,
                 title_tokens: int = 5, body_tokens: int = 20):
        self.errors = list(errors or [])
        self.delay = delay
        self.clock = clock
        self.store = store
        self.title_tokens = title_tokens
        self.body_tokens = body_tokens
        self.calls: List[tuple] = []
        self.max_processing = 0

    async def call(self, kind: str, text: str) -> None:
        self.calls.append((kind, text, self.clock() if self.clock else None))
        if self.store is not None:
            processing = len(self.store.list(JobStatus.PROCESSING))
            self.max_processing = max(self.max_processing, processing)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            error = self.errors.pop(0)
            if error is not None:
                raise error

    def titles(self) -> List[str]:
        return [text for kind, text, _ in self.calls if kind == "title"]


class FakeProvider:
    def __init__(self, script: ProviderScript):
        self.script = script
        self.last_token_usage = 0

    async def translate_title(self, text, source_lang, target_lang):
        await self.script.call("title", text)
        self.last_token_usage = self.script.title_tokens
        return f"[{target_lang}] {text}"

    async def translate_body(self, text, source_lang, target_lang, instructions=None):
        await self.script.call("body", text)
        self.last_token_usage = self.script.body_tokens
        return TranslationResult(f"[{target_lang}] {text}", self.script.body_tokens)


class RecordingScheduler:
    """Synchronous stand-in for BackgroundScheduler."""

    def __init__(self):
        self.submitted: List[tuple] = []

    def submit(self, job_id, content_id, target_language) -> bool:
        if any(entry[0] == job_id for entry in self.submitted):
            return False
        self.submitted.append((job_id, content_id, target_language))
        return True

    def status(self) -> QueueStatus:
        return QueueStatus(queue_length=len(self.submitted), active_count=0, max_parallel=2)


def make_item(content_id: int, title: str = "Hello", body: str = "<p>Hello world</p>", **kwargs) -> ContentItem:
    return ContentItem(id=content_id, title=title, body=body, **kwargs)

