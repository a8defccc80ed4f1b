"""
Job data classes and the job status state machine.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any

from polylingo.ai.exceptions import InvalidTransitionError


class JobStatus(str, Enum):
    """Persisted job status."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"


ALLOWED_TRANSITIONS = {
    JobStatus.PENDING: [JobStatus.PROCESSING],
    JobStatus.PROCESSING: [JobStatus.COMPLETED, JobStatus.FAILED],
    JobStatus.COMPLETED: [JobStatus.PUBLISHED],
    JobStatus.PUBLISHED: [],
    JobStatus.FAILED: [],
}


def ensure_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed. Same-status is a no-op."""
    try:
        current_status = JobStatus(current)
        target_status = JobStatus(target)
    except ValueError:
        raise InvalidTransitionError(str(current), str(target)) from None

    if current_status == target_status:
        return
    if target_status not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidTransitionError(current_status.value, target_status.value)


@dataclass(frozen=True)
class JobDescriptor:
    """Queue entry identifying one unit of scheduled work."""
    job_id: str
    content_id: int
    target_language: str


@dataclass
class Job:
    """Durable translation job record."""
    id: str
    content_id: int
    target_language: str
    source_language: str = "en"
    content_title: str = ""
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    tokens_used: int = 0
    error_message: Optional[str] = None
    translated_title: Optional[str] = None
    translated_content: Optional[str] = None
    external_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Job':
        """Create from a database row dict."""
        return cls(
            id=row["id"],
            content_id=row["content_id"],
            target_language=row["target_language"],
            source_language=row.get("source_language") or "en",
            content_title=row.get("content_title") or "",
            status=JobStatus(row.get("status") or JobStatus.PENDING),
            progress=row.get("progress") or 0,
            tokens_used=row.get("tokens_used") or 0,
            error_message=row.get("error_message"),
            translated_title=row.get("translated_title"),
            translated_content=row.get("translated_content"),
            external_id=row.get("external_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def descriptor(self) -> JobDescriptor:
        return JobDescriptor(self.id, self.content_id, self.target_language)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class ContentItem:
    """A source item fetched from the content source, body already prepared for translation."""
    id: int
    title: str
    body: str
    post_type: str = "post"
    language: Optional[str] = None
    translations: Dict[str, int] = field(default_factory=dict)
    categories: List[int] = field(default_factory=list)
    tags: List[int] = field(default_factory=list)


@dataclass
class TranslationResult:
    """Translated text plus the cost of producing it."""
    text: str
    tokens_used: int = 0


@dataclass
class JobStats:
    """Totals across every persisted job (cost accounting view)."""
    total_jobs: int
    pending_jobs: int
    completed_jobs: int
    published_jobs: int
    failed_jobs: int
    translated_items: int
    tokens_used: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class QueueStatus:
    """Scheduler introspection snapshot."""
    queue_length: int
    active_count: int
    max_parallel: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class RetryState:
    """Retries performed so far for one job (scheduler-internal)."""
    attempts: int = 0
