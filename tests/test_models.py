"""
Unit tests for jobs/models.py - job records and the status state machine
"""
import pytest

from polylingo.ai.exceptions import InvalidTransitionError
from polylingo.jobs.models import (
    Job,
    JobDescriptor,
    JobStatus,
    QueueStatus,
    ensure_transition,
)


class TestStateMachine:
    """Test ensure_transition."""

    @pytest.mark.parametrize("current,target", [
        ("PENDING", "PROCESSING"),
        ("PROCESSING", "COMPLETED"),
        ("PROCESSING", "FAILED"),
        ("COMPLETED", "PUBLISHED"),
    ])
    def test_legal_transitions(self, current, target):
        ensure_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("PENDING", "COMPLETED"),
        ("PENDING", "FAILED"),
        ("PROCESSING", "PUBLISHED"),
        ("COMPLETED", "FAILED"),
        ("FAILED", "PROCESSING"),
        ("PUBLISHED", "COMPLETED"),
    ])
    def test_illegal_transitions(self, current, target):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(current, target)
        assert exc_info.value.code == "invalid_transition"
        assert exc_info.value.details == {"current": current, "target": target}

    def test_same_status_is_not_a_transition(self):
        """A retried job re-asserts PROCESSING."""
        ensure_transition("PROCESSING", "PROCESSING")
        ensure_transition(JobStatus.FAILED, JobStatus.FAILED)

    def test_unknown_status(self):
        with pytest.raises(InvalidTransitionError):
            ensure_transition("PENDING", "RUNNING")


class TestJob:
    """Test Job dataclass."""

    def test_from_row_defaults(self):
        job = Job.from_row({"id": "abc", "content_id": 7, "target_language": "de"})
        assert job.status == JobStatus.PENDING
        assert job.progress == 0
        assert job.tokens_used == 0
        assert job.source_language == "en"
        assert job.error_message is None

    def test_to_dict_serializes_status(self):
        job = Job(id="abc", content_id=7, target_language="de", status=JobStatus.COMPLETED)
        data = job.to_dict()
        assert data["status"] == "COMPLETED"
        assert data["content_id"] == 7

    def test_descriptor(self):
        job = Job(id="abc", content_id=7, target_language="de")
        assert job.descriptor() == JobDescriptor("abc", 7, "de")

    def test_status_compares_to_plain_strings(self):
        assert JobStatus.PENDING == "PENDING"


def test_queue_status_to_dict():
    assert QueueStatus(3, 2, 2).to_dict() == {"queue_length": 3, "active_count": 2, "max_parallel": 2}
