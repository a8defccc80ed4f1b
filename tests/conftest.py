"""
Pytest configuration and shared fixtures for PolyLingo tests.
"""
from typing import Dict

import pytest

from polylingo.core import database
from polylingo.core.schema import initialize_database
from polylingo.config import merge_defaults
from polylingo.jobs.store import JobStore

from tests.helpers import FakeSource, RecordingScheduler, VirtualClock, make_item


# ============================================================================
# Fixtures: Database & Configuration
# ============================================================================

@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the database module at a fresh file for each test."""
    db_file = tmp_path / "polylingo-test.db"
    monkeypatch.setattr(database, "DB_FILE", db_file)
    initialize_database()
    return db_file


@pytest.fixture
def store(temp_db) -> JobStore:
    return JobStore()


@pytest.fixture
def app_config() -> Dict:
    """Usable configuration: credentials present, auto-publish off, fast retries."""
    return merge_defaults({
        "source_language": "en",
        "target_languages": ["de", "fr"],
        "translation_provider": "gemini",
        "gemini": {"api_key": "test-gemini-key"},
        "wordpress": {
            "url": "https://blog.example.com",
            "username": "editor",
            "password": "app-password",
        },
        "scheduler": {
            "max_parallel_jobs": 2,
            "max_requests_per_minute": 100,
            "base_delay": 2.0,
            "max_retries": 3,
            "auto_publish": False,
        },
    })


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource({
        1: make_item(1, "First post"),
        2: make_item(2, "Second post"),
        3: make_item(3, "Third post"),
        4: make_item(4, "Fourth post"),
        5: make_item(5, "Fifth post"),
    })


@pytest.fixture
def recording_scheduler() -> RecordingScheduler:
    return RecordingScheduler()
