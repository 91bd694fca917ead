"""
Pytest configuration and fixtures for the transcript task-graph tests

Nothing here talks to a real LLM or database server: extraction is faked and
storage runs on SQLite.
"""
import threading
import time
from typing import Any, Generator, List, Optional

import pytest

from taskgraph.pipeline_workflow import TranscriptPipeline
from taskgraph.result_cache import ResultCache
from taskgraph.storage import TranscriptStore


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests for pure pipeline components"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that run the pipeline against SQLite"
    )


# =======================
# FAKE EXTRACTOR
# =======================

class FakeExtractor:
    """
    Stands in for the LLM: returns canned task records and counts calls.

    Args:
        tasks: Records to return on every call
        error: Exception to raise instead of returning
        delay: Seconds to sleep before answering
    """

    def __init__(self, tasks: Optional[List[Any]] = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.tasks = tasks if tasks is not None else []
        self.error = error
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, transcript: str) -> List[Any]:
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [dict(task) if isinstance(task, dict) else task for task in self.tasks]


SAMPLE_TASKS = [
    {"id": "task-1", "description": "Draft the release notes", "priority": "high", "dependencies": []},
    {"id": "task-2", "description": "Review the release notes", "priority": "medium", "dependencies": ["task-1"]},
    {"id": "task-3", "description": "Publish the release", "priority": "low", "dependencies": ["task-2", "task-9"]},
]

SAMPLE_TRANSCRIPT = (
    "Alice: I'll draft the release notes today.\n"
    "Bob: I can review them once they're ready.\n"
    "Carol: Then we publish on Friday."
)


# =======================
# FIXTURES
# =======================

@pytest.fixture
def sample_tasks() -> List[dict]:
    return [dict(task) for task in SAMPLE_TASKS]


@pytest.fixture
def extractor(sample_tasks) -> FakeExtractor:
    return FakeExtractor(sample_tasks)


@pytest.fixture
def store() -> Generator[TranscriptStore, None, None]:
    """In-memory SQLite store, fresh per test"""
    store = TranscriptStore("sqlite://")
    yield store
    store.close()


@pytest.fixture
def file_store(tmp_path) -> Generator[TranscriptStore, None, None]:
    """File-backed SQLite store, safe for multi-threaded tests"""
    store = TranscriptStore(f"sqlite:///{tmp_path / 'taskgraph.db'}")
    yield store
    store.close()


@pytest.fixture
def pipeline(store, extractor) -> TranscriptPipeline:
    return TranscriptPipeline(store, extractor, ResultCache(16))
