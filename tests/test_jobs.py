"""Tests for the asynchronous job wrapper."""
import time

import pytest

from conftest import SAMPLE_TRANSCRIPT, FakeExtractor
from taskgraph.errors import NotFoundError, ProviderError
from taskgraph.hashing import hash_transcript
from taskgraph.jobs import JobManager
from taskgraph.pipeline_workflow import TranscriptPipeline


def wait_for(manager, job_id, timeout=5.0):
    """Poll until the job leaves pending/processing"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = manager.get(job_id)
        if job.status in ("done", "error"):
            return job
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} did not finish")


@pytest.fixture
def manager(pipeline):
    manager = JobManager(pipeline, max_workers=2)
    yield manager
    manager.shutdown()


@pytest.mark.integration
class TestJobManager:
    """Job lifecycle and idempotency by hash"""

    def test_job_completes(self, manager):
        job = manager.submit(SAMPLE_TRANSCRIPT)
        assert job.status in ("pending", "processing", "done")
        assert job.hash == hash_transcript(SAMPLE_TRANSCRIPT)

        finished = wait_for(manager, job.id)
        assert finished.status == "done"
        assert finished.error is None
        assert [task.id for task in finished.result.tasks] == ["task-1", "task-2", "task-3"]
        assert finished.updated_at >= finished.created_at

    def test_same_transcript_reuses_job(self, manager, extractor):
        first = manager.submit(SAMPLE_TRANSCRIPT)
        second = manager.submit(SAMPLE_TRANSCRIPT)
        assert second.id == first.id

        wait_for(manager, first.id)
        third = manager.submit(SAMPLE_TRANSCRIPT)
        assert third.id == first.id
        assert third.status == "done"
        assert extractor.calls == 1

    def test_failed_job_reports_error_and_requeues(self, store, sample_tasks):
        extractor = FakeExtractor(error=ProviderError("LLM call failed"))
        manager = JobManager(TranscriptPipeline(store, extractor), max_workers=1)
        try:
            job = manager.submit(SAMPLE_TRANSCRIPT)
            failed = wait_for(manager, job.id)
            assert failed.status == "error"
            assert failed.error == "LLM call failed"
            assert failed.result is None

            extractor.error = None
            extractor.tasks = sample_tasks
            retried = manager.submit(SAMPLE_TRANSCRIPT)
            assert retried.id == job.id
            assert wait_for(manager, job.id).status == "done"
        finally:
            manager.shutdown()

    def test_unknown_job(self, manager):
        with pytest.raises(NotFoundError) as exc_info:
            manager.get("no-such-job")
        assert exc_info.value.status_code == 404

    def test_response_shape(self, manager):
        job = wait_for(manager, manager.submit(SAMPLE_TRANSCRIPT).id)
        body = job.to_response()
        assert set(body) == {"jobId", "hash", "status", "createdAt", "updatedAt", "result", "error"}
        assert set(body["result"]) == {"hash", "createdAt", "tasks"}
