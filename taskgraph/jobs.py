"""
Asynchronous job wrapper around the transcript pipeline.

Jobs live in process memory: one job per transcript hash, processed on a
thread pool, polled by id.
"""
import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict

from .errors import NotFoundError
from .hashing import hash_transcript
from .pipeline_models import TranscriptJob
from .pipeline_workflow import TranscriptPipeline

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobManager:
    """In-memory job store keyed by job id, with a hash -> job id index."""

    def __init__(self, pipeline: TranscriptPipeline, max_workers: int = 4):
        self.pipeline = pipeline
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="transcript-job")
        self._jobs: Dict[str, TranscriptJob] = {}
        self._job_id_by_hash: Dict[str, str] = {}
        self._lock = threading.Lock()

    def submit(self, transcript: str) -> TranscriptJob:
        """
        Create or reuse the job for this transcript.

        An existing pending, processing or done job is returned as is. A job
        that ended in error is queued again.
        """
        transcript_hash = hash_transcript(transcript)

        with self._lock:
            job_id = self._job_id_by_hash.get(transcript_hash)
            job = self._jobs.get(job_id) if job_id else None

            if job is not None and job.status != "error":
                return job.model_copy()

            if job is None:
                now = _now()
                job = TranscriptJob(
                    id=str(uuid.uuid4()),
                    hash=transcript_hash,
                    transcript=transcript,
                    created_at=now,
                    updated_at=now,
                )
                self._jobs[job.id] = job
                self._job_id_by_hash[transcript_hash] = job.id
                logger.info("Job %s created for %s", job.id, transcript_hash)
            else:
                logger.info("Job %s re-queued after error", job.id)
                self._update(job, status="pending", error=None)

            snapshot = job.model_copy()

        self._executor.submit(self._run, job.id)
        return snapshot

    def get(self, job_id: str) -> TranscriptJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFoundError("Job", job_id)
            return job.model_copy()

    def _update(self, job: TranscriptJob, **changes) -> None:
        for field, value in changes.items():
            setattr(job, field, value)
        job.updated_at = _now()

    def _run(self, job_id: str) -> None:
        with self._lock:
            job = self._jobs[job_id]
            self._update(job, status="processing")
            transcript = job.transcript

        try:
            result = self.pipeline.process(transcript)
        except Exception as e:
            with self._lock:
                self._update(job, status="error", error=getattr(e, "message", None) or str(e))
            logger.error("Job %s failed: %s", job_id, e)
            return

        with self._lock:
            self._update(job, status="done", result=result, error=None)
        logger.info("Job %s completed", job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
