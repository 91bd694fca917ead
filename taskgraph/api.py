"""
HTTP interface for the transcript task-graph service.

POST /transcripts runs the pipeline inline; /jobs wraps the same pipeline in
background jobs that clients poll.
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import config

from .errors import TaskGraphError
from .jobs import JobManager
from .pipeline_workflow import TranscriptPipeline, build_pipeline

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
TRANSCRIPT_REQUIRED = "Field 'transcript' is required."


class TranscriptRequest(BaseModel):
    transcript: str = Field(description="Raw meeting transcript")


def _is_production() -> bool:
    return config.APP_ENV == "production"


def create_app(pipeline: Optional[TranscriptPipeline] = None, jobs: Optional[JobManager] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        pipeline: Pipeline to serve; built from configuration at startup when omitted
        jobs: Job manager; wraps the pipeline when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_pipeline = getattr(app.state, "pipeline", None) is None
        if owns_pipeline:
            app.state.pipeline = build_pipeline()
        if getattr(app.state, "jobs", None) is None:
            app.state.jobs = JobManager(app.state.pipeline, max_workers=config.JOB_WORKERS)
        logger.info("Service started (env=%s)", config.APP_ENV)
        try:
            yield
        finally:
            app.state.jobs.shutdown(wait=False)
            if owns_pipeline:
                app.state.pipeline.close()
            logger.info("Service stopped")

    app = FastAPI(title="Transcript Task Graph", version=VERSION, lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.jobs = jobs if jobs is not None else (JobManager(pipeline, config.JOB_WORKERS) if pipeline is not None else None)

    @app.exception_handler(TaskGraphError)
    async def task_graph_error_handler(request: Request, exc: TaskGraphError):
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
        if _is_production():
            body = {"message": "Request failed" if exc.status_code < 500 else "Server error"}
        else:
            body = {"message": exc.message, "error": type(exc).__name__, "details": exc.details}
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": TRANSCRIPT_REQUIRED})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = {"message": "Server error"}
        if not _is_production():
            body["error"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=500, content=body)

    @app.get("/")
    def root():
        return {"message": "Welcome to the Transcript Task Graph service", "version": VERSION, "environment": config.APP_ENV}

    @app.get("/health-check")
    def health_check():
        return {"message": "Health check passed", "version": VERSION, "environment": config.APP_ENV}

    @app.post("/transcripts")
    def process_transcript(body: TranscriptRequest, request: Request):
        if not body.transcript.strip():
            return JSONResponse(status_code=400, content={"message": TRANSCRIPT_REQUIRED})
        result = request.app.state.pipeline.process(body.transcript)
        return result.to_response()

    @app.post("/jobs")
    def submit_job(body: TranscriptRequest, request: Request):
        if not body.transcript.strip():
            return JSONResponse(status_code=400, content={"message": TRANSCRIPT_REQUIRED})
        job = request.app.state.jobs.submit(body.transcript)
        return JSONResponse(status_code=200 if job.status == "done" else 202, content=job.to_response())

    @app.get("/jobs/{job_id}")
    def get_job(job_id: str, request: Request):
        return request.app.state.jobs.get(job_id).to_response()

    return app


def run():
    """Serve the API with uvicorn."""
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    run()
