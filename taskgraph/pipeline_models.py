"""Data models for the transcript task-graph pipeline."""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Priority = Literal["low", "medium", "high"]
TaskStatus = Literal["ok", "error"]
JobStatus = Literal["pending", "processing", "done", "error"]


def _utc_isoformat(value: datetime) -> str:
    """ISO-8601 with an explicit offset; naive values are UTC as stored."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class GraphTask(BaseModel):
    """Graph-relevant shape of an extracted task (description is kept aside)."""
    model_config = ConfigDict(strict=True, extra="ignore")

    id: str = Field(description="Task identifier, unique within one transcript")
    priority: Priority = Field(description="Task priority")
    dependencies: list[str] = Field(
        default_factory=list,
        description="Ids of tasks this task waits on, in declared order"
    )

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id must not be empty")
        return value


class StatusTask(GraphTask):
    """Task annotated by the cycle detector."""
    status: TaskStatus = Field(description="'error' if the task sits on a dependency cycle")


class ProcessedTask(StatusTask):
    """Final task as returned to callers."""
    description: str = Field(default="", description="Human-readable task description")


class TranscriptResult(BaseModel):
    """Completed task graph for one transcript."""
    hash: str = Field(description="SHA-256 hex digest of the transcript text")
    transcript: str = Field(description="Original transcript text")
    created_at: datetime = Field(description="When the transcript was first processed")
    tasks: list[ProcessedTask] = Field(default_factory=list)

    def to_response(self) -> dict:
        """Public response shape (transcript text is not echoed back)."""
        return {
            "hash": self.hash,
            "createdAt": _utc_isoformat(self.created_at),
            "tasks": [task.model_dump(mode="json") for task in self.tasks],
        }


class TranscriptJob(BaseModel):
    """Asynchronous processing job, one per transcript hash."""
    id: str
    hash: str
    transcript: str
    status: JobStatus = "pending"
    result: Optional[TranscriptResult] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def to_response(self) -> dict:
        return {
            "jobId": self.id,
            "hash": self.hash,
            "status": self.status,
            "createdAt": _utc_isoformat(self.created_at),
            "updatedAt": _utc_isoformat(self.updated_at),
            "result": self.result.to_response() if self.result else None,
            "error": self.error,
        }
