"""
Durable storage for processed transcripts using SQLAlchemy.

One row per transcript (unique hash) and one row per task, keyed by
(transcript_id, task id) so LLM-generated ids only need to be unique within
their own transcript.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text, create_engine, event, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import PersistenceError
from .pipeline_models import ProcessedTask, TranscriptResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class TranscriptRow(Base):
    """A processed transcript."""

    __tablename__ = "transcripts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    tasks: Mapped[List["TaskRow"]] = relationship(
        back_populates="transcript",
        cascade="all, delete-orphan",
        order_by="TaskRow.position",
        passive_deletes=True,
    )


class TaskRow(Base):
    """A task extracted from a transcript."""

    __tablename__ = "tasks"

    transcript_id: Mapped[str] = mapped_column(
        ForeignKey("transcripts.id", ondelete="CASCADE"), primary_key=True
    )
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    priority: Mapped[str] = mapped_column(Enum("low", "medium", "high", name="task_priority"), nullable=False)
    dependencies: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # "blocked" is reserved; the pipeline only writes "ready" and "error".
    status: Mapped[str] = mapped_column(Enum("ready", "blocked", "error", name="task_status"), nullable=False)

    transcript: Mapped[TranscriptRow] = relationship(back_populates="tasks")


def _to_result(row: TranscriptRow) -> TranscriptResult:
    return TranscriptResult(
        hash=row.hash,
        transcript=row.content,
        created_at=row.created_at,
        tasks=[
            ProcessedTask(
                id=task.id,
                description=task.description,
                priority=task.priority,
                dependencies=list(task.dependencies or []),
                status="error" if task.status == "error" else "ok",
            )
            for task in row.tasks
        ],
    )


class TranscriptStore:
    """Transcript repository backed by any SQLAlchemy database URL."""

    def __init__(self, database_url: str, echo: bool = False):
        engine_kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(database_url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.info("Transcript store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    def get_by_hash(self, transcript_hash: str) -> Optional[TranscriptResult]:
        """Load a stored transcript with its tasks, or None."""
        try:
            with self._sessions() as session:
                row = session.scalars(
                    select(TranscriptRow)
                    .where(TranscriptRow.hash == transcript_hash)
                    .options(selectinload(TranscriptRow.tasks))
                ).first()
                return _to_result(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to read transcript", {"hash": transcript_hash}) from e

    def save(self, transcript_hash: str, content: str, tasks: List[ProcessedTask]) -> TranscriptResult:
        """
        Insert a transcript and all of its tasks in one transaction.

        If another writer stored the same hash first, the unique constraint
        rejects this insert and the winner's record is returned instead.

        Args:
            transcript_hash: Hash of the transcript text
            content: Raw transcript text
            tasks: Annotated tasks in extraction order

        Returns:
            The stored result
        """
        row = TranscriptRow(hash=transcript_hash, content=content, created_at=_utcnow())
        row.tasks = [
            TaskRow(
                id=task.id,
                position=position,
                description=task.description,
                priority=task.priority,
                dependencies=list(task.dependencies),
                status="error" if task.status == "error" else "ready",
            )
            for position, task in enumerate(tasks)
        ]

        try:
            with self._sessions.begin() as session:
                session.add(row)
        except IntegrityError as e:
            existing = self.get_by_hash(transcript_hash)
            if existing is None:
                logger.error("Integrity error storing transcript %s: %s", transcript_hash, e.orig)
                raise PersistenceError("Failed to store transcript", {"hash": transcript_hash}) from e
            logger.warning("Transcript %s already stored by a concurrent writer", transcript_hash)
            return existing
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to store transcript", {"hash": transcript_hash}) from e

        logger.info("Stored transcript %s with %d task(s)", transcript_hash, len(tasks))
        return _to_result(row)

    def delete(self, transcript_hash: str) -> bool:
        """Delete a transcript and, by cascade, its tasks."""
        try:
            with self._sessions.begin() as session:
                row = session.scalars(select(TranscriptRow).where(TranscriptRow.hash == transcript_hash)).first()
                if row is None:
                    return False
                session.delete(row)
                return True
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to delete transcript", {"hash": transcript_hash}) from e

    def count_tasks(self, transcript_hash: Optional[str] = None) -> int:
        """Number of stored task rows, optionally for one transcript."""
        query = select(func.count()).select_from(TaskRow)
        if transcript_hash is not None:
            query = query.join(TranscriptRow).where(TranscriptRow.hash == transcript_hash)
        try:
            with self._sessions() as session:
                return session.scalar(query)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to count tasks", {"hash": transcript_hash}) from e

    def close(self) -> None:
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
