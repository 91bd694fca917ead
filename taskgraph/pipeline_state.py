"""Graph state definition for the transcript processing workflow."""
from typing import Any, List, Optional, TypedDict

from .pipeline_models import GraphTask, ProcessedTask, StatusTask, TranscriptResult


class PipelineState(TypedDict, total=False):
    """State carried through one processing request."""
    transcript: str  # Raw transcript text, stored verbatim
    transcript_hash: str  # Idempotency key
    stage: str  # Last stage entered

    # Extraction output and its refinements
    raw_tasks: List[Any]  # Loosely-structured records from the extractor
    validated_tasks: List[GraphTask]
    sanitized_tasks: List[GraphTask]  # Closed graph: every dependency is a task id
    status_tasks: List[StatusTask]
    final_tasks: List[ProcessedTask]  # With descriptions re-attached

    result: Optional[TranscriptResult]  # Set on a cache/store hit or after persisting
