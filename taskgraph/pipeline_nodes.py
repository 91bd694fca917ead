"""Individual nodes for the transcript processing workflow."""
import functools
import logging
from typing import Any, Callable, Dict, List

from .cycles import mark_cyclic_tasks
from .dependencies import sanitize_dependencies
from .errors import TaskGraphError
from .pipeline_models import ProcessedTask, StatusTask
from .pipeline_state import PipelineState
from .result_cache import ResultCache
from .storage import TranscriptStore
from .task_schema import validate_tasks

logger = logging.getLogger(__name__)

Node = Callable[[PipelineState], PipelineState]


def stage(name: str) -> Callable[[Node], Node]:
    """Record the stage on the state and log failures with hash and stage."""
    def decorator(node: Node) -> Node:
        @functools.wraps(node)
        def wrapper(state: PipelineState) -> PipelineState:
            state = {**state, "stage": name}
            try:
                return node(state)
            except TaskGraphError as e:
                e.details.setdefault("stage", name)
                logger.error("Pipeline failed at %s for %s: %s", name, state.get("transcript_hash"), e)
                raise
            except Exception:
                logger.exception("Unexpected failure at %s for %s", name, state.get("transcript_hash"))
                raise
        return wrapper
    return decorator


def make_cache_check_node(cache: ResultCache) -> Node:
    """
    [1] CACHE CHECK NODE
    Role: Return a previously computed result without touching storage
    """
    @stage("cache-check")
    def cache_check_node(state: PipelineState) -> PipelineState:
        result = cache.get(state["transcript_hash"])
        if result is not None:
            logger.info("CacheCheck: hit for %s", state["transcript_hash"])
        return {**state, "result": result}
    return cache_check_node


def make_store_check_node(store: TranscriptStore) -> Node:
    """
    [2] STORE CHECK NODE
    Role: Resolve an already persisted transcript without re-extracting
    """
    @stage("store-check")
    def store_check_node(state: PipelineState) -> PipelineState:
        result = store.get_by_hash(state["transcript_hash"])
        if result is not None:
            logger.info("StoreCheck: transcript %s found in database", state["transcript_hash"])
        else:
            logger.info("StoreCheck: processing new transcript %s", state["transcript_hash"])
        return {**state, "result": result}
    return store_check_node


def make_extractor_node(extract: Callable[[str], List[Any]]) -> Node:
    """
    [3] EXTRACTOR NODE
    Role: The only LLM call; produces unvalidated task records
    """
    @stage("extracting")
    def extractor_node(state: PipelineState) -> PipelineState:
        raw_tasks = extract(state["transcript"])
        logger.info("Extractor: %d raw task(s)", len(raw_tasks))
        return {**state, "raw_tasks": raw_tasks}
    return extractor_node


@stage("validating")
def validator_node(state: PipelineState) -> PipelineState:
    """
    [4] VALIDATOR NODE
    Role: Enforce id / priority / dependencies contract on every record
    """
    validated = validate_tasks(state.get("raw_tasks", []))
    return {**state, "validated_tasks": validated}


@stage("sanitizing")
def sanitizer_node(state: PipelineState) -> PipelineState:
    """
    [5] SANITIZER NODE
    Role: Drop dependencies that point outside the batch
    """
    sanitized = sanitize_dependencies(state.get("validated_tasks", []))
    return {**state, "sanitized_tasks": sanitized}


@stage("detecting-cycles")
def cycle_detector_node(state: PipelineState) -> PipelineState:
    """
    [6] CYCLE DETECTOR NODE
    Role: Mark tasks on a dependency cycle as 'error'; cycles are data, never failures
    """
    status_tasks = mark_cyclic_tasks(state.get("sanitized_tasks", []))
    errored = sum(1 for task in status_tasks if task.status == "error")
    logger.info("CycleDetector: %d task(s), %d on a cycle", len(status_tasks), errored)
    return {**state, "status_tasks": status_tasks}


def merge_descriptions(status_tasks: List[StatusTask], raw_tasks: List[Any]) -> List[ProcessedTask]:
    """Join cycle status back with the descriptions from the raw extractor output."""
    description_by_id: Dict[str, str] = {}
    for raw in raw_tasks:
        if isinstance(raw, dict) and isinstance(raw.get("id"), str):
            description = raw.get("description")
            description_by_id[raw["id"]] = description if isinstance(description, str) else ""

    return [
        ProcessedTask(**task.model_dump(), description=description_by_id.get(task.id, ""))
        for task in status_tasks
    ]


@stage("attaching-descriptions")
def description_node(state: PipelineState) -> PipelineState:
    """
    [7] DESCRIPTION NODE
    Role: Re-attach human-readable descriptions by task id
    """
    final_tasks = merge_descriptions(state.get("status_tasks", []), state.get("raw_tasks", []))
    return {**state, "final_tasks": final_tasks}


def make_persist_node(store: TranscriptStore) -> Node:
    """
    [8] PERSIST NODE
    Role: Write transcript and tasks as one atomic unit
    """
    @stage("persisting")
    def persist_node(state: PipelineState) -> PipelineState:
        result = store.save(state["transcript_hash"], state["transcript"], state.get("final_tasks", []))
        return {**state, "result": result}
    return persist_node


def make_cache_node(cache: ResultCache) -> Node:
    """
    [9] CACHE NODE
    Role: Remember the final result for repeated requests
    """
    @stage("cached")
    def cache_node(state: PipelineState) -> PipelineState:
        cache.put(state["transcript_hash"], state["result"])
        return state
    return cache_node


def route_on_result(state: PipelineState) -> str:
    """Short-circuit when a cache or store lookup produced a result."""
    return "hit" if state.get("result") is not None else "miss"
