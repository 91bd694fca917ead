"""Main LangGraph workflow for transcript-to-task-graph processing."""
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from langgraph.graph import END, StateGraph

import config

from .hashing import hash_transcript
from .pipeline_models import TranscriptResult
from .pipeline_nodes import (
    cycle_detector_node,
    description_node,
    make_cache_check_node,
    make_cache_node,
    make_extractor_node,
    make_persist_node,
    make_store_check_node,
    route_on_result,
    sanitizer_node,
    validator_node,
)
from .pipeline_state import PipelineState
from .result_cache import ResultCache
from .storage import TranscriptStore
from .task_extractor import TaskExtractor

logger = logging.getLogger(__name__)


def create_pipeline_graph(
    cache: ResultCache,
    store: TranscriptStore,
    extract: Callable[[str], List[Any]],
):
    """
    Create the LangGraph workflow for one processing request.

    Flow:
    CacheCheck --hit--> END
        |miss
    StoreCheck --hit--> Cache → END
        |miss
    Extractor → Validator → Sanitizer → CycleDetector
    → Descriptions → Persist → Cache → END
    """
    workflow = StateGraph(PipelineState)

    workflow.add_node("cache_check", make_cache_check_node(cache))
    workflow.add_node("store_check", make_store_check_node(store))
    workflow.add_node("extractor", make_extractor_node(extract))
    workflow.add_node("validator", validator_node)
    workflow.add_node("sanitizer", sanitizer_node)
    workflow.add_node("cycle_detector", cycle_detector_node)
    workflow.add_node("descriptions", description_node)
    workflow.add_node("persist", make_persist_node(store))
    workflow.add_node("cache", make_cache_node(cache))

    workflow.set_entry_point("cache_check")

    workflow.add_conditional_edges(
        "cache_check",
        route_on_result,
        {"hit": END, "miss": "store_check"},
    )
    workflow.add_conditional_edges(
        "store_check",
        route_on_result,
        {"hit": "cache", "miss": "extractor"},
    )

    workflow.add_edge("extractor", "validator")
    workflow.add_edge("validator", "sanitizer")
    workflow.add_edge("sanitizer", "cycle_detector")
    workflow.add_edge("cycle_detector", "descriptions")
    workflow.add_edge("descriptions", "persist")
    workflow.add_edge("persist", "cache")
    workflow.add_edge("cache", END)

    app = workflow.compile()
    logger.info("Pipeline workflow created successfully")
    return app


class _Lease:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class TranscriptPipeline:
    """
    Idempotent transcript processor.

    Requests for different hashes run independently. Requests for the same hash
    serialize on a per-hash lease, so only the first one extracts and persists;
    the others wait and then resolve through the cache or the store.
    """

    def __init__(
        self,
        store: TranscriptStore,
        extract: Callable[[str], List[Any]],
        cache: Optional[ResultCache] = None,
    ):
        self.store = store
        self.cache = cache if cache is not None else ResultCache(config.RESULT_CACHE_SIZE)
        self.graph = create_pipeline_graph(self.cache, store, extract)
        self._leases: Dict[str, _Lease] = {}
        self._leases_lock = threading.Lock()

    @contextmanager
    def _lease(self, transcript_hash: str) -> Iterator[None]:
        with self._leases_lock:
            lease = self._leases.get(transcript_hash)
            if lease is None:
                lease = self._leases[transcript_hash] = _Lease()
            lease.holders += 1

        lease.lock.acquire()
        try:
            yield
        finally:
            lease.lock.release()
            with self._leases_lock:
                lease.holders -= 1
                if lease.holders == 0:
                    del self._leases[transcript_hash]

    def process(self, transcript: str) -> TranscriptResult:
        """
        Run a transcript through the pipeline.

        Args:
            transcript: Raw meeting transcript

        Returns:
            The stored task graph for this transcript
        """
        transcript_hash = hash_transcript(transcript)

        cached = self.cache.get(transcript_hash)
        if cached is not None:
            logger.info("Transcript cache hit %s", transcript_hash)
            return cached

        with self._lease(transcript_hash):
            initial_state: PipelineState = {
                "transcript": transcript,
                "transcript_hash": transcript_hash,
                "stage": "received",
                "result": None,
            }
            final_state = self.graph.invoke(initial_state)

        result = final_state["result"]
        logger.info("Transcript %s done with %d task(s)", transcript_hash, len(result.tasks))
        return result

    def close(self) -> None:
        self.store.close()


def build_pipeline(
    database_url: Optional[str] = None,
    extract: Optional[Callable[[str], List[Any]]] = None,
    cache_size: Optional[int] = None,
) -> TranscriptPipeline:
    """Construct store, cache and extractor from configuration."""
    store = TranscriptStore(database_url or config.DATABASE_URL)
    cache = ResultCache(cache_size or config.RESULT_CACHE_SIZE)
    return TranscriptPipeline(store, extract or TaskExtractor(), cache)
