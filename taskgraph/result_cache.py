"""Process-local LRU cache of completed transcript results."""
import logging
import threading
from collections import OrderedDict
from typing import Optional

from .pipeline_models import TranscriptResult

logger = logging.getLogger(__name__)


class ResultCache:
    """
    Bounded map from transcript hash to completed result.

    Durable storage stays the source of truth; evicting an entry only costs one
    extra storage lookup on the next request for that hash.
    """

    def __init__(self, max_entries: int = 256):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, TranscriptResult]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, transcript_hash: str) -> Optional[TranscriptResult]:
        with self._lock:
            result = self._entries.get(transcript_hash)
            if result is not None:
                self._entries.move_to_end(transcript_hash)
            return result

    def put(self, transcript_hash: str, result: TranscriptResult) -> None:
        with self._lock:
            self._entries[transcript_hash] = result
            self._entries.move_to_end(transcript_hash)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached result %s", evicted)

    def __contains__(self, transcript_hash: str) -> bool:
        with self._lock:
            return transcript_hash in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
