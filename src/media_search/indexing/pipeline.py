"""
Keyword indexing: synchronous full passes and a background queue.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from ..logging import get_logger
from ..search.keyword_store import KeywordEmbeddingStore, dedupe_keywords
from ..storage import StorageBackend

logger = get_logger(__name__)


@dataclass(frozen=True)
class IndexingResult:
    """Summary output for an indexing run."""

    keywords_seen: int
    embeddings_written: int


@dataclass(frozen=True)
class IndexStats:
    """How much of the keyword vocabulary has an embedding."""

    total_keywords: int
    indexed_keywords: int


def index_stats(storage: StorageBackend) -> IndexStats:
    """Count the keyword vocabulary and stored vectors; needs no embedding backend."""
    return IndexStats(
        total_keywords=len(storage.distinct_keywords()),
        indexed_keywords=storage.count_keyword_embeddings(),
    )


class KeywordIndexer:
    """Embed every keyword attached to a file or a video frame."""

    def __init__(
        self,
        storage: StorageBackend,
        keyword_store: KeywordEmbeddingStore,
    ) -> None:
        self.storage = storage
        self.keyword_store = keyword_store

    def index_all(self) -> IndexingResult:
        started = time.perf_counter()
        keywords = self.storage.distinct_keywords()
        written = self.keyword_store.store_many(keywords)
        logger.info(
            "Indexed all keywords",
            extra={
                "keyword_count": len(keywords),
                "written_count": written,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return IndexingResult(keywords_seen=len(keywords), embeddings_written=written)

    def index_keywords(self, keywords: list[str]) -> int:
        return self.keyword_store.store_many(keywords)

    def stats(self) -> IndexStats:
        return index_stats(self.storage)


class BackgroundIndexer:
    """Queue keyword batches for embedding on a single worker thread.

    Each ``submit`` returns a ``Future`` that resolves to the number of rows
    written or carries the exception. Searches running before a future
    resolves may not see its keywords in semantic results.
    """

    def __init__(self, indexer: KeywordIndexer) -> None:
        self.indexer = indexer
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="keyword-indexer"
        )
        self._pending: set[Future[int]] = set()
        self._lock = threading.Lock()

    def submit(self, keywords: list[str]) -> Future[int]:
        batch = dedupe_keywords(keywords)
        future = self._executor.submit(self._run, batch)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every submitted batch has finished; False on timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, *, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)

    def _run(self, batch: list[str]) -> int:
        try:
            return self.indexer.index_keywords(batch)
        except Exception as exc:
            logger.error(
                "Background keyword indexing failed",
                extra={"keyword_count": len(batch), "error_message": str(exc)},
            )
            raise

    def _on_done(self, future: Future[int]) -> None:
        with self._lock:
            self._pending.discard(future)
