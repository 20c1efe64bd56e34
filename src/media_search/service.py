"""
Composition root wiring storage, embeddings, search and indexing together.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Literal

from .config import SearchSettings, resolve_db_path
from .embeddings import EmbeddingProvider
from .indexing import (
    AssetIngestor,
    BackgroundIndexer,
    IngestedAsset,
    IndexingResult,
    IndexStats,
    KeywordIndexer,
)
from .models import AssetManifest
from .search import KeywordEmbeddingStore, SearchOrchestrator, SearchResult, SimilarKeyword
from .storage import DuckDBStorage, StorageBackend

IndexMode = Literal["sync", "background", "none"]


class SearchService:
    """Build every component explicitly for one storage/provider pair."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: EmbeddingProvider,
        *,
        settings: SearchSettings | None = None,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider
        self.settings = settings or SearchSettings.from_env()
        self.keyword_store = KeywordEmbeddingStore(storage, embedding_provider)
        self.orchestrator = SearchOrchestrator(
            storage, self.keyword_store, settings=self.settings
        )
        self.indexer = KeywordIndexer(storage, self.keyword_store)
        self.ingestor = AssetIngestor(storage)
        self._background: BackgroundIndexer | None = None

    @classmethod
    def from_db_path(
        cls,
        db_path: str | None = None,
        *,
        embedding_provider: EmbeddingProvider | None = None,
        settings: SearchSettings | None = None,
    ) -> SearchService:
        storage = DuckDBStorage(resolve_db_path(db_path))
        try:
            provider = embedding_provider or EmbeddingProvider()
        except ValueError:
            storage.close()
            raise
        return cls(storage, provider, settings=settings)

    def __enter__(self) -> SearchService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Search

    def search(
        self,
        query: str,
        *,
        top_k: int | None = None,
        min_similarity: float | None = None,
        asset_type: str | None = None,
    ) -> list[SearchResult]:
        return self.orchestrator.semantic_search(
            query,
            top_k=top_k,
            min_similarity=min_similarity,
            asset_type=asset_type,
        )

    def find_similar_keywords(
        self,
        query: str,
        *,
        top_k: int | None = None,
        min_similarity: float | None = None,
    ) -> list[SimilarKeyword]:
        return self.orchestrator.find_similar_keywords(
            query, top_k=top_k, min_similarity=min_similarity
        )

    # Indexing

    def index_all(self) -> IndexingResult:
        return self.indexer.index_all()

    def stats(self) -> IndexStats:
        return self.indexer.stats()

    @property
    def background(self) -> BackgroundIndexer:
        if self._background is None:
            self._background = BackgroundIndexer(self.indexer)
        return self._background

    def ingest(
        self,
        assets: list[AssetManifest],
        *,
        index: IndexMode = "sync",
    ) -> tuple[list[IngestedAsset], Future[int] | int | None]:
        """Ingest assets and embed their keywords.

        ``index="sync"`` returns the number of embeddings written,
        ``"background"`` returns the pending future and ``"none"`` skips
        embedding entirely.
        """
        ingested = self.ingestor.ingest_many(assets)
        keywords = [keyword for item in ingested for keyword in item.keywords]
        if index == "none":
            return ingested, None
        if index == "background":
            return ingested, self.background.submit(keywords)
        return ingested, self.indexer.index_keywords(keywords)

    def close(self) -> None:
        if self._background is not None:
            self._background.shutdown()
            self._background = None
        self.storage.close()
