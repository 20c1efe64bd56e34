"""
Persistent keyword → embedding store.
"""

from __future__ import annotations

from ..embeddings import EmbeddingProvider
from ..logging import get_logger
from ..storage import KeywordEmbedding, StorageBackend

logger = get_logger(__name__)


def dedupe_keywords(keywords: list[str]) -> list[str]:
    """Trim, drop empty strings and exact duplicates, keeping first-seen order."""
    seen: set[str] = set()
    unique: list[str] = []
    for keyword in keywords:
        cleaned = keyword.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            unique.append(cleaned)
    return unique


class KeywordEmbeddingStore:
    """Embed each distinct keyword once and keep the vector forever.

    Keys are exact strings, so ``"AI"`` and ``"ai"`` are stored separately.
    """

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: EmbeddingProvider,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider

    def store(self, keyword: str) -> bool:
        """Embed and persist *keyword* unless it is blank or already stored.

        The key is trimmed the same way ``store_many`` trims its batch.
        """
        cleaned = dedupe_keywords([keyword])
        if not cleaned:
            return False
        key = cleaned[0]
        if self.storage.has_keyword_embedding(keyword=key):
            return False
        vector = self.embedding_provider.embed(key)
        return self.storage.insert_keyword_embedding(keyword=key, vector=vector)

    def store_many(self, keywords: list[str]) -> int:
        """Store each unique keyword in order; returns how many rows were written."""
        unique = dedupe_keywords(keywords)
        missing = [k for k in unique if not self.storage.has_keyword_embedding(keyword=k)]
        written = 0
        if missing:
            vectors = self.embedding_provider.embed_many(missing)
            for keyword, vector in zip(missing, vectors):
                if self.storage.insert_keyword_embedding(keyword=keyword, vector=vector):
                    written += 1
        logger.info(
            "Stored keyword embeddings",
            extra={"keyword_count": len(unique), "written_count": written},
        )
        return written

    def get_all(self) -> list[KeywordEmbedding]:
        return self.storage.list_keyword_embeddings()

    def count(self) -> int:
        return self.storage.count_keyword_embeddings()
