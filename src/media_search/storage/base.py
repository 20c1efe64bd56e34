"""
Storage interfaces and data models for keyword persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np


@dataclass(frozen=True)
class FileRecord:
    """An ingested asset."""

    id: str
    filename: str
    filepath: str
    filetype: str
    size: int | None = None
    mimetype: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class FileKeywordRow:
    """One atomic keyword attached to a file."""

    file_id: str
    keyword: str


@dataclass(frozen=True)
class FrameKeywordRow:
    """A frame keyword row; ``keyword_field`` may hold comma-joined tokens."""

    file_id: str
    frame_index: int
    keyword_field: str
    timestamp: float | None = None
    confidence: float | None = None


@dataclass(frozen=True, eq=False)
class KeywordEmbedding:
    """A stored keyword vector (float32, as persisted)."""

    keyword: str
    vector: np.ndarray
    created_at: str | None = None


class StorageBackend(Protocol):
    """Protocol for persistence operations used by indexing and search."""

    def initialize(self) -> None:
        """Initialize required tables/indexes."""

    def close(self) -> None:
        """Release the underlying connection."""

    # Files and metadata

    def upsert_file(
        self,
        *,
        filename: str,
        filepath: str,
        filetype: str,
        size: int | None = None,
        mimetype: str | None = None,
    ) -> str:
        """Insert or update a file by path and return its id."""

    def get_file(self, *, file_id: str) -> FileRecord | None:
        """Get a file by id."""

    def set_metadata(self, *, file_id: str, key: str, value: str) -> None:
        """Insert or replace one metadata entry."""

    def get_metadata(self, *, file_id: str) -> dict[str, str]:
        """Return all metadata entries for a file."""

    # Keyword associations

    def add_file_keywords(self, *, file_id: str, keywords: list[str]) -> int:
        """Attach keywords to a file, ignoring existing pairs."""

    def add_frame_keywords(self, *, rows: list[FrameKeywordRow]) -> int:
        """Append frame keyword rows."""

    def delete_frame_keywords(self, *, file_id: str) -> None:
        """Remove every frame row of a file."""

    def get_file_keywords(self, *, file_id: str) -> list[str]:
        """Return a file's keywords in insertion order."""

    def get_frame_rows(self, *, file_id: str) -> list[FrameKeywordRow]:
        """Return every frame row for a file ordered by frame index."""

    def search_file_keywords(
        self, *, substring: str, asset_type: str | None = None
    ) -> list[FileKeywordRow]:
        """File keywords whose lowercase text contains *substring*."""

    def search_frame_keywords(
        self, *, substring: str, asset_type: str | None = None
    ) -> list[FrameKeywordRow]:
        """Frame rows whose lowercase field contains *substring*."""

    def find_file_keywords_equal(
        self, *, keywords: list[str], asset_type: str | None = None
    ) -> list[FileKeywordRow]:
        """File keywords equal (case-insensitively) to one of *keywords*."""

    def list_frame_rows(self, *, asset_type: str | None = None) -> list[FrameKeywordRow]:
        """Every frame row, optionally scoped by the owning file's type."""

    def distinct_keywords(self) -> list[str]:
        """Distinct file keywords and split frame tokens."""

    # Embeddings

    def has_keyword_embedding(self, *, keyword: str) -> bool:
        """Return True if an embedding exists for the exact keyword."""

    def insert_keyword_embedding(
        self, *, keyword: str, vector: Sequence[float] | np.ndarray
    ) -> bool:
        """Insert an embedding; return False when the keyword already exists."""

    def list_keyword_embeddings(self) -> list[KeywordEmbedding]:
        """Return all stored embeddings."""

    def count_keyword_embeddings(self) -> int:
        """Count stored embeddings."""
