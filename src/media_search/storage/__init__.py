"""Storage backends for keyword search."""

from .base import (
    FileKeywordRow,
    FileRecord,
    FrameKeywordRow,
    KeywordEmbedding,
    StorageBackend,
)
from .duckdb import DuckDBStorage, split_keyword_field

__all__ = [
    "FileKeywordRow",
    "FileRecord",
    "FrameKeywordRow",
    "KeywordEmbedding",
    "StorageBackend",
    "DuckDBStorage",
    "split_keyword_field",
]
