"""
DuckDB storage backend for files, keyword associations and keyword embeddings.
"""

from __future__ import annotations

import hashlib
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

import duckdb
import numpy as np

from ..errors import StorageFailure
from .base import FileKeywordRow, FileRecord, FrameKeywordRow, KeywordEmbedding


def _stable_id(prefix: str, value: str) -> str:
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()
    return f"{prefix}_{digest}"


def split_keyword_field(field: str) -> list[str]:
    """Split a comma-joined frame keyword field into trimmed, non-empty tokens."""
    return [token.strip() for token in field.split(",") if token.strip()]


def encode_vector(vector: Sequence[float] | np.ndarray) -> bytes:
    return np.asarray(vector, dtype="<f4").tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    if len(blob) % 4 != 0:
        raise StorageFailure(
            f"Corrupt embedding blob: {len(blob)} bytes is not a multiple of 4"
        )
    return np.frombuffer(blob, dtype="<f4")


class DuckDBStorage:
    """DuckDB-backed persistence for files, keywords and embeddings."""

    def __init__(
        self,
        db_path: str,
        *,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        self.read_only = read_only
        self._lock = threading.RLock()
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = duckdb.connect(self.db_path, read_only=read_only)
        except duckdb.Error as exc:
            raise StorageFailure(f"Cannot open database {self.db_path}: {exc}") from exc
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection once in-flight calls finish."""
        with self._lock:
            self._conn.close()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        # One connection is shared by searches and the background indexer.
        with self._lock:
            try:
                yield
            except duckdb.Error as exc:
                raise StorageFailure(f"{operation} failed: {exc}") from exc

    def initialize(self) -> None:
        with self._guard("initialize"):
            self._conn.execute("CREATE SEQUENCE IF NOT EXISTS file_keywords_seq;")
            self._conn.execute("CREATE SEQUENCE IF NOT EXISTS video_frame_keywords_seq;")
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS files (
                    id VARCHAR PRIMARY KEY,
                    filename VARCHAR NOT NULL,
                    filepath VARCHAR NOT NULL UNIQUE,
                    filetype VARCHAR NOT NULL,
                    size BIGINT,
                    mimetype VARCHAR,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS file_metadata (
                    file_id VARCHAR NOT NULL,
                    key VARCHAR NOT NULL,
                    value VARCHAR,
                    UNIQUE(file_id, key)
                );
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS file_keywords (
                    seq BIGINT DEFAULT nextval('file_keywords_seq'),
                    file_id VARCHAR NOT NULL,
                    keyword VARCHAR NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE(file_id, keyword)
                );
                """
            )
            # keyword may hold several comma-joined tokens for one frame.
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS video_frame_keywords (
                    seq BIGINT DEFAULT nextval('video_frame_keywords_seq'),
                    file_id VARCHAR NOT NULL,
                    keyword VARCHAR NOT NULL,
                    frame_index INTEGER NOT NULL,
                    timestamp_s DOUBLE,
                    confidence DOUBLE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS keyword_embeddings (
                    keyword VARCHAR PRIMARY KEY,
                    embedding BLOB NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );
                """
            )

    # ------------------------------------------------------------------
    # Files and metadata
    # ------------------------------------------------------------------

    def upsert_file(
        self,
        *,
        filename: str,
        filepath: str,
        filetype: str,
        size: int | None = None,
        mimetype: str | None = None,
    ) -> str:
        file_id = self.make_file_id(filepath)
        with self._guard("upsert_file"):
            self._conn.execute(
                """
                INSERT INTO files (id, filename, filepath, filetype, size, mimetype)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    filename = excluded.filename,
                    filetype = excluded.filetype,
                    size = excluded.size,
                    mimetype = excluded.mimetype
                """,
                [file_id, filename, filepath, filetype, size, mimetype],
            )
        return file_id

    def get_file(self, *, file_id: str) -> FileRecord | None:
        with self._guard("get_file"):
            row = self._conn.execute(
                """
                SELECT id, filename, filepath, filetype, size, mimetype, created_at
                FROM files
                WHERE id = ?
                LIMIT 1
                """,
                [file_id],
            ).fetchone()
        if row is None:
            return None
        return FileRecord(
            id=str(row[0]),
            filename=str(row[1]),
            filepath=str(row[2]),
            filetype=str(row[3]),
            size=int(row[4]) if row[4] is not None else None,
            mimetype=str(row[5]) if row[5] is not None else None,
            created_at=str(row[6]) if row[6] is not None else None,
        )

    def set_metadata(self, *, file_id: str, key: str, value: str) -> None:
        with self._guard("set_metadata"):
            self._conn.execute(
                """
                INSERT INTO file_metadata (file_id, key, value)
                VALUES (?, ?, ?)
                ON CONFLICT(file_id, key) DO UPDATE SET value = excluded.value
                """,
                [file_id, key, value],
            )

    def get_metadata(self, *, file_id: str) -> dict[str, str]:
        with self._guard("get_metadata"):
            rows = self._conn.execute(
                "SELECT key, value FROM file_metadata WHERE file_id = ? ORDER BY key",
                [file_id],
            ).fetchall()
        return {str(row[0]): str(row[1]) for row in rows if row[1] is not None}

    # ------------------------------------------------------------------
    # Keyword associations
    # ------------------------------------------------------------------

    def add_file_keywords(self, *, file_id: str, keywords: list[str]) -> int:
        with self._guard("add_file_keywords"):
            existing = set(self.get_file_keywords(file_id=file_id))
            new_keywords: list[str] = []
            for keyword in keywords:
                cleaned = keyword.strip()
                if cleaned and cleaned not in existing:
                    existing.add(cleaned)
                    new_keywords.append(cleaned)
            if not new_keywords:
                return 0
            self._conn.executemany(
                """
                INSERT INTO file_keywords (file_id, keyword)
                VALUES (?, ?)
                ON CONFLICT(file_id, keyword) DO NOTHING
                """,
                [(file_id, keyword) for keyword in new_keywords],
            )
        return len(new_keywords)

    def add_frame_keywords(self, *, rows: list[FrameKeywordRow]) -> int:
        if not rows:
            return 0
        with self._guard("add_frame_keywords"):
            self._conn.executemany(
                """
                INSERT INTO video_frame_keywords
                    (file_id, keyword, frame_index, timestamp_s, confidence)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        row.file_id,
                        row.keyword_field,
                        row.frame_index,
                        row.timestamp,
                        row.confidence,
                    )
                    for row in rows
                ],
            )
        return len(rows)

    def delete_frame_keywords(self, *, file_id: str) -> None:
        with self._guard("delete_frame_keywords"):
            self._conn.execute(
                "DELETE FROM video_frame_keywords WHERE file_id = ?", [file_id]
            )

    def get_file_keywords(self, *, file_id: str) -> list[str]:
        with self._guard("get_file_keywords"):
            rows = self._conn.execute(
                "SELECT keyword FROM file_keywords WHERE file_id = ? ORDER BY seq",
                [file_id],
            ).fetchall()
        return [str(row[0]) for row in rows]

    def get_frame_rows(self, *, file_id: str) -> list[FrameKeywordRow]:
        with self._guard("get_frame_rows"):
            rows = self._conn.execute(
                """
                SELECT file_id, frame_index, keyword, timestamp_s, confidence
                FROM video_frame_keywords
                WHERE file_id = ?
                ORDER BY frame_index, seq
                """,
                [file_id],
            ).fetchall()
        return [self._row_to_frame(row) for row in rows]

    def search_file_keywords(
        self, *, substring: str, asset_type: str | None = None
    ) -> list[FileKeywordRow]:
        sql = """
            SELECT fk.file_id, fk.keyword
            FROM file_keywords fk
            JOIN files f ON f.id = fk.file_id
            WHERE contains(lower(fk.keyword), ?)
        """
        params: list[Any] = [substring.lower()]
        if asset_type is not None:
            sql += " AND f.filetype = ?"
            params.append(asset_type)
        sql += " ORDER BY fk.file_id, fk.seq"
        with self._guard("search_file_keywords"):
            rows = self._conn.execute(sql, params).fetchall()
        return [FileKeywordRow(file_id=str(row[0]), keyword=str(row[1])) for row in rows]

    def search_frame_keywords(
        self, *, substring: str, asset_type: str | None = None
    ) -> list[FrameKeywordRow]:
        sql = """
            SELECT v.file_id, v.frame_index, v.keyword, v.timestamp_s, v.confidence
            FROM video_frame_keywords v
            JOIN files f ON f.id = v.file_id
            WHERE contains(lower(v.keyword), ?)
        """
        params: list[Any] = [substring.lower()]
        if asset_type is not None:
            sql += " AND f.filetype = ?"
            params.append(asset_type)
        sql += " ORDER BY v.file_id, v.frame_index, v.seq"
        with self._guard("search_frame_keywords"):
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_frame(row) for row in rows]

    def find_file_keywords_equal(
        self, *, keywords: list[str], asset_type: str | None = None
    ) -> list[FileKeywordRow]:
        lowered = sorted({keyword.lower() for keyword in keywords if keyword})
        if not lowered:
            return []
        placeholders = ", ".join(["?"] * len(lowered))
        sql = f"""
            SELECT fk.file_id, fk.keyword
            FROM file_keywords fk
            JOIN files f ON f.id = fk.file_id
            WHERE lower(fk.keyword) IN ({placeholders})
        """
        params: list[Any] = list(lowered)
        if asset_type is not None:
            sql += " AND f.filetype = ?"
            params.append(asset_type)
        sql += " ORDER BY fk.file_id, fk.seq"
        with self._guard("find_file_keywords_equal"):
            rows = self._conn.execute(sql, params).fetchall()
        return [FileKeywordRow(file_id=str(row[0]), keyword=str(row[1])) for row in rows]

    def list_frame_rows(self, *, asset_type: str | None = None) -> list[FrameKeywordRow]:
        sql = """
            SELECT v.file_id, v.frame_index, v.keyword, v.timestamp_s, v.confidence
            FROM video_frame_keywords v
            JOIN files f ON f.id = v.file_id
        """
        params: list[Any] = []
        if asset_type is not None:
            sql += " WHERE f.filetype = ?"
            params.append(asset_type)
        sql += " ORDER BY v.file_id, v.frame_index, v.seq"
        with self._guard("list_frame_rows"):
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_frame(row) for row in rows]

    def distinct_keywords(self) -> list[str]:
        with self._guard("distinct_keywords"):
            file_rows = self._conn.execute(
                "SELECT DISTINCT keyword FROM file_keywords ORDER BY keyword"
            ).fetchall()
            frame_rows = self._conn.execute(
                "SELECT DISTINCT keyword FROM video_frame_keywords ORDER BY keyword"
            ).fetchall()

        seen: set[str] = set()
        keywords: list[str] = []
        for row in file_rows:
            keyword = str(row[0]).strip()
            if keyword and keyword not in seen:
                seen.add(keyword)
                keywords.append(keyword)
        for row in frame_rows:
            for token in split_keyword_field(str(row[0])):
                if token not in seen:
                    seen.add(token)
                    keywords.append(token)
        return keywords

    # ------------------------------------------------------------------
    # Keyword embeddings
    # ------------------------------------------------------------------

    def has_keyword_embedding(self, *, keyword: str) -> bool:
        with self._guard("has_keyword_embedding"):
            row = self._conn.execute(
                "SELECT 1 FROM keyword_embeddings WHERE keyword = ? LIMIT 1",
                [keyword],
            ).fetchone()
        return row is not None

    def insert_keyword_embedding(
        self, *, keyword: str, vector: Sequence[float] | np.ndarray
    ) -> bool:
        with self._guard("insert_keyword_embedding"):
            if self.has_keyword_embedding(keyword=keyword):
                return False
            self._conn.execute(
                """
                INSERT INTO keyword_embeddings (keyword, embedding)
                VALUES (?, ?)
                ON CONFLICT(keyword) DO NOTHING
                """,
                [keyword, encode_vector(vector)],
            )
        return True

    def list_keyword_embeddings(self) -> list[KeywordEmbedding]:
        with self._guard("list_keyword_embeddings"):
            rows = self._conn.execute(
                """
                SELECT keyword, embedding, created_at
                FROM keyword_embeddings
                ORDER BY keyword
                """
            ).fetchall()
        return [
            KeywordEmbedding(
                keyword=str(row[0]),
                vector=decode_vector(bytes(row[1])),
                created_at=str(row[2]) if row[2] is not None else None,
            )
            for row in rows
        ]

    def count_keyword_embeddings(self) -> int:
        with self._guard("count_keyword_embeddings"):
            row = self._conn.execute("SELECT COUNT(*) FROM keyword_embeddings").fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def make_file_id(filepath: str) -> str:
        return _stable_id("file", filepath)

    @staticmethod
    def _row_to_frame(row: tuple[Any, ...]) -> FrameKeywordRow:
        return FrameKeywordRow(
            file_id=str(row[0]),
            frame_index=int(row[1]),
            keyword_field=str(row[2]),
            timestamp=float(row[3]) if row[3] is not None else None,
            confidence=float(row[4]) if row[4] is not None else None,
        )
