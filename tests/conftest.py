from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import pytest

from media_search.config import SearchSettings
from media_search.embeddings import EmbeddingProvider
from media_search.service import SearchService
from media_search.storage import DuckDBStorage

DIM = 64
# Axes below this are reserved for vectors a test sets explicitly.
_FIRST_FREE_AXIS = 32


def unit(axis: int) -> list[float]:
    vector = [0.0] * DIM
    vector[axis] = 1.0
    return vector


def blend(weights: dict[int, float]) -> list[float]:
    vector = [0.0] * DIM
    for axis, weight in weights.items():
        vector[axis] = weight
    return vector


@dataclass
class _FakeEmbedding:
    values: list[float]


@dataclass
class _FakeEmbedResult:
    embeddings: list[_FakeEmbedding]


class FakeModels:
    """Mirrors ``client.models.embed_content`` with controllable vectors.

    Texts without an explicit vector get their own unused axis, so they are
    orthogonal to everything else.
    """

    def __init__(self) -> None:
        self.vectors: dict[str, list[float]] = {}
        self.calls: list[dict[str, Any]] = []
        self.fail: Exception | None = None
        self.delay_s: float = 0.0
        self.drop_last = False
        self._next_axis = _FIRST_FREE_AXIS

    def embed_content(
        self, *, model: str, contents: list[str], config: dict
    ) -> _FakeEmbedResult:
        self.calls.append({"model": model, "contents": list(contents), "config": config})
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.fail is not None:
            raise self.fail
        embeddings = [_FakeEmbedding(values=self._vector(text)) for text in contents]
        if self.drop_last:
            embeddings = embeddings[:-1]
        return _FakeEmbedResult(embeddings=embeddings)

    def _vector(self, text: str) -> list[float]:
        if text in self.vectors:
            return self.vectors[text]
        if text.casefold() in self.vectors:
            return self.vectors[text.casefold()]
        if self._next_axis >= DIM:
            raise RuntimeError("fake embedding space exhausted")
        self.vectors[text] = unit(self._next_axis)
        self._next_axis += 1
        return self.vectors[text]

    @property
    def embedded_texts(self) -> list[str]:
        return [text for call in self.calls for text in call["contents"]]


class FakeGenAIClient:
    def __init__(self) -> None:
        self.models = FakeModels()


@pytest.fixture
def fake_client() -> FakeGenAIClient:
    return FakeGenAIClient()


@pytest.fixture
def provider(fake_client: FakeGenAIClient) -> EmbeddingProvider:
    return EmbeddingProvider(client=fake_client, dim=DIM, batch_size=50)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "media.duckdb")


@pytest.fixture
def storage(db_path: str) -> Iterator[DuckDBStorage]:
    store = DuckDBStorage(db_path)
    yield store
    store.close()


@pytest.fixture
def service(
    storage: DuckDBStorage, provider: EmbeddingProvider
) -> Iterator[SearchService]:
    svc = SearchService(storage, provider, settings=SearchSettings())
    yield svc
    svc.close()


def add_file(
    storage: DuckDBStorage,
    filename: str,
    *,
    filetype: str = "image",
    keywords: list[str] | None = None,
    metadata: dict[str, str] | None = None,
) -> str:
    file_id = storage.upsert_file(
        filename=filename,
        filepath=f"/media/{filename}",
        filetype=filetype,
        size=1024,
        mimetype=None,
    )
    if keywords:
        storage.add_file_keywords(file_id=file_id, keywords=keywords)
    for key, value in (metadata or {}).items():
        storage.set_metadata(file_id=file_id, key=key, value=value)
    return file_id
