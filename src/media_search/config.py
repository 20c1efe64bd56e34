"""
Configuration helpers for the keyword database and search defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_DB_PATH = "~/.media_search/metadata.duckdb"
ENV_DB_PATH = "MEDIA_SEARCH_DB_PATH"
ENV_EMBED_TIMEOUT = "MEDIA_SEARCH_EMBED_TIMEOUT_S"
ENV_STORAGE_TIMEOUT = "MEDIA_SEARCH_STORAGE_TIMEOUT_S"

ASSET_TYPES: frozenset[str] = frozenset(
    {"video", "audio", "image", "document", "text"}
)


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) MEDIA_SEARCH_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def _parse_timeout(value: str | None) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return max(float(value), 0.0)
    except ValueError:
        return 0.0


@dataclass(frozen=True)
class SearchSettings:
    """Defaults and limits applied to every search call."""

    default_top_k: int = 10
    default_min_similarity: float = 0.3
    max_top_k: int = 100
    semantic_overfetch: int = 2
    embed_timeout_s: float = 0.0
    storage_timeout_s: float = 0.0

    @classmethod
    def from_env(cls) -> SearchSettings:
        return cls(
            embed_timeout_s=_parse_timeout(os.getenv(ENV_EMBED_TIMEOUT)),
            storage_timeout_s=_parse_timeout(os.getenv(ENV_STORAGE_TIMEOUT)),
        )
