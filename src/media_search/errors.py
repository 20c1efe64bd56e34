"""
Error hierarchy for keyword indexing and search.
"""


class MediaSearchError(Exception):
    """Base error for media search."""


class InvalidQuery(MediaSearchError, ValueError):
    """Query text or search parameters are invalid."""


class DimensionMismatch(MediaSearchError, ValueError):
    """Two embedding vectors have different lengths."""


class EmbeddingProviderFailure(MediaSearchError):
    """The embedding backend failed or timed out."""


class StorageFailure(MediaSearchError):
    """Reading or writing the keyword database failed."""
