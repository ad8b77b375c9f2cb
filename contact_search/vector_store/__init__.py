"""Vector store abstractions and the in-process backend.

Primary components:
- ``base``: abstract ``VectorStore`` interface and common exceptions.
- ``memory``: brute-force cosine ``InMemoryVectorStore``.
"""

from .base import (
    DimensionMismatchError,
    MissingEmbeddingError,
    VectorHit,
    VectorStore,
    VectorStoreError,
)
from .memory import InMemoryVectorStore, normalize_vector

__all__ = [
    "DimensionMismatchError",
    "InMemoryVectorStore",
    "MissingEmbeddingError",
    "VectorHit",
    "VectorStore",
    "VectorStoreError",
    "normalize_vector",
]
