"""In-process vector store with brute-force cosine search.

Documents live in an id-keyed ordered dict, so removal is O(1) and insertion
order is stable for tie-breaking. Search scans every vector (O(n*d)) against
a matrix snapshot that is rebuilt lazily after a mutation.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..models import Document, DocumentType
from .base import DimensionMismatchError, MissingEmbeddingError, VectorHit, VectorStore, VectorStoreError

logger = structlog.get_logger("contact_search.vector_store.memory")


def normalize_vector(vector: np.ndarray) -> np.ndarray:
    """Scale ``vector`` to unit length; the zero vector is returned unchanged."""
    norm = np.linalg.norm(vector)
    if norm == 0.0:
        return vector
    return vector / norm


@dataclass(frozen=True)
class _Snapshot:
    documents: Tuple[Document, ...]
    matrix: np.ndarray
    types: np.ndarray


class InMemoryVectorStore(VectorStore):
    """Vector store keeping unit-normalised embeddings in memory."""

    def __init__(self, dimension: Optional[int] = None):
        self._dimension: Optional[int] = None
        self._documents: Dict[str, Document] = {}
        self._vectors: Dict[str, np.ndarray] = {}
        self._snapshot: Optional[_Snapshot] = None
        if dimension is not None:
            self.initialize(dimension)

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def initialize(self, dimension: int) -> None:
        if dimension <= 0:
            raise VectorStoreError(f"Dimension must be positive, got {dimension}")
        if self._dimension is None:
            self._dimension = dimension
            logger.debug("Vector store dimension fixed", dimension=dimension)
        elif self._dimension != dimension:
            raise DimensionMismatchError(self._dimension, dimension, context="Index")

    def _to_vector(self, embedding: Sequence[float], context: str) -> np.ndarray:
        vector = np.asarray(embedding, dtype=np.float64)
        if vector.ndim != 1:
            raise VectorStoreError(f"{context} must be one-dimensional, got shape {vector.shape}")
        if self._dimension is not None and vector.shape[0] != self._dimension:
            raise DimensionMismatchError(self._dimension, vector.shape[0], context=context)
        return vector

    def add(self, document: Document) -> None:
        if document.embedding is None:
            raise MissingEmbeddingError(f"Document {document.id} has no embedding")

        vector = self._to_vector(document.embedding, "Embedding")
        if self._dimension is None:
            self.initialize(vector.shape[0])

        self._documents[document.id] = document
        self._vectors[document.id] = normalize_vector(vector)
        self._snapshot = None

    def add_batch(self, documents: Iterable[Document]) -> int:
        stored = 0
        for document in documents:
            try:
                self.add(document)
                stored += 1
            except VectorStoreError as e:
                logger.warning("Skipping invalid document", document_id=document.id, error=str(e))
        return stored

    def _get_snapshot(self) -> _Snapshot:
        if self._snapshot is None:
            documents = tuple(self._documents.values())
            self._snapshot = _Snapshot(
                documents=documents,
                matrix=np.vstack([self._vectors[doc.id] for doc in documents]),
                types=np.array([doc.document_type.value for doc in documents]),
            )
        return self._snapshot

    def search(
        self,
        query_embedding: Sequence[float],
        k: int = 10,
        document_types: Optional[Iterable[DocumentType]] = None
    ) -> List[VectorHit]:
        if not self._documents:
            return []

        query = normalize_vector(self._to_vector(query_embedding, "Query embedding"))
        if k <= 0:
            return []

        snapshot = self._get_snapshot()
        scores = snapshot.matrix @ query

        if document_types is not None:
            wanted = [doc_type.value for doc_type in document_types]
            candidates = np.flatnonzero(np.isin(snapshot.types, wanted))
        else:
            candidates = np.arange(len(snapshot.documents))

        # Stable sort keeps insertion order among equal scores
        order = candidates[np.argsort(-scores[candidates], kind="stable")][:k]
        return [VectorHit(document=snapshot.documents[i], score=float(scores[i])) for i in order]

    def remove(self, document_id: str) -> bool:
        if document_id not in self._documents:
            return False
        del self._documents[document_id]
        del self._vectors[document_id]
        self._snapshot = None
        return True

    def remove_contact(
        self,
        contact_id: str,
        document_types: Optional[Iterable[DocumentType]] = None
    ) -> int:
        wanted = set(document_types) if document_types is not None else None
        doomed = [
            doc.id for doc in self._documents.values()
            if doc.contact_id == contact_id and (wanted is None or doc.document_type in wanted)
        ]
        for document_id in doomed:
            self.remove(document_id)
        return len(doomed)

    def get(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)

    def documents(self, document_types: Optional[Iterable[DocumentType]] = None) -> Iterator[Document]:
        wanted = set(document_types) if document_types is not None else None
        for doc in list(self._documents.values()):
            if wanted is None or doc.document_type in wanted:
                yield doc

    def count(self) -> int:
        return len(self._documents)

    def clear(self) -> None:
        self._documents.clear()
        self._vectors.clear()
        self._snapshot = None
