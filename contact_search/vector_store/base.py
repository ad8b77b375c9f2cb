"""Base vector store interface.

Defines the contract the search engine depends on, independent of the
backing implementation. Similarity is cosine: stored and query vectors are
unit-normalised and compared by dot product.

Methods are synchronous: searching an in-process index is pure CPU work and
never suspends, which also means a search can never observe a half-applied
mutation when the engine runs on a single event loop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence

from ..models import Document, DocumentType


@dataclass(frozen=True)
class VectorHit:
    """A stored document with its similarity to the query."""
    document: Document
    score: float


class VectorStore(ABC):
    """Abstract base class for vector stores.

    Implementations must keep every entry at one dimension, reject mismatched
    vectors without touching existing entries, and return hits sorted by
    descending similarity with ties in insertion order.
    """

    @property
    @abstractmethod
    def dimension(self) -> Optional[int]:
        """Configured vector length, or ``None`` until fixed."""

    @abstractmethod
    def initialize(self, dimension: int) -> None:
        """Fix the expected vector length. Idempotent for the same value."""

    @abstractmethod
    def add(self, document: Document) -> None:
        """Insert or replace one document.

        Raises ``DimensionMismatchError`` when the embedding length differs
        from the configured dimension.
        """

    @abstractmethod
    def add_batch(self, documents: Iterable[Document]) -> int:
        """Insert many documents, skipping invalid ones.

        Returns the number of documents stored.
        """

    @abstractmethod
    def search(
        self,
        query_embedding: Sequence[float],
        k: int = 10,
        document_types: Optional[Iterable[DocumentType]] = None
    ) -> List[VectorHit]:
        """Return the top ``k`` documents by cosine similarity."""

    @abstractmethod
    def remove(self, document_id: str) -> bool:
        """Remove a document. Returns ``True`` if it was present."""

    @abstractmethod
    def remove_contact(
        self,
        contact_id: str,
        document_types: Optional[Iterable[DocumentType]] = None
    ) -> int:
        """Remove every document of a contact. Returns the number removed."""

    @abstractmethod
    def get(self, document_id: str) -> Optional[Document]:
        """Fetch a stored document by id."""

    @abstractmethod
    def documents(self, document_types: Optional[Iterable[DocumentType]] = None) -> Iterator[Document]:
        """Iterate stored documents in insertion order."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored documents."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all documents; the dimension stays configured."""

    def __len__(self) -> int:
        return self.count()


class VectorStoreError(Exception):
    """Base exception for vector store operations."""
    pass


class DimensionMismatchError(VectorStoreError):
    """A vector's length differs from the store's dimension."""

    def __init__(self, expected: int, actual: int, context: str = "Embedding"):
        self.expected = expected
        self.actual = actual
        super().__init__(f"{context} dimension mismatch: expected {expected}, got {actual}")


class MissingEmbeddingError(VectorStoreError):
    """A document was offered to the store without an embedding."""
    pass
