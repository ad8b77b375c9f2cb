"""Tests for vector store functionality."""

import numpy as np
import pytest

from contact_search.models import ConversationDocument, DocumentType, SummaryDocument, TagDocument
from contact_search.vector_store import (
    DimensionMismatchError,
    InMemoryVectorStore,
    MissingEmbeddingError,
    VectorStoreError,
    normalize_vector,
)


def tag_doc(contact_id, embedding, content="tags: x"):
    return TagDocument(id=f"tag:{contact_id}", contact_id=contact_id, content=content, embedding=embedding)


def conversation_doc(conversation_id, contact_id, embedding):
    return ConversationDocument(
        id=f"conversation:{conversation_id}",
        contact_id=contact_id,
        conversation_id=conversation_id,
        content="transcript",
        embedding=embedding,
    )


@pytest.fixture
def store():
    store = InMemoryVectorStore()
    store.add(tag_doc("c1", [1.0, 0.0, 0.0]))
    store.add(tag_doc("c2", [0.8, 0.6, 0.0]))
    store.add(tag_doc("c3", [0.0, 0.0, 1.0]))
    return store


def test_self_similarity():
    """Test a stored vector matches itself with similarity 1."""
    store = InMemoryVectorStore()
    embedding = [0.3, -1.2, 4.5, 0.01]
    store.add(tag_doc("c1", embedding))

    hits = store.search(embedding, k=1)
    assert len(hits) == 1
    assert abs(hits[0].score - 1.0) < 1e-6


def test_dimension_fixed_by_first_insert(store):
    """Test the first document fixes the dimension."""
    assert store.dimension == 3
    assert store.count() == 3


def test_wrong_length_insert_rejected(store):
    """Test a mismatched insert fails and leaves the store unchanged."""
    with pytest.raises(DimensionMismatchError) as exc_info:
        store.add(tag_doc("c9", [1.0, 0.0]))

    assert exc_info.value.expected == 3
    assert exc_info.value.actual == 2
    assert store.count() == 3
    assert store.get("tag:c9") is None


def test_wrong_length_query_rejected(store):
    """Test a mismatched query fails."""
    with pytest.raises(DimensionMismatchError):
        store.search([1.0, 0.0, 0.0, 0.0])


def test_initialize():
    """Test explicit dimension configuration."""
    store = InMemoryVectorStore(dimension=4)
    store.initialize(4)
    with pytest.raises(DimensionMismatchError):
        store.initialize(8)
    with pytest.raises(VectorStoreError):
        InMemoryVectorStore(dimension=0)
    with pytest.raises(DimensionMismatchError):
        store.add(tag_doc("c1", [1.0, 0.0, 0.0]))


def test_missing_embedding_rejected():
    store = InMemoryVectorStore()
    with pytest.raises(MissingEmbeddingError):
        store.add(tag_doc("c1", None))
    assert store.count() == 0


def test_search_sorted_and_bounded(store):
    """Test results are at most k and sorted by similarity."""
    hits = store.search([1.0, 0.1, 0.0], k=2)
    assert len(hits) == 2
    assert [hit.document.contact_id for hit in hits] == ["c1", "c2"]
    assert hits[0].score >= hits[1].score

    all_hits = store.search([1.0, 0.1, 0.0], k=10)
    scores = [hit.score for hit in all_hits]
    assert len(all_hits) == 3
    assert scores == sorted(scores, reverse=True)


def test_search_ties_keep_insertion_order():
    store = InMemoryVectorStore()
    for contact_id in ("a", "b", "c"):
        store.add(tag_doc(contact_id, [1.0, 1.0]))

    hits = store.search([1.0, 1.0], k=3)
    assert [hit.document.contact_id for hit in hits] == ["a", "b", "c"]


def test_search_empty_store_and_zero_k(store):
    assert InMemoryVectorStore().search([1.0, 0.0]) == []
    assert store.search([1.0, 0.0, 0.0], k=0) == []


def test_zero_query_scores_zero(store):
    """Test the zero vector is similar to nothing."""
    hits = store.search([0.0, 0.0, 0.0], k=3)
    assert all(hit.score == 0.0 for hit in hits)


def test_search_document_type_filter(store):
    store.add(conversation_doc("conv-1", "c4", [1.0, 0.0, 0.0]))

    hits = store.search([1.0, 0.0, 0.0], k=10, document_types=[DocumentType.CONVERSATION])
    assert [hit.document.id for hit in hits] == ["conversation:conv-1"]

    hits = store.search([1.0, 0.0, 0.0], k=10, document_types=[DocumentType.TAG])
    assert all(hit.document.document_type is DocumentType.TAG for hit in hits)
    assert len(hits) == 3


def test_readd_replaces_in_place(store):
    """Test adding an existing id replaces the entry."""
    store.add(tag_doc("c1", [0.0, 0.0, 1.0], content="tags: new"))
    assert store.count() == 3
    assert store.get("tag:c1").content == "tags: new"
    assert store.search([0.0, 0.0, 1.0], k=1)[0].document.contact_id in ("c1", "c3")


def test_remove(store):
    """Test removal of known and unknown ids."""
    assert store.remove("tag:unknown") is False
    assert store.count() == 3

    assert store.remove("tag:c1") is True
    assert store.count() == 2
    assert all(hit.document.contact_id != "c1" for hit in store.search([1.0, 0.0, 0.0], k=10))


def test_remove_contact(store):
    store.add(conversation_doc("conv-1", "c1", [1.0, 0.0, 0.0]))
    store.add(SummaryDocument(
        id="summary:conv-1", contact_id="c1", conversation_id="conv-1",
        content="summary", embedding=[1.0, 0.0, 0.0],
    ))

    assert store.remove_contact("c1", document_types=[DocumentType.SUMMARY]) == 1
    assert store.remove_contact("c1") == 2
    assert store.remove_contact("c1") == 0
    assert store.count() == 2


def test_add_batch_skips_invalid(store):
    """Test batch insert stores valid documents and skips the rest."""
    stored = store.add_batch([
        tag_doc("c5", [0.0, 1.0, 0.0]),
        tag_doc("c6", [0.0, 1.0]),
        tag_doc("c7", None),
    ])
    assert stored == 1
    assert store.count() == 4


def test_documents_and_clear(store):
    assert [doc.contact_id for doc in store.documents()] == ["c1", "c2", "c3"]
    assert len(store) == 3

    store.clear()
    assert store.count() == 0
    assert store.dimension == 3


def test_normalize_vector():
    np.testing.assert_allclose(normalize_vector(np.array([3.0, 4.0])), [0.6, 0.8])
    np.testing.assert_array_equal(normalize_vector(np.zeros(3)), np.zeros(3))
