"""Index maintenance: tag reindexing, conversation documents, full rebuilds.

Execution model
- Writers (reindex, rebuild, conversation hooks) are serialized by one
  ``asyncio.Lock``; searches never take it
- Full rebuilds fill a fresh store off to the side and swap it in when done,
  so queries keep seeing the previous complete index meanwhile
- An embedding failure skips that document and the pass carries on
"""

import asyncio
import dataclasses
import time
from typing import Callable, Dict, Iterable, List, Optional

import structlog

from ..common.logging import log_performance
from ..common.metrics import MetricsCollector
from ..directory import ContactDirectory, ConversationStore
from ..embeddings.cache import CachedEmbedder
from ..models import (
    Conversation,
    ConversationDocument,
    Document,
    DocumentType,
    SummaryDocument,
    TagDocument,
    conversation_document_id,
    summary_document_id,
    tag_document_id,
)
from ..vector_store.base import VectorStore
from ..vector_store.memory import InMemoryVectorStore

logger = structlog.get_logger("contact_search.indexing")

CONVERSATION_TYPES = (DocumentType.CONVERSATION, DocumentType.SUMMARY)


def conversation_documents(conversation: Conversation) -> List[Document]:
    """Transcript and summary documents for a conversation; blank texts are skipped."""
    documents: List[Document] = []
    if conversation.transcription.strip():
        documents.append(ConversationDocument(
            id=conversation_document_id(conversation.id),
            contact_id=conversation.contact_id,
            conversation_id=conversation.id,
            content=conversation.transcription.strip(),
            created_at=conversation.created_at,
        ))
    if conversation.summary.strip():
        documents.append(SummaryDocument(
            id=summary_document_id(conversation.id),
            contact_id=conversation.contact_id,
            conversation_id=conversation.id,
            content=conversation.summary.strip(),
        ))
    return documents


class IndexMaintainer:
    """Keeps the vector index in step with contacts and conversations."""

    def __init__(
        self,
        embedder: CachedEmbedder,
        directory: ContactDirectory,
        conversations: Optional[ConversationStore] = None,
        store_factory: Callable[[Optional[int]], VectorStore] = InMemoryVectorStore,
        metrics: Optional[MetricsCollector] = None,
        max_concurrency: int = 8
    ):
        self.embedder = embedder
        self.directory = directory
        self.conversations = conversations
        self.store_factory = store_factory
        self.metrics = metrics
        self.vector_store: VectorStore = store_factory(None)
        self._lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrency)

    def initialize(self, dimension: Optional[int] = None) -> None:
        """Fix the vector dimension up front when it is known from configuration."""
        if dimension is not None:
            self.vector_store.initialize(dimension)

    async def _embed_document(self, document: Document) -> Optional[Document]:
        async with self._semaphore:
            try:
                embedding = await self.embedder.embed(document.content)
            except Exception as e:
                logger.warning(
                    "Failed to embed document, skipping",
                    document_id=document.id,
                    contact_id=document.contact_id,
                    error=str(e)
                )
                if self.metrics:
                    self.metrics.record_degradation("indexing")
                return None
        return dataclasses.replace(document, embedding=embedding)

    async def embed_documents(self, documents: Iterable[Document]) -> List[Document]:
        """Embed documents concurrently; failures are logged and dropped."""
        embedded = await asyncio.gather(*(self._embed_document(doc) for doc in documents))
        return [doc for doc in embedded if doc is not None]

    def _refresh_gauge(self) -> None:
        if self.metrics:
            self.metrics.set_indexed_documents(self.vector_store.count())

    async def reindex_contact_tags(self, contact_id: str, tags: Iterable[str]) -> bool:
        """Replace a contact's tag document.

        Returns ``True`` when a new tag document was indexed, ``False`` when
        the tag set is empty. The new text is embedded before the index is
        touched, so a provider failure propagates with the previous tag
        document still in place.
        """
        async with self._lock:
            document = TagDocument.for_contact(contact_id, list(tags))
            if not document.content:
                removed = self.vector_store.remove(tag_document_id(contact_id))
                logger.info("Contact has no tags, tag document dropped", contact_id=contact_id, removed=removed)
                self._refresh_gauge()
                return False

            embedding = await self.embedder.embed(document.content)
            self.vector_store.remove(document.id)
            self.vector_store.add(dataclasses.replace(document, embedding=embedding))
            self._refresh_gauge()

        logger.info("Contact tags reindexed", contact_id=contact_id, tag_count=len(document.tags))
        return True

    async def _tag_documents(self) -> List[Document]:
        contacts = await self.directory.list_all()
        pending = [TagDocument.for_contact(c.id, c.tags) for c in contacts]
        return await self.embed_documents(doc for doc in pending if doc.content)

    async def _conversation_documents(self) -> List[Document]:
        if self.conversations is None:
            return []
        pending: List[Document] = []
        for conversation in await self.conversations.list_all():
            pending.extend(conversation_documents(conversation))
        return await self.embed_documents(pending)

    def _swap(self, store: VectorStore) -> None:
        self.vector_store = store
        self._refresh_gauge()

    async def rebuild_tag_index(self) -> int:
        """Regenerate every tag document from the directory.

        Conversation and summary documents are carried over untouched.
        Returns the number of tag documents indexed.
        """
        start_time = time.time()
        async with self._lock:
            tag_documents = await self._tag_documents()
            store = self.store_factory(self.vector_store.dimension)
            store.add_batch(self.vector_store.documents(CONVERSATION_TYPES))
            indexed = store.add_batch(tag_documents)
            self._swap(store)

        log_performance(
            "rebuild_tag_index",
            (time.time() - start_time) * 1000,
            tag_documents=indexed,
            total_documents=self.vector_store.count()
        )
        return indexed

    async def rebuild_index(self) -> Dict[str, int]:
        """Rebuild the whole index from the directory and conversation store."""
        start_time = time.time()
        async with self._lock:
            tag_documents, conversation_docs = await asyncio.gather(
                self._tag_documents(),
                self._conversation_documents(),
            )
            store = self.store_factory(self.vector_store.dimension)
            counts = {
                "tags": store.add_batch(tag_documents),
                "conversations": store.add_batch(conversation_docs),
            }
            self._swap(store)

        log_performance("rebuild_index", (time.time() - start_time) * 1000, **counts)
        return counts

    async def index_conversation(self, conversation: Conversation) -> int:
        """Index (or re-index) a processed conversation's transcript and summary."""
        documents = await self.embed_documents(conversation_documents(conversation))
        async with self._lock:
            self.vector_store.remove(conversation_document_id(conversation.id))
            self.vector_store.remove(summary_document_id(conversation.id))
            indexed = self.vector_store.add_batch(documents)
            self._refresh_gauge()

        logger.info(
            "Conversation indexed",
            conversation_id=conversation.id,
            contact_id=conversation.contact_id,
            documents=indexed
        )
        return indexed

    async def remove_conversation(self, conversation_id: str) -> int:
        """Drop a deleted conversation's documents. Returns the number removed."""
        async with self._lock:
            removed = sum([
                self.vector_store.remove(conversation_document_id(conversation_id)),
                self.vector_store.remove(summary_document_id(conversation_id)),
            ])
            self._refresh_gauge()
        logger.info("Conversation removed from index", conversation_id=conversation_id, documents=removed)
        return removed

    async def remove_contact(self, contact_id: str) -> int:
        """Drop every document of a deleted contact."""
        async with self._lock:
            removed = self.vector_store.remove_contact(contact_id)
            self._refresh_gauge()
        logger.info("Contact removed from index", contact_id=contact_id, documents=removed)
        return removed

    async def reset(self) -> None:
        """Empty the index, e.g. after the underlying data was wiped."""
        async with self._lock:
            self.vector_store.clear()
            self._refresh_gauge()
        logger.info("Vector index cleared")
