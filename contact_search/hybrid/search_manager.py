"""Hybrid contact search service.

Combines semantic similarity over tag and conversation documents with a
lexical scan of contact fields, and merges both with weighted fusion plus a
strong-name-match override. Everything lives in process; the only external
dependency is the embedding provider.
"""

import asyncio
import time
from typing import Any, Awaitable, Dict, List, Optional

import structlog

from ..common.config import SearchConfig
from ..common.metrics import MetricsCollector
from ..directory import ContactDirectory, ConversationStore
from ..embeddings.cache import CachedEmbedder, EmbeddingCache
from ..embeddings.provider import EmbeddingProvider
from ..indexing.maintenance import IndexMaintainer
from ..lexical.index import KeywordIndex
from ..models import (
    Conversation,
    DebugRow,
    DocumentType,
    KeywordMatch,
    MatchedField,
    ResultSource,
    SearchResult,
    SemanticMatch,
)
from ..ranking.fusion import FusedCandidate, WeightedOverrideFusion
from ..ranking.snippets import truncate_snippet
from ..vector_store.base import VectorStore
from ..vector_store.memory import InMemoryVectorStore

logger = structlog.get_logger("contact_search.search_manager")

DOCUMENT_FIELDS = {
    DocumentType.TAG: MatchedField.TAG,
    DocumentType.CONVERSATION: MatchedField.CONVERSATION,
    DocumentType.SUMMARY: MatchedField.SUMMARY,
}


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


class HybridSearchService:
    """Manages hybrid contact search.

    Responsibilities
    - Own the vector index (through ``IndexMaintainer``) and the keyword index
    - Run the semantic and keyword branches concurrently, each one soft
    - Fuse, enrich with display names, rank and keep a debug trace

    ``search`` and ``search_tags_only`` never raise: failures degrade to
    partial results, keyword-only fallback results, or an empty list.
    """

    def __init__(
        self,
        directory: ContactDirectory,
        embedding_provider: Optional[EmbeddingProvider] = None,
        config: Optional[SearchConfig] = None,
        conversations: Optional[ConversationStore] = None,
        embedder: Optional[CachedEmbedder] = None,
        keyword_index: Optional[KeywordIndex] = None,
        metrics: Optional[MetricsCollector] = None,
        vector_store_factory=InMemoryVectorStore
    ):
        """Construct a search service.

        Parameters
        - directory: Source of contacts (names, fields, tags)
        - embedding_provider: Text to vector provider; ignored when ``embedder`` is given
        - config: ``SearchConfig``; defaults are read from the environment
        - conversations: Optional source of conversation transcripts and summaries
        - embedder: Pre-built ``CachedEmbedder`` to share a cache between services
        - keyword_index: Custom keyword index; defaults to a live view over ``directory``
        - metrics: Optional ``MetricsCollector``
        """
        if embedder is None and embedding_provider is None:
            raise ValueError("Either embedding_provider or embedder is required")

        self.config = config or SearchConfig()
        self.directory = directory
        self.metrics = metrics
        self.embedder = embedder or CachedEmbedder(
            embedding_provider,
            EmbeddingCache(self.config.embedding_cache_size, self.config.embedding_cache_policy),
            metrics=metrics,
        )
        self.keyword_index = keyword_index or KeywordIndex(directory, self.config.keyword_snippet_length)
        self.fusion = WeightedOverrideFusion.from_config(self.config)
        self.indexer = IndexMaintainer(
            self.embedder,
            directory,
            conversations=conversations,
            store_factory=vector_store_factory,
            metrics=metrics,
        )
        self._last_debug: List[DebugRow] = []
        self._initialized = False

    @property
    def vector_store(self) -> VectorStore:
        """The live vector index; replaced wholesale by rebuilds."""
        return self.indexer.vector_store

    async def initialize(self) -> None:
        """Fix the dimension (when configured) and build the index from scratch."""
        self.indexer.initialize(self.config.embedding_dimension)
        counts = await self.rebuild_index()
        self._initialized = True
        logger.info("Hybrid search service initialized", **counts)

    # Search

    async def _soft(self, branch: str, awaitable: Awaitable[list]) -> list:
        """Await one search branch; failure or timeout yields ``[]``."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.config.sub_search_timeout)
        except asyncio.TimeoutError:
            logger.warning("Search branch timed out", branch=branch, timeout=self.config.sub_search_timeout)
        except Exception as e:
            logger.warning("Search branch failed", branch=branch, error=str(e))
        if self.metrics:
            self.metrics.record_degradation(branch)
        return []

    async def _semantic_search(self, query: str, tags_only: bool = False) -> List[SemanticMatch]:
        """Best matching document per contact, above the semantic floor."""
        query_embedding = await self.embedder.embed(query)
        store = self.vector_store
        hits = store.search(
            query_embedding,
            k=self.config.max_results,
            document_types=(DocumentType.TAG,) if tags_only else None,
        )

        best: Dict[str, SemanticMatch] = {}
        for hit in hits:
            if hit.score * self.config.semantic_weight < self.config.semantic_threshold:
                continue
            document = hit.document
            if document.contact_id in best and best[document.contact_id].score >= hit.score:
                continue
            best[document.contact_id] = SemanticMatch(
                contact_id=document.contact_id,
                score=hit.score,
                matched_field=DOCUMENT_FIELDS[document.document_type],
                document_id=document.id,
                snippet=truncate_snippet(document.content, self.config.max_snippet_length),
            )

        results = sorted(best.values(), key=lambda m: m.score, reverse=True)
        logger.debug("Semantic search completed", documents=len(hits), results_count=len(results))
        return results

    async def _keyword_search(self, query: str) -> List[KeywordMatch]:
        return await self.keyword_index.search(
            query,
            limit=self.config.max_results,
            min_score=self.config.keyword_threshold,
        )

    async def _enrich(self, candidates: List[FusedCandidate]) -> List[tuple]:
        """Attach display names; contacts missing from the directory are dropped."""
        enriched = []
        for candidate in candidates:
            contact = await self.directory.get(candidate.contact_id)
            if contact is None:
                logger.debug("Dropping result for unknown contact", contact_id=candidate.contact_id)
                continue
            enriched.append((candidate, contact.name))
        return enriched

    def _publish(self, enriched: List[tuple]) -> List[SearchResult]:
        """Rank, truncate, record the debug trace and clamp public scores."""
        ranked = sorted(enriched, key=lambda item: item[0].score, reverse=True)[:self.config.max_results]
        self._last_debug = [
            DebugRow(
                contact_id=candidate.contact_id,
                semantic=candidate.semantic_score,
                keyword=candidate.keyword_score,
                final=candidate.score,
                matched_field=candidate.matched_field,
                snippet=candidate.snippet,
                document_id=candidate.document_id,
            )
            for candidate, _ in ranked
        ]
        return [
            SearchResult(
                contact_id=candidate.contact_id,
                name=name,
                score=_clamp(candidate.score),
                matched_field=candidate.matched_field,
                snippet=candidate.snippet,
                source=candidate.source,
            )
            for candidate, name in ranked
        ]

    async def search(self, query: str) -> List[SearchResult]:
        """Perform hybrid search.

        Returns at most ``max_results`` results sorted by score, descending.
        Scores are in ``[0, 1]``; ``get_last_debug()`` exposes the unclamped
        fused values.
        """
        query = (query or "").strip()
        if not query:
            self._last_debug = []
            return []

        start_time = time.time()
        try:
            if self.metrics:
                with self.metrics.time_search("hybrid"):
                    results = await self._hybrid_search(query)
            else:
                results = await self._hybrid_search(query)
        except Exception as e:
            logger.error("Hybrid search failed, falling back to keyword search", query=query[:50], error=str(e))
            if self.metrics:
                self.metrics.record_degradation("pipeline")
            return await self._fallback_search(query)

        logger.info(
            "Search completed",
            query=query[:50],
            results_count=len(results),
            duration_ms=round((time.time() - start_time) * 1000, 2)
        )
        return results

    async def _hybrid_search(self, query: str) -> List[SearchResult]:
        semantic_results, keyword_results = await asyncio.gather(
            self._soft("semantic", self._semantic_search(query)),
            self._soft("keyword", self._keyword_search(query)),
        )
        fused = self.fusion.fuse_results(semantic_results, keyword_results)
        return self._publish(await self._enrich(fused))

    async def _fallback_search(self, query: str) -> List[SearchResult]:
        """Keyword-only results with a placeholder score."""
        try:
            matches = await self._keyword_search(query)
            candidates = [
                FusedCandidate(
                    contact_id=match.contact_id,
                    score=self.config.fallback_score,
                    matched_field=match.matched_field,
                    snippet=match.snippet,
                    keyword_score=match.score,
                    source=ResultSource.FALLBACK,
                )
                for match in matches
            ]
            return self._publish(await self._enrich(candidates))
        except Exception as e:
            logger.error("Fallback keyword search failed", query=query[:50], error=str(e))
            if self.metrics:
                self.metrics.record_degradation("fallback")
            self._last_debug = []
            return []

    async def search_tags_only(self, query: str) -> List[SearchResult]:
        """Semantic search restricted to tag documents."""
        query = (query or "").strip()
        if not query:
            self._last_debug = []
            return []

        try:
            if self.metrics:
                with self.metrics.time_search("tags"):
                    matches = await self._semantic_search(query, tags_only=True)
            else:
                matches = await self._semantic_search(query, tags_only=True)

            candidates = [
                FusedCandidate(
                    contact_id=match.contact_id,
                    score=match.score * self.config.semantic_weight,
                    matched_field=match.matched_field,
                    snippet=match.snippet,
                    semantic_score=match.score,
                    source=ResultSource.SEMANTIC,
                    document_id=match.document_id,
                )
                for match in matches
            ]
            results = self._publish(await self._enrich(candidates))
        except Exception as e:
            logger.error("Tag search failed", query=query[:50], error=str(e))
            if self.metrics:
                self.metrics.record_degradation("tags")
            self._last_debug = []
            return []

        logger.info("Tag search completed", query=query[:50], results_count=len(results))
        return results

    def get_last_debug(self) -> List[DebugRow]:
        """Score breakdown of the most recent query, in result order."""
        return [DebugRow(**vars(row)) for row in self._last_debug]

    # Maintenance

    async def update_contact(self, contact_id: str, tags: Optional[List[str]] = None, **fields: Any) -> None:
        """Propagate a contact change into both indexes.

        The directory must already hold the new values. ``tags`` triggers a
        tag-document reindex; other fields only concern the keyword index.
        Failures are logged and leave the previous index entries in place.
        """
        try:
            await self.keyword_index.update_contact(contact_id, tags=tags, **fields)
        except Exception as e:
            logger.warning("Failed to update keyword index", contact_id=contact_id, error=str(e))
            if self.metrics:
                self.metrics.record_degradation("keyword")

        if tags is None:
            return
        try:
            await self.indexer.reindex_contact_tags(contact_id, tags)
        except Exception as e:
            logger.warning("Failed to reindex contact tags", contact_id=contact_id, error=str(e))
            if self.metrics:
                self.metrics.record_degradation("indexing")

    async def remove_contact(self, contact_id: str) -> int:
        """Drop a deleted contact's documents from the indexes."""
        await self.keyword_index.remove_contact(contact_id)
        return await self.indexer.remove_contact(contact_id)

    async def index_conversation(self, conversation: Conversation) -> int:
        return await self.indexer.index_conversation(conversation)

    async def remove_conversation(self, conversation_id: str) -> int:
        return await self.indexer.remove_conversation(conversation_id)

    async def rebuild_tag_index(self) -> int:
        """Regenerate every contact's tag document from the directory."""
        await self.keyword_index.rebuild()
        return await self.indexer.rebuild_tag_index()

    async def rebuild_index(self) -> Dict[str, int]:
        """Rebuild tag, conversation and summary documents from scratch."""
        await self.keyword_index.rebuild()
        return await self.indexer.rebuild_index()

    async def reset(self) -> Dict[str, int]:
        """Clear everything derived from the data and rebuild it."""
        self._last_debug = []
        await self.indexer.reset()
        self.embedder.cache.clear()
        logger.info("Hybrid search service reset")
        return await self.rebuild_index()

    def get_stats(self) -> Dict[str, Any]:
        store = self.vector_store
        by_type = {doc_type.value: 0 for doc_type in DocumentType}
        for document in store.documents():
            by_type[document.document_type.value] += 1
        return {
            "initialized": self._initialized,
            "documents": store.count(),
            "documents_by_type": by_type,
            "dimension": store.dimension,
            "embedding_cache": self.embedder.cache.get_stats(),
        }
