"""Content-keyed embedding cache.

The cache sits in front of the embedding provider so repeated texts (the same
tag set, a repeated query) cost one provider call. It is bounded:

- ``none`` policy: once full, new entries are simply not stored
- ``lru`` policy: the least recently used entry is evicted to make room

Access happens from the event loop only, so no lock is needed.
"""

from collections import OrderedDict
from typing import Optional, Sequence

import numpy as np
import structlog

from ..common.metrics import MetricsCollector
from .provider import EmbeddingProvider

logger = structlog.get_logger("contact_search.embeddings.cache")

CACHE_POLICIES = ("none", "lru")


class EmbeddingCache:
    """Bounded map from text to an immutable embedding array."""

    def __init__(self, capacity: int = 1000, policy: str = "none"):
        if policy not in CACHE_POLICIES:
            raise ValueError(f"Unknown cache policy: {policy}")
        self.capacity = capacity
        self.policy = policy
        self.hits = 0
        self.misses = 0
        self._entries: "OrderedDict[str, np.ndarray]" = OrderedDict()

    def get(self, text: str) -> Optional[np.ndarray]:
        embedding = self._entries.get(text)
        if embedding is None:
            self.misses += 1
            return None
        self.hits += 1
        if self.policy == "lru":
            self._entries.move_to_end(text)
        return embedding

    def put(self, text: str, embedding: Sequence[float]) -> np.ndarray:
        """Store ``embedding`` if there is room and return the frozen array."""
        vector = np.array(embedding, dtype=np.float64)
        vector.flags.writeable = False

        if text in self._entries:
            self._entries[text] = vector
            if self.policy == "lru":
                self._entries.move_to_end(text)
            return vector

        if len(self._entries) >= self.capacity:
            if self.policy == "none" or self.capacity == 0:
                return vector
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted embedding", text=evicted[:50])

        self._entries[text] = vector
        return vector

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, text: str) -> bool:
        return text in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict:
        return {
            "size": len(self._entries),
            "capacity": self.capacity,
            "policy": self.policy,
            "hits": self.hits,
            "misses": self.misses,
        }


class CachedEmbedder:
    """Embeds text through ``EmbeddingCache`` before falling back to the provider."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        cache: Optional[EmbeddingCache] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.provider = provider
        self.cache = cache if cache is not None else EmbeddingCache()
        self.metrics = metrics

    async def embed(self, text: str) -> np.ndarray:
        """Return the embedding for ``text``; provider errors propagate."""
        cached = self.cache.get(text)
        if cached is not None:
            if self.metrics:
                self.metrics.record_cache_hit()
            logger.debug("Embedding cache hit", text=text[:50])
            return cached

        if self.metrics:
            self.metrics.record_cache_miss()
        try:
            embedding = await self.provider.embed(text)
        except Exception:
            if self.metrics:
                self.metrics.record_embedding_request(success=False)
            raise

        if self.metrics:
            self.metrics.record_embedding_request(success=True)
        return self.cache.put(text, embedding)
