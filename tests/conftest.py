"""Shared fixtures for contact search tests."""

import asyncio
import re
from typing import List, Optional, Set

import numpy as np
import pytest

from contact_search.common.config import SearchConfig
from contact_search.common.metrics import MetricsCollector
from contact_search.directory import InMemoryContactDirectory, InMemoryConversationStore
from contact_search.embeddings.provider import EmbeddingProviderError
from contact_search.hybrid.search_manager import HybridSearchService
from contact_search.models import Contact, Conversation

VOCABULARY = [
    "tags", "ai", "machine", "learning", "python", "golf", "music",
    "investor", "startup", "fundraising", "hiking", "pricing",
    "contract", "renewal", "budget", "math",
]


class FakeEmbeddingProvider:
    """Bag-of-words embeddings over a fixed vocabulary.

    Words outside the vocabulary contribute nothing, so text made only of
    unknown words embeds to the zero vector.
    """

    def __init__(self, vocabulary: Optional[List[str]] = None, delay: float = 0.0):
        self.vocabulary = vocabulary or VOCABULARY
        self.index = {word: i for i, word in enumerate(self.vocabulary)}
        self.delay = delay
        self.calls = 0
        self.fail_all = False
        self.fail_texts: Set[str] = set()

    @property
    def dimension(self) -> int:
        return len(self.vocabulary)

    async def embed(self, text: str) -> List[float]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_all or text in self.fail_texts:
            raise EmbeddingProviderError("embedding service unavailable")

        vector = np.zeros(self.dimension)
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            if token in self.index:
                vector[self.index[token]] += 1.0
        return vector.tolist()


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def contacts() -> List[Contact]:
    return [
        Contact("c1", "Ada Lovelace", "ada@example.com", "+1 555 0100", ["python", "math"]),
        Contact("c2", "Grace Hopper", "grace@example.com", "+1 555 0101", ["AI"]),
        Contact("c3", "Alan Turing", "alan@example.com", "+1 555 0102", ["AI", "golf"]),
        Contact("c4", "Linus Torvalds", "linus@example.org", None, []),
    ]


@pytest.fixture
def directory(contacts):
    return InMemoryContactDirectory(contacts)


@pytest.fixture
def conversations():
    return InMemoryConversationStore()


@pytest.fixture
def config():
    return SearchConfig(sub_search_timeout=5.0, embedding_cache_policy="none")


@pytest.fixture
def metrics():
    return MetricsCollector("test-contact-search")


@pytest.fixture
def service(directory, provider, config, conversations, metrics):
    return HybridSearchService(
        directory,
        provider,
        config=config,
        conversations=conversations,
        metrics=metrics,
    )


@pytest.fixture
def startup_conversation():
    return Conversation(
        id="conv-1",
        contact_id="c4",
        transcription="We talked about fundraising for the startup",
        summary="Startup fundraising round",
        tags=["fundraising"],
    )
