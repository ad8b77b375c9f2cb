"""Embedding providers, caching, and call resilience.

- ``provider``: ``EmbeddingProvider`` protocol and the HTTP implementation.
- ``cache``: bounded content-keyed cache and the ``CachedEmbedder`` front.
- ``resilience``: circuit breaker and retry with exponential backoff.
"""

from .cache import CachedEmbedder, EmbeddingCache
from .provider import EmbeddingProvider, EmbeddingProviderError, HttpEmbeddingProvider
from .resilience import CircuitBreaker, CircuitBreakerError, CircuitBreakerState, RetryPolicy, call_with_retry

__all__ = [
    "CachedEmbedder",
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitBreakerState",
    "EmbeddingCache",
    "EmbeddingProvider",
    "EmbeddingProviderError",
    "HttpEmbeddingProvider",
    "RetryPolicy",
    "call_with_retry",
]
