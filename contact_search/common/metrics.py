"""Metrics collection for the contact search engine.

Thin convenience wrapper around ``prometheus_client`` so the engine records
search, degradation, embedding, and index metrics consistently.

Design notes
- Metrics and labels are predeclared to keep cardinality bounded
- Each collector owns its registry, so several engines (or tests) can coexist
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class MetricsCollector:
    """Metrics for one search engine instance.

    Parameters
    - service_name: Logical name kept for log correlation
    - registry: Optional custom ``CollectorRegistry``
    """

    def __init__(self, service_name: str = "contact-search", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.search_requests = Counter(
            'contact_search_requests_total',
            'Total search requests',
            ['query_type'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'contact_search_duration_seconds',
            'Search duration',
            ['query_type'],
            registry=self.registry
        )

        self.degradations = Counter(
            'contact_search_degradations_total',
            'Searches or index passes that fell back to partial results',
            ['branch'],
            registry=self.registry
        )

        self.embedding_requests = Counter(
            'contact_search_embedding_requests_total',
            'Embedding provider calls',
            ['status'],
            registry=self.registry
        )

        self.cache_hits = Counter(
            'contact_search_cache_hits_total',
            'Embedding cache hits',
            registry=self.registry
        )

        self.cache_misses = Counter(
            'contact_search_cache_misses_total',
            'Embedding cache misses',
            registry=self.registry
        )

        self.indexed_documents = Gauge(
            'contact_search_indexed_documents',
            'Documents currently held by the vector index',
            registry=self.registry
        )

    def record_search(self, query_type: str, duration: float) -> None:
        """Record a completed search."""
        self.search_requests.labels(query_type=query_type).inc()
        self.search_duration.labels(query_type=query_type).observe(duration)

    @contextmanager
    def time_search(self, query_type: str) -> Iterator[None]:
        """Time the enclosed block as one search of ``query_type``."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_search(query_type, time.perf_counter() - start)

    def record_degradation(self, branch: str) -> None:
        """Record a soft failure on ``branch`` (semantic, keyword, pipeline, ...)."""
        self.degradations.labels(branch=branch).inc()

    def record_embedding_request(self, success: bool) -> None:
        """Record an embedding provider call outcome."""
        self.embedding_requests.labels(status="success" if success else "error").inc()

    def record_cache_hit(self) -> None:
        self.cache_hits.inc()

    def record_cache_miss(self) -> None:
        self.cache_misses.inc()

    def set_indexed_documents(self, count: int) -> None:
        self.indexed_documents.set(count)

    def get_metrics(self) -> str:
        """Render metrics in Prometheus exposition format."""
        return generate_latest(self.registry).decode("utf-8")
