"""Embedding providers.

The engine depends only on the ``EmbeddingProvider`` protocol. The HTTP
provider talks to any OpenAI-compatible ``/embeddings`` endpoint through
``httpx`` and is guarded by a circuit breaker plus retry with backoff.
"""

from typing import List, Optional, Protocol, Sequence, runtime_checkable

import httpx
import structlog

from ..common.config import SearchConfig
from .resilience import CircuitBreaker, RetryPolicy, call_with_retry

logger = structlog.get_logger("contact_search.embeddings.provider")


class EmbeddingProviderError(Exception):
    """The provider could not produce an embedding.

    ``retryable`` is ``False`` for failures another attempt cannot fix
    (bad request, auth errors, malformed responses).
    """

    def __init__(self, message: str, retryable: bool = True, status_code: Optional[int] = None):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Converts text to a fixed-dimension vector."""

    async def embed(self, text: str) -> Sequence[float]:
        ...


class HttpEmbeddingProvider:
    """Embedding provider for OpenAI-compatible HTTP APIs.

    Notes
    - The dimension is learnt from the first successful response; a later
      response of a different length is rejected.
    - Pass ``client`` to share a connection pool (or a mock transport in tests).
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        retry_policy: Optional[RetryPolicy] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(name="embedding_provider")
        self.dimension: Optional[int] = None

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers

    @classmethod
    def from_config(cls, config: SearchConfig, client: Optional[httpx.AsyncClient] = None) -> "HttpEmbeddingProvider":
        """Build a provider wired to the resilience settings in ``config``."""
        api_key = config.embedding_api_key.get_secret_value() if config.embedding_api_key else None
        return cls(
            base_url=config.embedding_api_url,
            model=config.embedding_model,
            api_key=api_key,
            timeout=config.embedding_request_timeout,
            retry_policy=RetryPolicy(
                max_attempts=config.embedding_retry_attempts,
                base_delay=config.embedding_retry_base_delay,
                max_delay=config.embedding_retry_max_delay,
            ),
            circuit_breaker=CircuitBreaker(
                failure_threshold=config.circuit_failure_threshold,
                recovery_timeout=config.circuit_recovery_timeout,
                name="embedding_provider",
            ),
            client=client,
        )

    async def embed(self, text: str) -> List[float]:
        """Embed ``text``; raises ``EmbeddingProviderError`` or ``CircuitBreakerError``."""
        return await call_with_retry(
            lambda: self.circuit_breaker.call(self._request_embedding, text),
            policy=self.retry_policy,
            operation_name="embedding_request",
            is_retryable=lambda exc: getattr(exc, "retryable", True),
        )

    async def _request_embedding(self, text: str) -> List[float]:
        try:
            response = await self.http_client.post(
                f"{self.base_url}/embeddings",
                json={"input": text, "model": self.model},
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise EmbeddingProviderError(f"Embedding request failed: {e}") from e

        if response.status_code != 200:
            retryable = response.status_code == 429 or response.status_code >= 500
            raise EmbeddingProviderError(
                f"Embedding service returned status {response.status_code}",
                retryable=retryable,
                status_code=response.status_code,
            )

        try:
            embedding = [float(v) for v in response.json()["data"][0]["embedding"]]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingProviderError(f"Malformed embedding response: {e}", retryable=False) from e

        if not embedding:
            raise EmbeddingProviderError("Embedding service returned an empty vector", retryable=False)
        if self.dimension is None:
            self.dimension = len(embedding)
        elif len(embedding) != self.dimension:
            raise EmbeddingProviderError(
                f"Embedding dimension changed: expected {self.dimension}, got {len(embedding)}",
                retryable=False,
            )
        return embedding

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self.http_client.aclose()
