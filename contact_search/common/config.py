"""Configuration management for the contact search engine.

All tuning knobs for the hybrid search engine live here. ``SearchConfig``
builds on ``pydantic_settings.BaseSettings`` so every value can be provided
via environment variables (prefixed ``CONTACT_SEARCH_``), a ``.env`` file, or
constructor keyword arguments.

Highlights
- Strongly-typed settings with the defaults the ranking policy was tuned on
- Ranges are validated up front so a bad weight fails at startup, not mid-query
- Embedding provider, resilience, and logging settings sit next to ranking ones

Usage
- ``config = SearchConfig()`` reads the environment
- ``config = SearchConfig(max_results=10)`` overrides explicitly (tests)
"""

from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchConfig(BaseSettings):
    """Configuration for the hybrid search engine.

    Notes
    - Weights are not normalised; ``semantic_weight`` and ``keyword_weight``
      scale each branch independently before fusion.
    - ``semantic_threshold`` applies to the *weighted* semantic score.
    - ``keyword_threshold`` applies to the raw keyword score.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTACT_SEARCH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Ranking
    semantic_weight: float = Field(default=0.7, ge=0.0)
    keyword_weight: float = Field(default=0.6, ge=0.0)
    max_results: int = Field(default=25, ge=1)
    semantic_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    keyword_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    name_match_boost: float = Field(default=3.0, ge=1.0)
    name_match_min_score: float = Field(default=0.8, ge=0.0, le=1.0)
    fallback_score: float = Field(default=0.5, ge=0.0, le=1.0)

    # Snippets
    max_snippet_length: int = Field(default=150, ge=10)
    keyword_snippet_length: int = Field(default=100, ge=10)

    # Vector index and embedding cache
    embedding_dimension: Optional[int] = Field(default=None, ge=1)
    embedding_cache_size: int = Field(default=1000, ge=0)
    embedding_cache_policy: Literal["none", "lru"] = "none"

    # Per-branch deadline in seconds; ``None`` disables it
    sub_search_timeout: Optional[float] = Field(default=10.0, gt=0.0)

    # Embedding provider
    embedding_api_url: str = "https://api.openai.com/v1"
    embedding_model: str = "text-embedding-3-small"
    embedding_api_key: Optional[SecretStr] = None
    embedding_request_timeout: float = Field(default=30.0, gt=0.0)
    embedding_retry_attempts: int = Field(default=3, ge=1)
    embedding_retry_base_delay: float = Field(default=1.0, ge=0.0)
    embedding_retry_max_delay: float = Field(default=8.0, ge=0.0)
    circuit_failure_threshold: int = Field(default=5, ge=1)
    circuit_recovery_timeout: float = Field(default=30.0, ge=0.0)

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"


def get_config(**overrides) -> SearchConfig:
    """Build a ``SearchConfig`` from the environment plus explicit overrides."""
    return SearchConfig(**overrides)
