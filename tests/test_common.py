"""Tests for common utilities."""

import pytest
from pydantic import ValidationError

from contact_search.common.config import SearchConfig, get_config
from contact_search.common.logging import configure_logging, log_performance
from contact_search.common.metrics import MetricsCollector


def test_config_defaults():
    """Test ranking defaults."""
    config = SearchConfig()
    assert config.semantic_weight == 0.7
    assert config.keyword_weight == 0.6
    assert config.max_results == 25
    assert config.semantic_threshold == 0.3
    assert config.name_match_boost == 3.0
    assert config.embedding_cache_size == 1000
    assert config.embedding_cache_policy == "none"
    assert config.embedding_api_key is None


def test_config_from_environment(monkeypatch):
    """Test environment variables override defaults."""
    monkeypatch.setenv("CONTACT_SEARCH_MAX_RESULTS", "5")
    monkeypatch.setenv("CONTACT_SEARCH_EMBEDDING_CACHE_POLICY", "lru")
    monkeypatch.setenv("CONTACT_SEARCH_EMBEDDING_API_KEY", "sk-test")

    config = SearchConfig()
    assert config.max_results == 5
    assert config.embedding_cache_policy == "lru"
    assert config.embedding_api_key.get_secret_value() == "sk-test"


def test_config_overrides():
    """Test explicit overrides win."""
    config = get_config(keyword_weight=0.3, sub_search_timeout=None)
    assert config.keyword_weight == 0.3
    assert config.sub_search_timeout is None


def test_config_validation():
    """Test out-of-range values are rejected."""
    with pytest.raises(ValidationError):
        SearchConfig(max_results=0)
    with pytest.raises(ValidationError):
        SearchConfig(semantic_threshold=1.5)
    with pytest.raises(ValidationError):
        SearchConfig(embedding_cache_policy="fifo")


def test_logging_configuration():
    """Test logging configuration."""
    # This should not raise an exception
    configure_logging("test-service", "INFO", "json")
    configure_logging("test-service", "debug", "console", environment="test")
    log_performance("unit_test", 1.234, documents=3)


def test_metrics_collector():
    """Test metrics collector."""
    collector = MetricsCollector("test-service")
    assert collector.service_name == "test-service"

    collector.record_search("hybrid", 0.01)
    with collector.time_search("tags"):
        pass
    collector.record_degradation("semantic")
    collector.record_embedding_request(success=True)
    collector.record_embedding_request(success=False)
    collector.record_cache_hit()
    collector.record_cache_miss()
    collector.set_indexed_documents(7)

    metrics = collector.get_metrics()
    assert isinstance(metrics, str)
    assert 'contact_search_requests_total{query_type="hybrid"} 1.0' in metrics
    assert 'contact_search_requests_total{query_type="tags"} 1.0' in metrics
    assert 'contact_search_degradations_total{branch="semantic"} 1.0' in metrics
    assert 'contact_search_embedding_requests_total{status="error"} 1.0' in metrics
    assert "contact_search_indexed_documents 7.0" in metrics


def test_metrics_collectors_are_isolated():
    """Test two collectors do not share a registry."""
    first = MetricsCollector()
    second = MetricsCollector()
    first.record_cache_hit()
    assert "contact_search_cache_hits_total 1.0" in first.get_metrics()
    assert "contact_search_cache_hits_total 0.0" in second.get_metrics()
