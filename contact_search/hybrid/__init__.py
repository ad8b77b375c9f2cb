"""Hybrid search coordinator."""

from .search_manager import HybridSearchService

__all__ = ["HybridSearchService"]
