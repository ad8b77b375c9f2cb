"""Hybrid contact search.

Finds contacts by meaning and by text: a brute-force cosine index over
contact tag sets and conversation transcripts, a keyword scan over contact
fields, and a weighted fusion of both.

Import pattern:
- from contact_search import HybridSearchService, SearchConfig
"""

from .common.config import SearchConfig, get_config
from .directory import ContactDirectory, ConversationStore, InMemoryContactDirectory, InMemoryConversationStore
from .hybrid import HybridSearchService
from .models import (
    Contact,
    Conversation,
    DebugRow,
    DocumentType,
    MatchedField,
    ResultSource,
    SearchResult,
)

__version__ = "0.1.0"

__all__ = [
    "Contact",
    "ContactDirectory",
    "Conversation",
    "ConversationStore",
    "DebugRow",
    "DocumentType",
    "HybridSearchService",
    "InMemoryContactDirectory",
    "InMemoryConversationStore",
    "MatchedField",
    "ResultSource",
    "SearchConfig",
    "SearchResult",
    "get_config",
]
