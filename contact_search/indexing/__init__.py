"""Index maintenance and tag-set helpers."""

from .maintenance import IndexMaintainer, conversation_documents
from .tags import merge_tags, tags_after_conversation_added, tags_after_conversation_removed

__all__ = [
    "IndexMaintainer",
    "conversation_documents",
    "merge_tags",
    "tags_after_conversation_added",
    "tags_after_conversation_removed",
]
