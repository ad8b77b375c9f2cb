"""Tag-set arithmetic for contacts whose tags come from conversations.

A contact's tags are the union of manually added tags and the tags extracted
from each of its conversations. These helpers compute the new tag set when a
conversation arrives or is deleted; the caller writes it back to the contact
directory and then asks the engine to reindex the contact.
"""

from typing import Iterable, List, Sequence

from ..models import Conversation


def _key(tag: str) -> str:
    return tag.strip().lower()


def merge_tags(*tag_lists: Iterable[str]) -> List[str]:
    """Ordered, case-insensitive union; the first spelling of a tag wins."""
    merged: List[str] = []
    seen = set()
    for tags in tag_lists:
        for tag in tags:
            key = _key(tag)
            if not key or key in seen:
                continue
            seen.add(key)
            merged.append(tag.strip())
    return merged


def tags_after_conversation_added(contact_tags: Sequence[str], conversation: Conversation) -> List[str]:
    return merge_tags(contact_tags, conversation.tags)


def tags_after_conversation_removed(
    contact_tags: Sequence[str],
    removed: Conversation,
    remaining: Iterable[Conversation]
) -> List[str]:
    """Drop the tags only ``removed`` contributed.

    A tag survives when it did not come from the removed conversation or when
    another remaining conversation of the contact still carries it.
    """
    removed_keys = {_key(tag) for tag in removed.tags}
    still_present = {
        _key(tag)
        for conversation in remaining
        if conversation.id != removed.id
        for tag in conversation.tags
    }
    return [
        tag for tag in merge_tags(contact_tags)
        if _key(tag) not in removed_keys or _key(tag) in still_present
    ]
