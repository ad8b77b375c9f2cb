"""Collaborator interfaces consumed by the search engine.

The engine never owns contact or conversation data. It reads them through
``ContactDirectory`` and ``ConversationStore``. The in-memory implementations
below back the CLI and the tests, and are enough for small embedded uses.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Union, runtime_checkable

import structlog

from .models import Contact, Conversation

logger = structlog.get_logger("contact_search.directory")


@runtime_checkable
class ContactDirectory(Protocol):
    """Source of truth for contacts."""

    async def get(self, contact_id: str) -> Optional[Contact]:
        ...

    async def list_all(self) -> List[Contact]:
        ...


@runtime_checkable
class ConversationStore(Protocol):
    """Source of truth for processed conversations."""

    async def list_all(self) -> List[Conversation]:
        ...


class InMemoryContactDirectory:
    """Dict-backed ``ContactDirectory`` preserving insertion order."""

    def __init__(self, contacts: Optional[Iterable[Contact]] = None):
        self._contacts: Dict[str, Contact] = {}
        for contact in contacts or ():
            self.upsert(contact)

    async def get(self, contact_id: str) -> Optional[Contact]:
        return self._contacts.get(contact_id)

    async def list_all(self) -> List[Contact]:
        return list(self._contacts.values())

    def upsert(self, contact: Contact) -> None:
        self._contacts[contact.id] = contact

    def set_tags(self, contact_id: str, tags: Sequence[str]) -> Contact:
        """Replace a contact's tags; raises ``KeyError`` for unknown ids."""
        contact = self._contacts[contact_id]
        contact.tags = list(tags)
        return contact

    def delete(self, contact_id: str) -> bool:
        return self._contacts.pop(contact_id, None) is not None

    def clear(self) -> None:
        self._contacts.clear()

    def __len__(self) -> int:
        return len(self._contacts)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryContactDirectory":
        """Load contacts from a JSON file holding a list of contact objects."""
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        directory = cls(Contact.from_dict(row) for row in rows)
        logger.info("Loaded contacts", path=str(path), count=len(directory))
        return directory


class InMemoryConversationStore:
    """Dict-backed ``ConversationStore``."""

    def __init__(self, conversations: Optional[Iterable[Conversation]] = None):
        self._conversations: Dict[str, Conversation] = {}
        for conversation in conversations or ():
            self.add(conversation)

    async def list_all(self) -> List[Conversation]:
        return list(self._conversations.values())

    async def list_by_contact(self, contact_id: str) -> List[Conversation]:
        return [c for c in self._conversations.values() if c.contact_id == contact_id]

    def add(self, conversation: Conversation) -> None:
        self._conversations[conversation.id] = conversation

    def delete(self, conversation_id: str) -> Optional[Conversation]:
        return self._conversations.pop(conversation_id, None)

    def __len__(self) -> int:
        return len(self._conversations)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryConversationStore":
        """Load conversations from a JSON file holding a list of conversation objects."""
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        store = cls(Conversation.from_dict(row) for row in rows)
        logger.info("Loaded conversations", path=str(path), count=len(store))
        return store
