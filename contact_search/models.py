"""Data model for the contact search engine.

Documents are a tagged variant: one dataclass per kind, each carrying only the
fields relevant to it. ``Document`` is the union of the three and every
variant exposes ``document_type``.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union


class DocumentType(Enum):
    """Kinds of documents held by the vector index."""
    TAG = "tag"
    CONVERSATION = "conversation"
    SUMMARY = "summary"


class MatchedField(Enum):
    """Attribute that produced a result's score."""
    TAG = "tag"
    CONVERSATION = "conversation"
    SUMMARY = "summary"
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"


class ResultSource(Enum):
    """Which path produced a ``SearchResult``."""
    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"
    FALLBACK = "fallback"


# Display priority for keyword matches, highest first
KEYWORD_FIELD_PRIORITY: Tuple[MatchedField, ...] = (
    MatchedField.NAME,
    MatchedField.EMAIL,
    MatchedField.PHONE,
    MatchedField.TAG,
)


@dataclass
class Contact:
    """A contact as exposed by the contact directory."""
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Contact":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            email=data.get("email") or None,
            phone=data.get("phone") or None,
            tags=list(data.get("tags") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Conversation:
    """A processed conversation with its transcript, summary and extracted tags."""
    id: str
    contact_id: str
    transcription: str = ""
    summary: str = ""
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            id=str(data["id"]),
            contact_id=str(data["contact_id"]),
            transcription=data.get("transcription") or "",
            summary=data.get("summary") or "",
            tags=list(data.get("tags") or []),
            created_at=created_at,
        )


@dataclass(frozen=True)
class TagDocument:
    """Semantic document derived from the concatenation of a contact's tags."""
    id: str
    contact_id: str
    content: str
    tags: Tuple[str, ...] = ()
    embedding: Optional[Sequence[float]] = None

    document_type: ClassVar[DocumentType] = DocumentType.TAG

    @classmethod
    def for_contact(cls, contact_id: str, tags: Sequence[str]) -> "TagDocument":
        return cls(
            id=tag_document_id(contact_id),
            contact_id=contact_id,
            content=tag_document_content(tags),
            tags=tuple(tags),
        )


@dataclass(frozen=True)
class ConversationDocument:
    """Semantic document holding a conversation transcript."""
    id: str
    contact_id: str
    conversation_id: str
    content: str
    embedding: Optional[Sequence[float]] = None
    created_at: Optional[datetime] = None

    document_type: ClassVar[DocumentType] = DocumentType.CONVERSATION


@dataclass(frozen=True)
class SummaryDocument:
    """Semantic document holding a conversation summary."""
    id: str
    contact_id: str
    conversation_id: str
    content: str
    embedding: Optional[Sequence[float]] = None

    document_type: ClassVar[DocumentType] = DocumentType.SUMMARY


Document = Union[TagDocument, ConversationDocument, SummaryDocument]


def tag_document_id(contact_id: str) -> str:
    return f"tag:{contact_id}"


def conversation_document_id(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def summary_document_id(conversation_id: str) -> str:
    return f"summary:{conversation_id}"


def tag_document_content(tags: Sequence[str]) -> str:
    """Text embedded for a contact's tag set; empty when there is nothing to embed."""
    tag_text = " ".join(tag.strip() for tag in tags if tag and tag.strip())
    return f"tags: {tag_text}" if tag_text else ""


@dataclass
class SemanticMatch:
    """Best semantic hit for one contact."""
    contact_id: str
    score: float
    matched_field: MatchedField
    document_id: str
    snippet: Optional[str] = None


@dataclass
class KeywordMatch:
    """Lexical hit for one contact."""
    contact_id: str
    score: float
    matched_field: MatchedField
    snippet: Optional[str] = None


@dataclass
class SearchResult:
    """Unified, ranked result returned to callers."""
    contact_id: str
    name: str
    score: float
    matched_field: Optional[MatchedField] = None
    snippet: Optional[str] = None
    source: ResultSource = ResultSource.HYBRID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contact_id": self.contact_id,
            "name": self.name,
            "score": self.score,
            "matched_field": self.matched_field.value if self.matched_field else None,
            "snippet": self.snippet,
            "source": self.source.value,
        }


@dataclass
class DebugRow:
    """Per-contact score breakdown for the most recent query."""
    contact_id: str
    semantic: float
    keyword: float
    final: float
    matched_field: Optional[MatchedField] = None
    snippet: Optional[str] = None
    document_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["matched_field"] = self.matched_field.value if self.matched_field else None
        return data
