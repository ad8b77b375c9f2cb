"""Lexical search over contact fields.

The index is a live view over the contact directory: every query scans the
directory's current contacts, so there is nothing to keep in sync and results
can never be stale. The maintenance hooks exist for the index contract and
do nothing.

Scoring heuristic (case-insensitive, terms split on whitespace)
- Name equals the whole query: 1.0
- Every term starts some word of the name: 0.95
- Otherwise per term: name 0.7 (0.9 when the name is exactly the term),
  email 0.4, phone 0.5, tags 0.3; the sum is divided by ``2 * term_count``
  and capped at 1.0
"""

from typing import List, Optional, Sequence, Set, Tuple

import structlog

from ..directory import ContactDirectory
from ..models import KEYWORD_FIELD_PRIORITY, Contact, KeywordMatch, MatchedField
from ..ranking.snippets import best_window_snippet

logger = structlog.get_logger("contact_search.lexical")

EXACT_NAME_SCORE = 1.0
NAME_PREFIX_SCORE = 0.95
FIELD_WEIGHTS = {
    MatchedField.NAME: 0.7,
    MatchedField.EMAIL: 0.4,
    MatchedField.PHONE: 0.5,
    MatchedField.TAG: 0.3,
}
EXACT_TERM_NAME_WEIGHT = 0.9
MAX_CREDIT_PER_TERM = 2.0


def tokenize_query(query: str) -> List[str]:
    return query.split()


def contact_search_text(contact: Contact) -> str:
    """Concatenated fields used for snippets."""
    return " ".join([
        contact.name or "",
        contact.email or "",
        contact.phone or "",
        ", ".join(contact.tags),
    ])


def score_contact(contact: Contact, terms: Sequence[str]) -> Tuple[float, Optional[MatchedField]]:
    """Score ``contact`` against query ``terms``.

    Returns ``(score, matched_field)``; ``matched_field`` is ``None`` when
    nothing matched. Runs of whitespace in the name count as one space.
    """
    query_terms = [term.lower() for term in terms if term]
    if not query_terms:
        return 0.0, None

    name = " ".join((contact.name or "").lower().split())
    fields = {
        MatchedField.NAME: name,
        MatchedField.EMAIL: (contact.email or "").lower(),
        MatchedField.PHONE: (contact.phone or "").lower(),
        MatchedField.TAG: " ".join(contact.tags).lower(),
    }

    if name == " ".join(query_terms):
        return EXACT_NAME_SCORE, MatchedField.NAME

    name_words = name.split()
    if name_words and all(any(word.startswith(term) for word in name_words) for term in query_terms):
        return NAME_PREFIX_SCORE, MatchedField.NAME

    credit = 0.0
    matched_fields: Set[MatchedField] = set()
    for term in query_terms:
        for matched_field, value in fields.items():
            if value and term in value:
                if matched_field is MatchedField.NAME and value == term:
                    credit += EXACT_TERM_NAME_WEIGHT
                else:
                    credit += FIELD_WEIGHTS[matched_field]
                matched_fields.add(matched_field)

    if not matched_fields:
        return 0.0, None

    score = min(credit / (len(query_terms) * MAX_CREDIT_PER_TERM), 1.0)
    matched_field = next(f for f in KEYWORD_FIELD_PRIORITY if f in matched_fields)
    return score, matched_field


class KeywordIndex:
    """Keyword search implemented as a live query over a ``ContactDirectory``."""

    def __init__(self, directory: ContactDirectory, snippet_length: int = 100):
        self.directory = directory
        self.snippet_length = snippet_length

    async def search(self, query: str, limit: int = 10, min_score: float = 0.0) -> List[KeywordMatch]:
        """Score every contact and return the best ``limit`` matches."""
        terms = tokenize_query(query)
        if not terms or limit <= 0:
            return []

        contacts = await self.directory.list_all()
        ranked: List[Tuple[Tuple[float, int, str], KeywordMatch]] = []
        for contact in contacts:
            score, matched_field = score_contact(contact, terms)
            if matched_field is None or score <= 0.0 or score < min_score:
                continue
            match = KeywordMatch(
                contact_id=contact.id,
                score=score,
                matched_field=matched_field,
                snippet=best_window_snippet(contact_search_text(contact), terms, self.snippet_length),
            )
            sort_key = (-score, KEYWORD_FIELD_PRIORITY.index(matched_field), (contact.name or "").lower())
            ranked.append((sort_key, match))

        ranked.sort(key=lambda item: item[0])
        results = [match for _, match in ranked[:limit]]

        logger.debug(
            "Keyword search completed",
            terms=len(terms),
            scanned=len(contacts),
            results_count=len(results)
        )
        return results

    # Maintenance hooks: the live view reads the directory on every query.

    async def add_contact(self, contact: Contact) -> None:
        logger.debug("Keyword index add is a no-op for the live view", contact_id=contact.id)

    async def update_contact(self, contact_id: str, **updates) -> None:
        logger.debug("Keyword index update is a no-op for the live view", contact_id=contact_id)

    async def remove_contact(self, contact_id: str) -> None:
        logger.debug("Keyword index removal is a no-op for the live view", contact_id=contact_id)

    async def rebuild(self) -> None:
        logger.debug("Keyword index rebuild is a no-op for the live view")
