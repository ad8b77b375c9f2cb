"""Lexical (keyword) search over contact fields."""

from .index import KeywordIndex, contact_search_text, score_contact, tokenize_query

__all__ = ["KeywordIndex", "contact_search_text", "score_contact", "tokenize_query"]
