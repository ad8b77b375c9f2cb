"""Snippet builders for search results."""

from typing import Sequence

ELLIPSIS = "..."


def truncate_snippet(content: str, max_length: int = 150) -> str:
    """Cut ``content`` to ``max_length``, preferring a word boundary near the end."""
    content = content.strip()
    if len(content) <= max_length:
        return content

    truncated = content[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + ELLIPSIS
    return truncated + ELLIPSIS


def best_window_snippet(content: str, terms: Sequence[str], window: int = 100) -> str:
    """Return the ``window``-sized slice of ``content`` containing the most terms.

    The first window with the highest count wins. Ellipses mark a window that
    does not touch the start or end of ``content``.
    """
    if len(content) <= window:
        return content.strip()

    lowered = content.lower()
    needles = [term.lower() for term in terms if term]

    best_start = 0
    max_matches = 0
    for start in range(len(content) - window + 1):
        segment = lowered[start:start + window]
        matches = sum(1 for needle in needles if needle in segment)
        if matches > max_matches:
            max_matches = matches
            best_start = start

    snippet = content[best_start:best_start + window]
    if best_start > 0:
        snippet = ELLIPSIS + snippet
    if best_start + window < len(content):
        snippet = snippet + ELLIPSIS
    return snippet.strip()
