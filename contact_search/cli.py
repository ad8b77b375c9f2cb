#!/usr/bin/env python3
"""Command line entry point: search contacts loaded from JSON files."""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

import structlog

from .common.config import SearchConfig
from .common.logging import configure_logging
from .directory import InMemoryContactDirectory, InMemoryConversationStore
from .embeddings.provider import EmbeddingProvider, HttpEmbeddingProvider
from .hybrid.search_manager import HybridSearchService
from .models import SearchResult

logger = structlog.get_logger("contact_search.cli")


def create_embedding_provider(config: SearchConfig) -> EmbeddingProvider:
    """Provider used by the CLI; the HTTP provider configured from the environment."""
    return HttpEmbeddingProvider.from_config(config)


def format_result(rank: int, result: SearchResult) -> str:
    field = result.matched_field.value if result.matched_field else "-"
    line = f"{rank:>3}. {result.name} ({result.contact_id})  score={result.score:.3f}  field={field}"
    if result.snippet:
        line += f"\n     {result.snippet}"
    return line


async def run_search(args: argparse.Namespace, config: SearchConfig) -> int:
    """Build the index from the given files and run one query."""
    directory = InMemoryContactDirectory.from_json(args.contacts)
    conversations = InMemoryConversationStore.from_json(args.conversations) if args.conversations else None
    provider = create_embedding_provider(config)

    try:
        service = HybridSearchService(directory, provider, config=config, conversations=conversations)
        await service.initialize()

        if args.command == "tags":
            results = await service.search_tags_only(args.query)
        else:
            results = await service.search(args.query)
        debug_rows = service.get_last_debug() if args.debug else []
    finally:
        aclose = getattr(provider, "aclose", None)
        if aclose is not None:
            await aclose()

    if args.json:
        payload = {"query": args.query, "results": [r.to_dict() for r in results]}
        if args.debug:
            payload["debug"] = [row.to_dict() for row in debug_rows]
        print(json.dumps(payload, indent=2))
        return 0

    if not results:
        print(f"No contacts match '{args.query}'")
        return 0

    for rank, result in enumerate(results, start=1):
        print(format_result(rank, result))

    if args.debug:
        print("\nScore breakdown:")
        for row in debug_rows:
            print(
                f"  {row.contact_id}: semantic={row.semantic:.3f} "
                f"keyword={row.keyword:.3f} final={row.final:.3f} document={row.document_id or '-'}"
            )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contact-search", description="Hybrid semantic and keyword contact search")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("search", "Hybrid search over names, fields, tags and conversations"),
        ("tags", "Semantic search over contact tags only"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("query", help="Search query")
        sub.add_argument("--contacts", required=True, help="JSON file with a list of contacts")
        sub.add_argument("--conversations", help="JSON file with a list of conversations")
        sub.add_argument("--max-results", type=int, help="Override the configured result limit")
        sub.add_argument("--debug", action="store_true", help="Print the per-contact score breakdown")
        sub.add_argument("--json", action="store_true", help="Print machine-readable JSON")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function for CLI."""
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.max_results is not None:
        overrides["max_results"] = args.max_results

    try:
        # ValidationError is a ValueError
        config = SearchConfig(**overrides)
        configure_logging("contact-search", config.log_level, config.log_format)
        return asyncio.run(run_search(args, config))
    except (OSError, ValueError, KeyError) as e:
        logger.error("Search failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
