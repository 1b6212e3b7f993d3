"""
`alerta-rag` command line.

Commands
--------
alerta-rag index RULES.yaml            -- embed rules missing from the store
alerta-rag index RULES.yaml --force    -- re-embed every rule
alerta-rag search "<query>"            -- semantic search over indexed rules
alerta-rag search "<query>" --top-k 3
alerta-rag search "<query>" --rules RULES.yaml   -- index first (memory stores)
alerta-rag stats                       -- store and configuration summary

Global options: ``--config PATH``, ``--verbose``.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Optional

import yaml

from .config import Config
from .errors import RagError
from .logging_setup import setup_logger
from .rules import load_rules
from .service import RetrievalService, build_service

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_rules_or_exit(path: str):
    try:
        return load_rules(path)
    except (OSError, yaml.YAMLError) as exc:
        print(f"Cannot read rule catalog {path}: {exc}", file=sys.stderr)
        sys.exit(1)


def _service(args: argparse.Namespace, show_progress: bool = False) -> RetrievalService:
    try:
        return build_service(args.config_obj, show_progress=show_progress)
    except (RagError, ValueError) as exc:
        print(f"Cannot start retrieval service: {exc}", file=sys.stderr)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_index(args: argparse.Namespace) -> None:
    """Embed business rules into the vector store."""
    rules = _load_rules_or_exit(args.rules)
    service = _service(args, show_progress=True)

    t0 = time.perf_counter()
    summary = service.indexer.index_all(rules, force=args.force)
    elapsed = time.perf_counter() - t0

    print(
        f"\nIndex complete:\n"
        f"  Total rules : {summary.total}\n"
        f"  Indexed     : {summary.indexed}\n"
        f"  Skipped     : {summary.skipped}\n"
        f"  Failed      : {summary.failed}\n"
        f"  Time        : {elapsed:.1f}s"
    )
    unpersisted = service.store.unpersisted_ids()
    if unpersisted:
        print(f"  Warning     : {len(unpersisted)} embedding(s) not persisted", file=sys.stderr)


def _cmd_search(args: argparse.Namespace) -> None:
    """Semantic search over indexed rules."""
    service = _service(args)
    if args.rules:
        service.indexer.index_all(_load_rules_or_exit(args.rules))

    t0 = time.perf_counter()
    results = service.retriever.search(args.query, k=args.top_k)
    elapsed_ms = (time.perf_counter() - t0) * 1000

    if not results:
        print(f"No related rules found for: {args.query!r}")
        return

    print(f"\nRelated rules for: {args.query!r}  [{len(results)} result(s)]")
    print("-" * 60)
    for i, match in enumerate(results, 1):
        print(f"  [{i}] {match.entity_id}  score={match.score:.4f}")
    print(f"\n  Search time: {elapsed_ms:.1f}ms")


def _cmd_stats(args: argparse.Namespace) -> None:
    """Show store and configuration summary."""
    config: Config = args.config_obj
    service = _service(args)
    hydration = service.store.last_hydration
    print(
        f"Embedding provider : {service.provider.tag} (dim={service.provider.dimension()})\n"
        f"Vector store       : {config.vector_store.type} ({config.vector_store.db_path})\n"
        f"  In memory        : {service.store.size()}\n"
        f"  Persisted        : {service.store.persisted_count()} row(s), all providers\n"
        f"  Hydration        : loaded={hydration.loaded} skipped={hydration.skipped} "
        f"stale={hydration.stale}\n"
        f"  Threshold        : {service.store.similarity_threshold}\n"
        f"Query cache        : enabled={config.query_cache.enabled} "
        f"ttl={config.query_cache.ttl_minutes}min max_entries={config.query_cache.max_entries}"
    )


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alerta-rag",
        description="Semantic retrieval of business rules for pull-request risk scoring",
    )
    parser.add_argument("--config", help="Path to .alerta-rag.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="cmd", metavar="COMMAND")
    subparsers.required = True

    index_p = subparsers.add_parser("index", help="Embed business rules from a YAML catalog")
    index_p.add_argument("rules", help="YAML file with businessRules")
    index_p.add_argument("--force", action="store_true",
                         help="Re-embed rules that already have an embedding")
    index_p.set_defaults(func=_cmd_index)

    search_p = subparsers.add_parser("search", help="Find rules related to a query")
    search_p.add_argument("query", help="Natural-language query")
    search_p.add_argument("--top-k", type=int, default=None, dest="top_k",
                          help="Maximum number of results")
    search_p.add_argument("--rules", help="Index this catalog before searching")
    search_p.set_defaults(func=_cmd_search)

    stats_p = subparsers.add_parser("stats", help="Show store and configuration summary")
    stats_p.set_defaults(func=_cmd_stats)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = Config.load(args.config)
    setup_logger(config.LOG_DIR or None,
                 level=logging.DEBUG if args.verbose else logging.WARNING)
    args.config_obj = config
    args.func(args)


if __name__ == "__main__":
    main()
