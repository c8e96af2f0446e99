"""Shared CLI helpers."""

from __future__ import annotations

import argparse
import contextlib
import json
from typing import Any, Iterator

from codeweight.config import Settings
from codeweight.errors import CodeweightError
from codeweight.graph import KnowledgeGraph
from codeweight.ports import GraphQueryPort


def _out(data: Any) -> int:
    print(json.dumps(data, indent=2, default=str))
    if isinstance(data, dict) and "error" in data:
        return 1
    return 0


def _settings(args: argparse.Namespace) -> Settings:
    settings: Settings = getattr(args, "settings", None) or Settings.from_env()
    if getattr(args, "max_depth", None) is not None:
        settings.tree_max_depth = args.max_depth
    return settings


def _load_graph(args: argparse.Namespace) -> KnowledgeGraph:
    from codeweight.ingest import load_graph
    settings = _settings(args)
    return load_graph(args.graph, max_depth=settings.tree_max_depth, strict=not args.lenient)


@contextlib.contextmanager
def _query_service(args: argparse.Namespace, graph: KnowledgeGraph | None) -> Iterator[GraphQueryPort]:
    """In-memory backend over *graph*, or Neo4j with ``--backend neo4j``.

    The Neo4j driver is closed when the block exits.
    """
    from codeweight.resilience import ResilientQueryService
    settings = _settings(args)
    if args.backend == "neo4j":
        from codeweight.adapters.neo4j_store import Neo4jQueryService
        neo4j = Neo4jQueryService(settings.neo4j_config())
        inner: GraphQueryPort = neo4j
    else:
        from codeweight.queries import InMemoryQueryService
        if graph is None:
            raise CodeweightError("--graph is required with the memory backend")
        neo4j = None
        inner = InMemoryQueryService(graph)
    try:
        yield ResilientQueryService(
            inner,
            timeout=settings.query_timeout,
            max_attempts=settings.query_retries,
            base_delay=settings.query_backoff,
        )
    finally:
        if neo4j is not None:
            neo4j.close()
