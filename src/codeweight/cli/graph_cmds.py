"""CLI commands: graph build, validation, export, load, trees and queries."""

from __future__ import annotations

import argparse
import sys

from codeweight.cli._helpers import _load_graph, _out, _query_service, _settings
from codeweight.models import split_method_path


def cmd_stats(args: argparse.Namespace) -> int:
    graph = _load_graph(args)
    return _out({
        "project": graph.metadata.project_name,
        "build_time": graph.metadata.build_time,
        **graph.get_statistics().to_dict(),
    })


def cmd_validate(args: argparse.Namespace) -> int:
    from codeweight.ingest import load_json, populate_graph
    graph = populate_graph(load_json(args.graph))
    issues = graph.validate()
    if issues:
        return _out({
            "error": f"{len(issues)} validation issue(s)",
            "issues": [{"kind": i.kind, "entity_id": i.entity_id, "detail": i.detail} for i in issues],
        })
    return _out({"valid": True, "issues": []})


def cmd_export(args: argparse.Namespace) -> int:
    from codeweight.exporter import CypherExporter
    graph = _load_graph(args)
    exporter = CypherExporter(graph)
    if args.out:
        path = exporter.write(args.out, generated_at=args.generated_at)
        return _out({"written": str(path), **graph.get_statistics().to_dict()})
    sys.stdout.write(exporter.render(generated_at=args.generated_at))
    return 0


def cmd_load(args: argparse.Namespace) -> int:
    from codeweight.adapters.neo4j_store import load_script
    from codeweight.exporter import CypherExporter
    graph = _load_graph(args)
    script = CypherExporter(graph).render()
    settings = _settings(args)
    count = load_script(settings.neo4j_config(), script)
    return _out({"loaded_statements": count, "uri": settings.neo4j_uri, "database": settings.neo4j_database})


def cmd_trees(args: argparse.Namespace) -> int:
    graph = _load_graph(args)
    result: dict = {"trees": [t.to_dict() for t in graph.trees()]}
    if args.core_paths:
        result["core_paths"] = [p.to_dict() for p in graph.core_paths()]
    return _out(result)


# ---------------------------------------------------------------------------
# query
# ---------------------------------------------------------------------------

def _query_target(args: argparse.Namespace):
    graph = _load_graph(args) if args.graph else None
    return _query_service(args, graph)


def cmd_query_callers(args: argparse.Namespace) -> int:
    with _query_target(args) as queries:
        return _out(queries.query_method_callers(args.class_name, args.method).to_dict())


def cmd_query_callees(args: argparse.Namespace) -> int:
    with _query_target(args) as queries:
        return _out(queries.query_method_callees(args.class_name, args.method).to_dict())


def cmd_query_architecture(args: argparse.Namespace) -> int:
    with _query_target(args) as queries:
        return _out(queries.query_class_architecture(args.class_name).to_dict())


def cmd_query_chain(args: argparse.Namespace) -> int:
    source = split_method_path(args.source)
    target = split_method_path(args.target)
    if source is None or target is None:
        return _out({"error": "--from and --to take Class.method"})
    with _query_target(args) as queries:
        return _out(queries.query_call_path_chain(*source, *target).to_dict())


def cmd_query_blast(args: argparse.Namespace) -> int:
    with _query_target(args) as queries:
        return _out(queries.query_blast_radius(args.class_name, args.method).to_dict())
