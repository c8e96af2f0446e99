"""CLI command: score call paths."""

from __future__ import annotations

import argparse

from codeweight.cli._helpers import _load_graph, _out, _query_service, _settings


def cmd_score(args: argparse.Namespace) -> int:
    from codeweight import analysis, ingest
    settings = _settings(args)
    graph = _load_graph(args)
    context = ingest.load_change_context(args.changes)
    paths = None
    if args.paths:
        paths = ingest.parse_call_paths(ingest.load_json(args.paths), context)
    with _query_service(args, graph) as queries:
        report = analysis.analyze(
            graph,
            paths=paths,
            context=context,
            queries=queries,
            workers=args.workers or settings.score_workers,
            deadline=args.deadline if args.deadline is not None else settings.run_deadline,
        )
    return _out(report.to_dict())
