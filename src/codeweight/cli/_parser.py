"""Argparse parser definition for the codeweight CLI."""

from __future__ import annotations

import argparse

from codeweight import defaults


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeweight",
        description="Intent and risk weights for call paths of a code knowledge graph",
    )
    parser.add_argument("--log-level", help="Override CODEWEIGHT_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command")

    _register_graph_commands(sub)
    _register_query_commands(sub)
    _register_score_commands(sub)
    return parser


def _graph_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--graph", required=True, help="Graph facts JSON (classes, methods, edges)")
    p.add_argument("--max-depth", type=int, help=f"Call tree depth cap (default {defaults.TREE_MAX_DEPTH})")
    p.add_argument("--lenient", action="store_true", help="Freeze despite dangling references")


def _register_graph_commands(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("stats", help="Graph statistics")
    _graph_args(p)

    p = sub.add_parser("validate", help="Check graph facts for dangling references")
    p.add_argument("--graph", required=True)

    p = sub.add_parser("export", help="Render the Neo4j import script")
    _graph_args(p)
    p.add_argument("--out", help="Write the script here instead of stdout")
    p.add_argument("--generated-at", help="Fixed timestamp for the header line")

    p = sub.add_parser("load", help="Export and load the graph into Neo4j")
    _graph_args(p)

    p = sub.add_parser("trees", help="Call trees and core paths")
    _graph_args(p)
    p.add_argument("--core-paths", action="store_true", help="Include core paths")


def _register_query_commands(sub: argparse._SubParsersAction) -> None:
    # -- query --
    query_p = sub.add_parser("query", help="Structural graph queries")
    query_sub = query_p.add_subparsers(dest="query_cmd")

    def common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--graph", help="Graph facts JSON (required for the memory backend)")
        p.add_argument("--max-depth", type=int)
        p.add_argument("--lenient", action="store_true")
        p.add_argument("--backend", choices=["memory", "neo4j"], default="memory")

    for name, help_text in (
        ("callers", "Direct callers of a method"),
        ("callees", "Direct callees of a method"),
        ("blast", "Blast radius of a method"),
    ):
        p = query_sub.add_parser(name, help=help_text)
        common(p)
        p.add_argument("--class", dest="class_name", required=True)
        p.add_argument("--method", required=True)

    p = query_sub.add_parser("architecture", help="Architectural position of a class")
    common(p)
    p.add_argument("--class", dest="class_name", required=True)

    p = query_sub.add_parser("chain", help="Shortest call chain between two methods")
    common(p)
    p.add_argument("--from", dest="source", required=True, help="Class.method")
    p.add_argument("--to", dest="target", required=True, help="Class.method")


def _register_score_commands(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("score", help="Intent and risk weights for call paths")
    _graph_args(p)
    p.add_argument("--paths", help="Call paths JSON; default: core paths of the call trees")
    p.add_argument("--changes", help="Change context JSON")
    p.add_argument("--backend", choices=["memory", "neo4j"], default="memory")
    p.add_argument("--workers", type=int)
    p.add_argument("--deadline", type=float, help="Run deadline in seconds")
