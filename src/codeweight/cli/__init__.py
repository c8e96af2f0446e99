"""CLI for codeweight: JSON in, JSON out.

Commands:
  codeweight stats | validate | export | load | trees
  codeweight query {callers, callees, architecture, chain, blast}
  codeweight score
"""

from __future__ import annotations

import logging
import sys

from codeweight.cli._helpers import _out
from codeweight.cli._parser import build_parser
from codeweight.cli.graph_cmds import (
    cmd_export,
    cmd_load,
    cmd_query_architecture,
    cmd_query_blast,
    cmd_query_callees,
    cmd_query_callers,
    cmd_query_chain,
    cmd_stats,
    cmd_trees,
    cmd_validate,
)
from codeweight.cli.score_cmds import cmd_score
from codeweight.config import Settings
from codeweight.errors import CodeweightError
from codeweight.observability import setup_logging

log = logging.getLogger("codeweight.cli")


# ===================================================================
# Dispatch
# ===================================================================

_DISPATCH = {
    ("stats", None): cmd_stats,
    ("validate", None): cmd_validate,
    ("export", None): cmd_export,
    ("load", None): cmd_load,
    ("trees", None): cmd_trees,
    ("query", "callers"): cmd_query_callers,
    ("query", "callees"): cmd_query_callees,
    ("query", "architecture"): cmd_query_architecture,
    ("query", "chain"): cmd_query_chain,
    ("query", "blast"): cmd_query_blast,
    ("score", None): cmd_score,
}

# Map subcmd attr names to the dispatch key
_SUBCMD_ATTR = {
    "query": "query_cmd",
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if not args.command:
        parser.print_help()
        return 1

    args.settings = Settings.from_env()
    setup_logging(args.log_level or args.settings.log_level)

    subcmd_attr = _SUBCMD_ATTR.get(args.command)
    subcmd = getattr(args, subcmd_attr, None) if subcmd_attr else None
    handler = _DISPATCH.get((args.command, subcmd))
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except CodeweightError as e:
        log.error("%s failed: %s", args.command, e, extra={"command": args.command})
        return _out({"error": str(e), "type": type(e).__name__})
