"""Shared plumbing for the intent and risk calculators."""

from __future__ import annotations

import logging
from typing import Callable

from codeweight import defaults
from codeweight.errors import QueryUnavailable
from codeweight.models import CallPath, split_method_path
from codeweight.ports import GraphQueryPort

log = logging.getLogger("codeweight.weights")


def clamp_score(raw: float) -> float:
    return max(defaults.SCORE_MIN, min(defaults.SCORE_MAX, raw))


def method_parts(path: CallPath) -> list[tuple[str, str] | None]:
    """``(class, method)`` per path entry; ``None`` for entries without a dot."""
    return [split_method_path(m) for m in path.methods]


def method_pairs(path: CallPath) -> list[tuple[tuple[str, str], tuple[str, str]]]:
    parts = method_parts(path)
    return [(a, b) for a, b in zip(parts, parts[1:]) if a is not None and b is not None]


class _Calculator:
    """Base: holds the query port and evaluates sub-scores with degradation."""

    def __init__(self, queries: GraphQueryPort) -> None:
        self.queries = queries

    def _guarded(
        self,
        name: str,
        func: Callable[[CallPath], float],
        path: CallPath,
        degraded: list[str],
    ) -> float:
        try:
            return func(path)
        except QueryUnavailable as e:
            log.warning(
                "Signal %s degraded for path %s: %s", name, path.id, e,
                extra={"path_id": path.id},
            )
            degraded.append(name)
            return 0.0
