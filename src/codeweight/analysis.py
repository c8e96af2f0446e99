"""Analysis run: score call paths in parallel under a run deadline.

Scoring starts only after the graph barrier (``freeze``).  Each path is an
independent task; calculators are stateless and the graph is read-only, so
workers share them without locking.  Paths still pending when the deadline
passes are reported in ``timed_out`` instead of blocking the run.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from typing import Any

from codeweight import defaults
from codeweight.graph import KnowledgeGraph
from codeweight.models import CallPath, GitChangeContext, ScoredCallPath, now_iso
from codeweight.ports import GraphQueryPort
from codeweight.queries import InMemoryQueryService
from codeweight.resilience import ResilientQueryService
from codeweight.trees import call_paths_from_trees
from codeweight.weights import IntentWeightCalculator, RiskWeightCalculator

log = logging.getLogger("codeweight.analysis")


@dataclass
class AnalysisReport:
    scored: list[ScoredCallPath] = field(default_factory=list)
    timed_out: list[str] = field(default_factory=list)
    generated_at: str = field(default_factory=now_iso)
    duration_ms: float = 0.0

    @property
    def degraded(self) -> dict[str, list[str]]:
        """Path id -> degraded signal names, for paths with any."""
        return {s.path_id: list(s.degraded) for s in self.scored if s.degraded}

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "duration_ms": round(self.duration_ms, 1),
            "total_paths": len(self.scored) + len(self.timed_out),
            "scored": [s.to_dict() for s in self.scored],
            "degraded": self.degraded,
            "timed_out": list(self.timed_out),
        }


# ---------------------------------------------------------------------------
# Change attribution
# ---------------------------------------------------------------------------

def relate_changes(path: CallPath, context: GitChangeContext | None) -> CallPath:
    """Attach changed files whose name matches a class on *path*.

    Paths that already carry related changes are returned unchanged.
    """
    if path.related_changes or context is None or context.is_empty:
        return path
    classes = set(path.class_names)
    related = tuple(
        f for f in context.changed_files
        if PurePosixPath(f.path.replace("\\", "/")).stem in classes
    )
    return replace(path, related_changes=related) if related else path


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def score_path(
    path: CallPath,
    intent: IntentWeightCalculator,
    risk: RiskWeightCalculator,
    context: GitChangeContext | None = None,
) -> ScoredCallPath:
    path = relate_changes(path, context)
    i = intent.calculate(path, context)
    r = risk.calculate(path, context)
    return ScoredCallPath(
        path_id=path.id,
        methods=path.methods,
        classes=tuple(path.class_names),
        intent_weight=i.weight,
        risk_weight=r.weight,
        intent_components=dict(i.components),
        risk_components=dict(r.components),
        degraded=tuple(dict.fromkeys(i.degraded + r.degraded)),
    )


def score_call_paths(
    paths: list[CallPath],
    queries: GraphQueryPort,
    context: GitChangeContext | None = None,
    workers: int = defaults.SCORE_WORKERS,
    deadline: float = defaults.RUN_DEADLINE_SECONDS,
) -> AnalysisReport:
    """Score *paths* on a thread pool; results keep input order."""
    intent = IntentWeightCalculator(queries)
    risk = RiskWeightCalculator(queries)
    start = time.monotonic()
    report = AnalysisReport()
    if not paths:
        return report

    pool = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="codeweight-score")
    try:
        futures = [pool.submit(score_path, p, intent, risk, context) for p in paths]
        done, _ = wait(futures, timeout=deadline)
        for path, future in zip(paths, futures):
            if future in done:
                report.scored.append(future.result())
            else:
                future.cancel()
                report.timed_out.append(path.id)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    report.duration_ms = (time.monotonic() - start) * 1000
    if report.timed_out:
        log.warning(
            "Run deadline %.1fs passed with %d of %d paths unscored",
            deadline, len(report.timed_out), len(paths),
            extra={"duration_ms": round(report.duration_ms, 1)},
        )
    log.info(
        "Scored %d paths (%d degraded) with %d workers",
        len(report.scored), len(report.degraded), workers,
        extra={"duration_ms": round(report.duration_ms, 1)},
    )
    return report


def analyze(
    graph: KnowledgeGraph,
    paths: list[CallPath] | None = None,
    context: GitChangeContext | None = None,
    queries: GraphQueryPort | None = None,
    workers: int = defaults.SCORE_WORKERS,
    deadline: float = defaults.RUN_DEADLINE_SECONDS,
    query_timeout: float = defaults.QUERY_TIMEOUT_SECONDS,
    query_retries: int = defaults.QUERY_MAX_ATTEMPTS,
    query_backoff: float = defaults.QUERY_BASE_DELAY,
) -> AnalysisReport:
    """Full run over *graph*: barrier, derive paths, score.

    Without explicit *paths* every core path of the graph's call trees is
    scored.  Without *queries* the in-memory backend is used, wrapped in
    ``ResilientQueryService``.
    """
    if not graph.frozen:
        graph.freeze()
    if paths is None:
        paths = call_paths_from_trees(graph)
    if queries is None:
        queries = ResilientQueryService(
            InMemoryQueryService(graph),
            timeout=query_timeout,
            max_attempts=query_retries,
            base_delay=query_backoff,
        )
    return score_call_paths(paths, queries, context, workers=workers, deadline=deadline)
