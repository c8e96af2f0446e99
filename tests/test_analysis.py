"""Tests for parallel scoring runs."""

import time

from codeweight.analysis import analyze, relate_changes, score_call_paths
from codeweight.errors import QueryUnavailable
from codeweight.interfaces import apply_implementations
from codeweight.models import CallPath, ChangedFile, GitChangeContext
from codeweight.node_weights import assign_node_weights
from codeweight.trees import CallTreeBuilder

from conftest import order_facts

ORDER_PATH = CallPath(
    "order-flow",
    ("OrderController.placeOrder", "OrderService.createOrder", "OrderRepository.save"),
)


class _SlowFor:
    """Delegating query backend that stalls on one class."""

    def __init__(self, inner, slow_class: str, delay: float) -> None:
        self.inner = inner
        self.slow_class = slow_class
        self.delay = delay

    def query_method_callees(self, class_name, method_name):
        if class_name == self.slow_class:
            time.sleep(self.delay)
        return self.inner.query_method_callees(class_name, method_name)

    def __getattr__(self, name):
        return getattr(self.inner, name)


class _ArchitectureDown:
    def __init__(self, inner) -> None:
        self.inner = inner

    def query_class_architecture(self, class_name):
        raise QueryUnavailable("architecture backend down")

    def __getattr__(self, name):
        return getattr(self.inner, name)


class TestAnalyze:
    def test_scores_every_core_path(self, order_graph):
        report = analyze(order_graph, query_backoff=0)
        assert len(report.scored) == 2
        assert report.timed_out == []
        for s in report.scored:
            assert 0.0 <= s.intent_weight <= 100.0
            assert 0.0 <= s.risk_weight <= 100.0

    def test_freezes_unfrozen_graph(self):
        g = order_facts()
        apply_implementations(g)
        CallTreeBuilder(g).apply()
        assign_node_weights(g)
        assert not g.frozen
        analyze(g, query_backoff=0)
        assert g.frozen

    def test_report_dict(self, order_graph):
        data = analyze(order_graph, paths=[ORDER_PATH], query_backoff=0).to_dict()
        assert data["total_paths"] == 1
        assert data["scored"][0]["path_id"] == "order-flow"
        assert data["scored"][0]["classes"] == ["OrderController", "OrderService", "OrderRepository"]
        assert data["degraded"] == {}


class TestScoreCallPaths:
    def test_keeps_input_order(self, order_queries):
        paths = [CallPath(f"p{i}", ORDER_PATH.methods) for i in range(6)]
        report = score_call_paths(paths, order_queries, workers=3)
        assert [s.path_id for s in report.scored] == [f"p{i}" for i in range(6)]

    def test_deadline_reports_unfinished_paths(self, order_queries):
        slow = _SlowFor(order_queries, "Slow", delay=1.0)
        paths = [CallPath("fast", ("OrderService.createOrder",)), CallPath("stuck", ("Slow.run",))]
        started = time.monotonic()
        report = score_call_paths(paths, slow, workers=2, deadline=0.2)
        assert time.monotonic() - started < 0.9
        assert [s.path_id for s in report.scored] == ["fast"]
        assert report.timed_out == ["stuck"]
        assert report.to_dict()["total_paths"] == 2

    def test_degraded_signals_reported(self, order_queries):
        report = score_call_paths([ORDER_PATH], _ArchitectureDown(order_queries))
        [scored] = report.scored
        assert "architecture_risk" in scored.degraded
        assert "architecture_value" in scored.degraded
        assert "business_impact" in scored.degraded
        assert report.degraded == {"order-flow": list(scored.degraded)}

    def test_empty_input(self, order_queries):
        report = score_call_paths([], order_queries)
        assert report.scored == [] and report.timed_out == []


class TestRelateChanges:
    def test_matches_file_stem_to_class(self):
        ctx = GitChangeContext(changed_files=(
            ChangedFile("src/main/java/com/shop/OrderService.java", added_lines=3),
            ChangedFile("README.md"),
        ))
        related = relate_changes(ORDER_PATH, ctx).related_changes
        assert [f.path for f in related] == ["src/main/java/com/shop/OrderService.java"]

    def test_existing_changes_kept(self):
        own = CallPath("p", ORDER_PATH.methods, related_changes=(ChangedFile("x/Other.java"),))
        ctx = GitChangeContext(changed_files=(ChangedFile("OrderService.java"),))
        assert relate_changes(own, ctx) is own

    def test_no_context(self):
        assert relate_changes(ORDER_PATH, None) is ORDER_PATH

    def test_change_context_shifts_scores(self, order_queries):
        ctx = GitChangeContext(
            changed_files=(ChangedFile("src/OrderController.java", added_lines=120),),
            added_lines=120,
        )
        with_ctx = score_call_paths([ORDER_PATH], order_queries, ctx).scored[0]
        without = score_call_paths([ORDER_PATH], order_queries).scored[0]
        assert with_ctx.intent_components["git"] > 0
        assert with_ctx.intent_weight > without.intent_weight

