"""Tests for intent and risk weights over call paths."""

import pytest

from codeweight.errors import QueryUnavailable
from codeweight.models import (
    BlastRadiusInfo,
    CallPath,
    CallPathChainInfo,
    ChangedFile,
    ClassArchitectureInfo,
    FileChangeType,
    GitChangeContext,
    GitCommit,
)
from codeweight.weights import IntentWeightCalculator, RiskWeightCalculator, intent_git_score, risk_git_score
from codeweight.weights.git_signals import config_change_risk, deletion_risk, file_type_impact, sensitive_file_risk
from codeweight.weights.intent import pair_completeness, single_method_completeness
from codeweight.weights.risk import method_blast_risk, single_class_layer_risk, violation_severity

ORDER_PATH = CallPath(
    id="order-flow",
    methods=("OrderController.placeOrder", "OrderService.createOrder", "OrderRepository.save"),
    description="Place an order",
)


def _chain(**kw) -> CallPathChainInfo:
    defaults = dict(found=True, path_length=1, layers_in_path=("CONTROLLER", "SERVICE"))
    defaults.update(kw)
    return CallPathChainInfo(**defaults)


def _context(**kw) -> GitChangeContext:
    defaults = dict(
        source_branch="feature/checkout",
        target_branch="main",
        changed_files=(ChangedFile("src/main/java/com/shop/OrderController.java", added_lines=40),),
        added_lines=40,
        commits=(GitCommit("abc123", "Add checkout endpoint"),),
    )
    defaults.update(kw)
    return GitChangeContext(**defaults)


class _BlastDown:
    """Delegates every query except blast radius, which is unavailable."""

    def __init__(self, inner) -> None:
        self.inner = inner

    def query_blast_radius(self, class_name, method_name):
        raise QueryUnavailable("blast radius backend down")

    def __getattr__(self, name):
        return getattr(self.inner, name)


# ---------------------------------------------------------------------------
# Pure scorers
# ---------------------------------------------------------------------------

class TestPairCompleteness:
    def test_direct_clean_pair(self):
        assert pair_completeness(_chain()) == 80.0

    def test_capped(self):
        chain = _chain(path_length=2, layers_in_path=("CONTROLLER", "SERVICE", "REPOSITORY"))
        assert pair_completeness(chain) == 80.0

    def test_violation_scores_lower(self):
        assert pair_completeness(_chain(has_layer_violations=True)) == 60.0

    def test_missing_pair_scores_zero(self):
        assert pair_completeness(CallPathChainInfo()) == 0.0

    def test_single_method(self):
        blast = BlastRadiusInfo(direct_callers=1, direct_callees=1, affected_layers=("CONTROLLER", "REPOSITORY"))
        assert single_method_completeness(blast) == 46.0


class TestRiskScorers:
    def test_violation_severity(self):
        assert violation_severity(_chain()) == 0.0
        long_chain = _chain(
            has_layer_violations=True, path_length=5,
            layers_in_path=("CONTROLLER", "SERVICE", "REPOSITORY", "UTIL", "ENTITY"),
        )
        assert violation_severity(long_chain) == 55.0

    def test_quiet_method_blast(self):
        assert method_blast_risk(BlastRadiusInfo(found=True)) == 15.0

    def test_single_class_layer_risk(self):
        ok = ClassArchitectureInfo("OrderService", layer="SERVICE", dependency_layers=("REPOSITORY",))
        bad = ClassArchitectureInfo("OrderController", layer="CONTROLLER", dependency_layers=("REPOSITORY", "UTIL"))
        assert single_class_layer_risk(ok) == 0.0
        assert single_class_layer_risk(bad) == 30.0


# ---------------------------------------------------------------------------
# Calculators over the order flow
# ---------------------------------------------------------------------------

class TestIntentCalculator:
    def test_chain_completeness_of_clean_flow(self, order_queries):
        assert IntentWeightCalculator(order_queries).chain_completeness(ORDER_PATH) == 80.0

    def test_weight_in_range(self, order_queries):
        result = IntentWeightCalculator(order_queries).calculate(ORDER_PATH)
        assert 0.0 <= result.weight <= 100.0
        assert result.components["git"] == 0.0
        assert result.degraded == ()

    def test_change_context_raises_intent(self, order_queries):
        calc = IntentWeightCalculator(order_queries)
        path = CallPath(ORDER_PATH.id, ORDER_PATH.methods, ORDER_PATH.description,
                        related_changes=_context().changed_files)
        assert calc.calculate_intent_weight(path, _context()) > calc.calculate_intent_weight(ORDER_PATH)

    def test_business_impact_includes_change_score(self, order_queries):
        calc = IntentWeightCalculator(order_queries)
        path = CallPath("entry", ("OrderController.placeOrder",), related_changes=_context().changed_files)
        git = intent_git_score(path, _context())
        assert git > 0.0
        without = calc.business_impact(path)
        assert calc.business_impact(path, _context()) == pytest.approx(min(without + git, 90.0))
        assert calc.calculate(path, _context()).components["business_impact"] > without

    def test_single_method_path(self, order_queries):
        path = CallPath("single", ("OrderService.createOrder",))
        assert IntentWeightCalculator(order_queries).chain_completeness(path) == 46.0

    def test_unknown_methods_score_low_but_valid(self, order_queries):
        path = CallPath("ghost", ("Ghost.a", "Ghost.b"))
        result = IntentWeightCalculator(order_queries).calculate(path)
        assert result.components["chain_completeness"] == 0.0
        assert 0.0 <= result.weight <= 100.0


class TestRiskCalculator:
    def test_clean_flow_has_no_violation_risk(self, order_queries):
        result = RiskWeightCalculator(order_queries).calculate(ORDER_PATH)
        assert result.components["layer_violation_risk"] == 0.0
        assert 0.0 <= result.weight <= 100.0

    def test_single_method_path_uses_class_layers(self, order_queries):
        path = CallPath("single", ("OrderService.createOrder",))
        assert RiskWeightCalculator(order_queries).layer_violation_risk(path) == 0.0

    def test_weights_stay_clamped_under_heavy_change(self, order_queries):
        heavy = _context(
            changed_files=tuple(
                ChangedFile(f"src/config/Security{i}Config.yml", FileChangeType.DELETED, deleted_lines=400)
                for i in range(30)
            ),
            added_lines=5000, deleted_lines=12000,
        )
        path = CallPath(
            ORDER_PATH.id, ORDER_PATH.methods, ORDER_PATH.description,
            related_changes=(ChangedFile(
                "src/security/AuthService.java",
                added_content=("@Transactional", "drop table orders", "String secret = token;"),
            ),),
        )
        assert 0.0 <= RiskWeightCalculator(order_queries).calculate_risk_weight(path, heavy) <= 100.0
        assert 0.0 <= IntentWeightCalculator(order_queries).calculate_intent_weight(path, heavy) <= 100.0


class TestDegradation:
    def test_only_affected_signal_is_zeroed(self, order_queries):
        queries = _BlastDown(order_queries)
        risk = RiskWeightCalculator(queries).calculate(ORDER_PATH)
        assert risk.degraded == ("blast_radius_risk",)
        assert risk.components["blast_radius_risk"] == 0.0
        assert risk.components["architecture_risk"] > 0.0

        intent = IntentWeightCalculator(queries).calculate(ORDER_PATH)
        assert intent.degraded == ()

    def test_single_method_intent_degrades_chain(self, order_queries):
        path = CallPath("single", ("OrderService.createOrder",))
        intent = IntentWeightCalculator(_BlastDown(order_queries)).calculate(path)
        assert intent.degraded == ("chain_completeness",)
        assert intent.components["business_impact"] > 0.0


# ---------------------------------------------------------------------------
# Change signals
# ---------------------------------------------------------------------------

class TestGitSignals:
    @pytest.mark.parametrize("context", [None, GitChangeContext()])
    def test_missing_context_scores_zero(self, context):
        assert intent_git_score(ORDER_PATH, context) == 0.0
        assert risk_git_score(ORDER_PATH, context) == 0.0

    def test_file_type_impact(self):
        path = CallPath("p", ORDER_PATH.methods, related_changes=(ChangedFile("web/OrderController.java"),))
        assert file_type_impact(path) == 20.0

    def test_deletion_risk(self):
        ctx = _context(changed_files=(ChangedFile("Old.java", FileChangeType.DELETED, deleted_lines=120),))
        assert deletion_risk(ctx) == 11.0

    @pytest.mark.parametrize("name,risk", [
        ("db/V1__init.sql", 15.0),
        ("db/V1__init.SQL", 15.0),
        ("backup/orders.sql.bak", 3.0),
        ("docs/mysql.sqlite.md", 3.0),
    ])
    def test_sql_files_matched_by_suffix(self, name, risk):
        path = CallPath("p", ORDER_PATH.methods, related_changes=(ChangedFile(name),))
        assert sensitive_file_risk(path) == risk

    def test_config_change_risk(self):
        ctx = _context(changed_files=(ChangedFile("application.yml"), ChangedFile("Order.java")))
        assert config_change_risk(ctx) == 5.0

    def test_scores_within_cap(self):
        assert 0.0 < intent_git_score(ORDER_PATH, _context()) <= 100.0
        assert 0.0 < risk_git_score(ORDER_PATH, _context()) <= 100.0
