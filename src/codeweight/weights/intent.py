"""Intent weight: how much business value a call path carries.

intent = (business x 0.40 + architecture x 0.25 + chain x 0.15) x 0.8
         + git x 0.2, clamped to [0, 100]
"""

from __future__ import annotations

import logging

from codeweight import defaults
from codeweight.models import (
    BlastRadiusInfo,
    CallPath,
    CallPathChainInfo,
    ClassArchitectureInfo,
    GitChangeContext,
    MethodCalleesInfo,
    MethodCallersInfo,
    WeightBreakdown,
)
from codeweight.weights._base import _Calculator, clamp_score, method_pairs, method_parts
from codeweight.weights._tables import (
    _ARCH_VALUE_CAP,
    _BUSINESS_CAP,
    _CHAIN_CAP,
    _CHAIN_CLEAN,
    _CHAIN_LENGTH,
    _CHAIN_LENGTH_DEFAULT,
    _CHAIN_PER_LAYER,
    _CHAIN_VIOLATING,
    _CROSS_LAYER,
    _CROSS_LAYER_DEFAULT,
    _DEPENDENCY_COMPLEXITY,
    _DEPENDENCY_COMPLEXITY_DEFAULT,
    _DOWNSTREAM_CAP,
    _DOWNSTREAM_DEFAULT,
    _DOWNSTREAM_LAYER,
    _DOWNSTREAM_TERM_BONUS,
    _DOWNSTREAM_TERMS,
    _INTENT_ARCH_SHARE,
    _INTENT_BUSINESS_SHARE,
    _INTENT_CHAIN_SHARE,
    _POSITION_CAP,
    _POSITION_DEFAULT,
    _POSITION_DEPENDENCY_CAP,
    _POSITION_LAYER,
    _POSITION_PER_DEPENDENCY,
    _POSITION_PER_INTERFACE,
    _POSITION_PER_RELATIVE,
    _SINGLE_CAP,
    _SINGLE_INFLUENCE,
    _SINGLE_INFLUENCE_DEFAULT,
    _SINGLE_PER_LAYER,
    _UPSTREAM_CAP,
    _UPSTREAM_DEFAULT,
    _UPSTREAM_FREQUENCY,
    _UPSTREAM_FREQUENCY_DEFAULT,
    _UPSTREAM_LAYER,
    _tier,
)
from codeweight.weights.git_signals import intent_git_score

log = logging.getLogger("codeweight.weights.intent")


# ---------------------------------------------------------------------------
# Per-result scorers (pure)
# ---------------------------------------------------------------------------

def downstream_value(callees: MethodCalleesInfo) -> float:
    score = sum(
        _DOWNSTREAM_LAYER.get(layer, _DOWNSTREAM_DEFAULT) * count
        for layer, count in callees.layer_distribution.items()
    )
    business = sum(
        1 for c in callees.callees
        if any(term in c.class_name.lower() for term in _DOWNSTREAM_TERMS)
    )
    score += business * _DOWNSTREAM_TERM_BONUS
    return min(score, _DOWNSTREAM_CAP)


def upstream_value(callers: MethodCallersInfo) -> float:
    score = sum(
        _UPSTREAM_LAYER.get(layer, _UPSTREAM_DEFAULT) * count
        for layer, count in callers.layer_distribution.items()
    )
    total_calls = sum(c.call_count for c in callers.callers)
    score += _tier(total_calls, _UPSTREAM_FREQUENCY, _UPSTREAM_FREQUENCY_DEFAULT)
    return min(score, _UPSTREAM_CAP)


def position_value(arch: ClassArchitectureInfo) -> float:
    score = _POSITION_LAYER.get(arch.layer, _POSITION_DEFAULT)
    score += min(len(arch.dependencies) * _POSITION_PER_DEPENDENCY, _POSITION_DEPENDENCY_CAP)
    score += len(arch.interfaces) * _POSITION_PER_INTERFACE
    score += (len(arch.parents) + len(arch.children)) * _POSITION_PER_RELATIVE
    return min(score, _POSITION_CAP)


def cross_layer_value(arch: ClassArchitectureInfo) -> float:
    layers = set(arch.dependency_layers) | {arch.layer}
    return _tier(len(layers), _CROSS_LAYER, _CROSS_LAYER_DEFAULT)


def dependency_complexity_value(arch: ClassArchitectureInfo) -> float:
    return _tier(len(arch.dependencies), _DEPENDENCY_COMPLEXITY, _DEPENDENCY_COMPLEXITY_DEFAULT)


def pair_completeness(chain: CallPathChainInfo) -> float:
    """Score one consecutive pair; a pair with no path within the hop bound scores 0."""
    if not chain.found:
        return 0.0
    score = _CHAIN_LENGTH.get(chain.path_length, _CHAIN_LENGTH_DEFAULT)
    score += _CHAIN_VIOLATING if chain.has_layer_violations else _CHAIN_CLEAN
    score += len(set(chain.layers_in_path)) * _CHAIN_PER_LAYER
    return min(score, _CHAIN_CAP)


def single_method_completeness(blast: BlastRadiusInfo) -> float:
    influence = blast.direct_callers + blast.direct_callees
    score = _tier(influence, _SINGLE_INFLUENCE, _SINGLE_INFLUENCE_DEFAULT)
    score += len(blast.affected_layers) * _SINGLE_PER_LAYER
    return min(score, _SINGLE_CAP)


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------

class IntentWeightCalculator(_Calculator):
    """Stateless; safe to share across scoring threads."""

    def business_impact(self, path: CallPath, context: GitChangeContext | None = None) -> float:
        """Per-method graph value plus the change score, averaged over the methods."""
        parts = method_parts(path)
        if not parts:
            return 0.0
        score = intent_git_score(path, context)
        for part in parts:
            if part is None:
                continue
            cls, method = part
            score += downstream_value(self.queries.query_method_callees(cls, method))
            score += upstream_value(self.queries.query_method_callers(cls, method))
            score += position_value(self.queries.query_class_architecture(cls))
        return min(score / len(parts), _BUSINESS_CAP)

    def architecture_value(self, path: CallPath) -> float:
        classes = path.class_names
        if not classes:
            return 0.0
        score = 0.0
        for cls in classes:
            arch = self.queries.query_class_architecture(cls)
            score += cross_layer_value(arch) + dependency_complexity_value(arch)
        return min(score / len(classes), _ARCH_VALUE_CAP)

    def chain_completeness(self, path: CallPath) -> float:
        if len(path.methods) >= 2:
            score = sum(
                pair_completeness(self.queries.query_call_path_chain(a[0], a[1], b[0], b[1]))
                for a, b in method_pairs(path)
            )
            return min(score / (len(path.methods) - 1), _CHAIN_CAP)
        parts = method_parts(path)
        if not parts or parts[0] is None:
            return 0.0
        return single_method_completeness(self.queries.query_blast_radius(*parts[0]))

    def calculate(self, path: CallPath, context: GitChangeContext | None = None) -> WeightBreakdown:
        degraded: list[str] = []
        business = self._guarded(
            "business_impact", lambda p: self.business_impact(p, context), path, degraded,
        )
        architecture = self._guarded("architecture_value", self.architecture_value, path, degraded)
        chain = self._guarded("chain_completeness", self.chain_completeness, path, degraded)
        git = intent_git_score(path, context)

        graph_part = (
            business * _INTENT_BUSINESS_SHARE
            + architecture * _INTENT_ARCH_SHARE
            + chain * _INTENT_CHAIN_SHARE
        ) * defaults.GRAPH_SHARE
        weight = clamp_score(graph_part + git * defaults.GIT_SHARE)
        log.debug(
            "Intent for %s: business=%.1f architecture=%.1f chain=%.1f git=%.1f -> %.1f",
            path.id, business, architecture, chain, git, weight,
            extra={"path_id": path.id},
        )
        return WeightBreakdown(
            weight=weight,
            components={
                "business_impact": business,
                "architecture_value": architecture,
                "chain_completeness": chain,
                "git": git,
            },
            degraded=tuple(degraded),
        )

    def calculate_intent_weight(self, path: CallPath, context: GitChangeContext | None = None) -> float:
        return self.calculate(path, context).weight
