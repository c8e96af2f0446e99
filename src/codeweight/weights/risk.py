"""Risk weight: how dangerous a change along a call path is.

risk = (architecture x 0.35 + blast radius x 0.30 + layer violation x 0.15) x 0.8
       + git x 0.2, clamped to [0, 100]
"""

from __future__ import annotations

import logging

from codeweight import defaults
from codeweight.layers import disallowed_dependency_layers
from codeweight.models import (
    BlastRadiusInfo,
    CallPath,
    CallPathChainInfo,
    ClassArchitectureInfo,
    GitChangeContext,
    WeightBreakdown,
)
from codeweight.weights._base import _Calculator, clamp_score, method_pairs, method_parts
from codeweight.weights._tables import (
    _AFFECTED_CLASSES_PENALTY,
    _AFFECTED_CLASSES_THRESHOLD,
    _ARCH_RISK_CAP,
    _BLAST_CAP,
    _DEPENDENCY_RISK,
    _DEPENDENCY_RISK_DEFAULT,
    _DIRECT_CALLERS,
    _DIRECT_CALLERS_DEFAULT,
    _HIERARCHY_FREE,
    _HIERARCHY_PENALTY,
    _HIERARCHY_RISK_CAP,
    _IMPLEMENTATION_FREE,
    _IMPLEMENTATION_PENALTY,
    _INDIRECT_CALLERS,
    _INDIRECT_CALLERS_DEFAULT,
    _INTERFACE_FREE,
    _INTERFACE_PENALTY,
    _INTERFACE_RISK_CAP,
    _INVALID_DEPENDENCY_PENALTY,
    _LAYER_RISK_CAP,
    _LAYER_SPREAD_PENALTY,
    _LAYERS_FREE,
    _RISK_ARCH_SHARE,
    _RISK_BLAST_SHARE,
    _RISK_LAYER_SHARE,
    _SINGLE_CLASS_CAP,
    _VIOLATION_BASE,
    _VIOLATION_CAP,
    _VIOLATION_LAYER_SPAN,
    _VIOLATION_LENGTH_FREE,
    _VIOLATION_PER_HOP,
    _VIOLATION_SPAN_PENALTY,
    _tier,
)
from codeweight.weights.git_signals import risk_git_score

log = logging.getLogger("codeweight.weights.risk")


# ---------------------------------------------------------------------------
# Per-result scorers (pure)
# ---------------------------------------------------------------------------

def dependency_risk(arch: ClassArchitectureInfo) -> float:
    return _tier(len(arch.dependencies), _DEPENDENCY_RISK, _DEPENDENCY_RISK_DEFAULT)


def interface_risk(arch: ClassArchitectureInfo) -> float:
    risk = max(len(arch.interfaces) - _INTERFACE_FREE, 0) * _INTERFACE_PENALTY
    risk += max(len(arch.implementations) - _IMPLEMENTATION_FREE, 0) * _IMPLEMENTATION_PENALTY
    return min(risk, _INTERFACE_RISK_CAP)


def hierarchy_risk(arch: ClassArchitectureInfo) -> float:
    hierarchy = len(arch.parents) + len(arch.children)
    return min(max(hierarchy - _HIERARCHY_FREE, 0) * _HIERARCHY_PENALTY, _HIERARCHY_RISK_CAP)


def method_blast_risk(blast: BlastRadiusInfo) -> float:
    risk = _tier(blast.direct_callers, _DIRECT_CALLERS, _DIRECT_CALLERS_DEFAULT)
    risk += _tier(blast.indirect_callers, _INDIRECT_CALLERS, _INDIRECT_CALLERS_DEFAULT)
    risk += max(len(blast.affected_layers) - _LAYERS_FREE, 0) * _LAYER_SPREAD_PENALTY
    if blast.total_affected_classes > _AFFECTED_CLASSES_THRESHOLD:
        risk += _AFFECTED_CLASSES_PENALTY
    return min(risk, _BLAST_CAP)


def violation_severity(chain: CallPathChainInfo) -> float:
    if not chain.has_layer_violations:
        return 0.0
    severity = _VIOLATION_BASE
    severity += max(chain.path_length - _VIOLATION_LENGTH_FREE, 0) * _VIOLATION_PER_HOP
    if len(set(chain.layers_in_path)) > _VIOLATION_LAYER_SPAN:
        severity += _VIOLATION_SPAN_PENALTY
    return min(severity, _VIOLATION_CAP)


def single_class_layer_risk(arch: ClassArchitectureInfo) -> float:
    invalid = disallowed_dependency_layers(arch.layer, list(arch.dependency_layers))
    return min(len(invalid) * _INVALID_DEPENDENCY_PENALTY, _SINGLE_CLASS_CAP)


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------

class RiskWeightCalculator(_Calculator):
    """Stateless; safe to share across scoring threads."""

    def architecture_risk(self, path: CallPath) -> float:
        classes = path.class_names
        if not classes:
            return 0.0
        risk = 0.0
        for cls in classes:
            arch = self.queries.query_class_architecture(cls)
            risk += dependency_risk(arch) + interface_risk(arch) + hierarchy_risk(arch)
        return min(risk / len(classes), _ARCH_RISK_CAP)

    def blast_radius_risk(self, path: CallPath) -> float:
        parts = method_parts(path)
        if not parts:
            return 0.0
        risk = sum(
            method_blast_risk(self.queries.query_blast_radius(*part))
            for part in parts if part is not None
        )
        return min(risk / len(parts), _BLAST_CAP)

    def layer_violation_risk(self, path: CallPath) -> float:
        if len(path.methods) >= 2:
            risk = sum(
                violation_severity(self.queries.query_call_path_chain(a[0], a[1], b[0], b[1]))
                for a, b in method_pairs(path)
            )
            return min(risk / (len(path.methods) - 1), _LAYER_RISK_CAP)
        parts = method_parts(path)
        if not parts or parts[0] is None:
            return 0.0
        return single_class_layer_risk(self.queries.query_class_architecture(parts[0][0]))

    def calculate(self, path: CallPath, context: GitChangeContext | None = None) -> WeightBreakdown:
        degraded: list[str] = []
        architecture = self._guarded("architecture_risk", self.architecture_risk, path, degraded)
        blast = self._guarded("blast_radius_risk", self.blast_radius_risk, path, degraded)
        layer = self._guarded("layer_violation_risk", self.layer_violation_risk, path, degraded)
        git = risk_git_score(path, context)

        graph_part = (
            architecture * _RISK_ARCH_SHARE
            + blast * _RISK_BLAST_SHARE
            + layer * _RISK_LAYER_SHARE
        ) * defaults.GRAPH_SHARE
        weight = clamp_score(graph_part + git * defaults.GIT_SHARE)
        log.debug(
            "Risk for %s: architecture=%.1f blast=%.1f layer=%.1f git=%.1f -> %.1f",
            path.id, architecture, blast, layer, git, weight,
            extra={"path_id": path.id},
        )
        return WeightBreakdown(
            weight=weight,
            components={
                "architecture_risk": architecture,
                "blast_radius_risk": blast,
                "layer_violation_risk": layer,
                "git": git,
            },
            degraded=tuple(degraded),
        )

    def calculate_risk_weight(self, path: CallPath, context: GitChangeContext | None = None) -> float:
        return self.calculate(path, context).weight
