"""Importance weights for methods and classes.

Runs after ``CallTreeBuilder.apply`` so that cross counts and root status
are known.  Method weights feed into class weights, so methods go first.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace

from codeweight.graph import KnowledgeGraph
from codeweight.layers import DOMAIN_PRIORITY
from codeweight.models import ClassBlock, Layer, MethodNode

log = logging.getLogger("codeweight.node_weights")

_METHOD_LAYER_WEIGHT = {
    Layer.CONTROLLER: 10.0,
    Layer.SERVICE: 8.0,
    Layer.REPOSITORY: 6.0,
    Layer.MAPPER: 5.0,
    Layer.DAO: 5.0,
    Layer.COMPONENT: 4.0,
    Layer.CONFIG: 3.0,
    Layer.UTIL: 2.0,
    Layer.ENTITY: 1.0,
    Layer.UNKNOWN: 0.5,
}

_CLASS_LAYER_WEIGHT = {
    Layer.CONTROLLER: 15.0,
    Layer.SERVICE: 12.0,
    Layer.REPOSITORY: 9.0,
    Layer.MAPPER: 7.0,
    Layer.DAO: 7.0,
    Layer.COMPONENT: 6.0,
    Layer.CONFIG: 4.0,
    Layer.UTIL: 3.0,
    Layer.ENTITY: 2.0,
    Layer.UNKNOWN: 1.0,
}

# (minimum cross count, method weight, class weight), highest first
_CROSS_TIERS = ((5, 20.0, 25.0), (3, 15.0, 18.0), (2, 10.0, 12.0), (1, 5.0, 6.0))

_NAME_KEYWORDS: tuple[tuple[tuple[str, ...], float], ...] = (
    (("process", "handle", "execute"), 3.0),
    (("create", "save", "update", "delete"), 2.5),
    (("validate", "check", "verify"), 2.0),
    (("calculate", "compute", "generate"), 2.0),
    (("find", "search", "query"), 1.5),
    (("get", "list"), 1.0),
    (("set",), 0.5),
)

ROOT_BONUS = 15.0


def _cross_weight(cross_count: int, column: int) -> float:
    for minimum, *weights in _CROSS_TIERS:
        if cross_count >= minimum:
            return weights[column]
    return 0.0


def method_name_weight(name: str) -> float:
    lowered = name.lower()
    for keywords, weight in _NAME_KEYWORDS:
        if any(k in lowered for k in keywords):
            return weight
    if lowered.startswith(("is", "has")):
        return 0.3
    return 0.0


def method_weight(graph: KnowledgeGraph, method: MethodNode) -> float:
    cls = graph.get_class_by_id(method.class_id)
    weight = _METHOD_LAYER_WEIGHT[cls.layer] if cls else _METHOD_LAYER_WEIGHT[Layer.UNKNOWN]
    weight += _cross_weight(method.cross_count, 0)
    if cls is not None:
        weight += DOMAIN_PRIORITY[cls.business_domain] * 0.5
    if method.is_public:
        weight += 2.0
    if method.is_static:
        weight += 1.0
    if method.is_abstract:
        weight += 1.5
    if method.is_constructor:
        weight -= 1.0
    degree = len(graph.get_incoming_edges(method.id)) + len(graph.get_outgoing_edges(method.id))
    weight += math.sqrt(degree) * 0.5
    if method.is_root_node:
        weight += ROOT_BONUS
    weight += method_name_weight(method.name)
    return max(weight, 0.0)


def class_weight(graph: KnowledgeGraph, cls: ClassBlock) -> float:
    weight = _CLASS_LAYER_WEIGHT[cls.layer]
    weight += _cross_weight(cls.cross_count, 1)
    weight += DOMAIN_PRIORITY[cls.business_domain]
    if cls.is_interface:
        weight += 5.0
    if cls.is_abstract:
        weight += 3.0
    weight += math.log10(cls.method_count + 1) * 2
    weight += sum(m.weight for m in graph.get_methods_by_class(cls.id)) * 0.1
    if cls.super_class or cls.interfaces:
        weight += 2.0
    return max(weight, 0.0)


def assign_node_weights(graph: KnowledgeGraph) -> None:
    """Compute and store method then class weights (build phase)."""
    for method in graph.methods():
        graph.add_method(replace(method, weight=round(method_weight(graph, method), 4)))
    for cls in graph.classes():
        graph.add_class(replace(cls, weight=round(class_weight(graph, cls), 4)))
    log.info("Assigned weights to %d methods and %d classes",
             len(graph.methods()), len(graph.classes()))
