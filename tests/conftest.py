"""Shared fixtures for codeweight tests."""

import logging

import pytest

from codeweight.graph import KnowledgeGraph
from codeweight.interfaces import apply_implementations
from codeweight.models import (
    BusinessDomain,
    CallEdge,
    ClassBlock,
    GraphMetadata,
    Layer,
    MethodNode,
)
from codeweight.node_weights import assign_node_weights
from codeweight.queries import InMemoryQueryService
from codeweight.trees import CallTreeBuilder


# ---------------------------------------------------------------------------
# Entity factories
# ---------------------------------------------------------------------------

def make_class(id: str, name: str | None = None, layer: Layer = Layer.UNKNOWN, **kw) -> ClassBlock:
    name = name or id
    defaults = dict(
        id=id, name=name, qualified_name=f"com.shop.{name}", package="com.shop",
        layer=layer, business_domain=BusinessDomain.UNKNOWN, method_count=1,
    )
    defaults.update(kw)
    return ClassBlock(**defaults)


def make_method(id: str, class_id: str, name: str | None = None, **kw) -> MethodNode:
    defaults = dict(
        id=id, name=name or id, class_id=class_id, signature=f"{name or id}()",
        is_public=True, modifiers={"public"},
    )
    defaults.update(kw)
    return MethodNode(**defaults)


def make_edge(source: MethodNode, target: MethodNode, id: str | None = None, **kw) -> CallEdge:
    defaults = dict(
        id=id or f"e_{source.id}_{target.id}",
        from_method_id=source.id, to_method_id=target.id,
        from_class_id=source.class_id, to_class_id=target.class_id,
    )
    defaults.update(kw)
    return CallEdge(**defaults)


def finish(graph: KnowledgeGraph, max_depth: int = 5) -> KnowledgeGraph:
    """Run the build pipeline after the raw facts and freeze."""
    apply_implementations(graph)
    CallTreeBuilder(graph, max_depth=max_depth).apply()
    assign_node_weights(graph)
    graph.freeze()
    return graph


# ---------------------------------------------------------------------------
# The order flow: OrderController.placeOrder -> OrderService.createOrder
#                 -> OrderRepository.save
# ---------------------------------------------------------------------------

def order_facts() -> KnowledgeGraph:
    graph = KnowledgeGraph(GraphMetadata(project_name="shop"))
    ctrl = make_class("c_ctrl", "OrderController", Layer.CONTROLLER, business_domain=BusinessDomain.ORDER)
    svc = make_class("c_svc", "OrderService", Layer.SERVICE, business_domain=BusinessDomain.ORDER)
    repo = make_class("c_repo", "OrderRepository", Layer.REPOSITORY, business_domain=BusinessDomain.ORDER)
    place = make_method("m_place", "c_ctrl", "placeOrder")
    create = make_method("m_create", "c_svc", "createOrder")
    save = make_method("m_save", "c_repo", "save")
    graph.add_all(
        classes=[ctrl, svc, repo],
        methods=[place, create, save],
        edges=[make_edge(place, create, "e1"), make_edge(create, save, "e2")],
    )
    return graph


@pytest.fixture
def order_graph() -> KnowledgeGraph:
    return finish(order_facts())


@pytest.fixture
def order_queries(order_graph) -> InMemoryQueryService:
    return InMemoryQueryService(order_graph)


@pytest.fixture
def order_document() -> dict:
    """The order flow as collaborator JSON, layers left to classification."""
    return {
        "project": {"name": "shop"},
        "classes": [
            {"id": "c_ctrl", "name": "OrderController", "package": "com.shop.controller",
             "annotations": ["@RestController"]},
            {"id": "c_svc", "name": "OrderService", "package": "com.shop.service"},
            {"id": "c_repo", "name": "OrderRepository", "package": "com.shop.repository"},
        ],
        "methods": [
            {"id": "m_place", "name": "placeOrder", "class_id": "c_ctrl", "modifiers": ["public"],
             "parameters": [{"name": "request", "type": "OrderRequest"}]},
            {"id": "m_create", "name": "createOrder", "class_id": "c_svc", "modifiers": ["public"]},
            {"id": "m_save", "name": "save", "class_id": "c_repo", "modifiers": ["public"]},
        ],
        "edges": [
            {"id": "e1", "from_method_id": "m_place", "to_method_id": "m_create", "line_number": 12},
            {"id": "e2", "from_method_id": "m_create", "to_method_id": "m_save", "line_number": 30},
        ],
    }


@pytest.fixture(autouse=True)
def _quiet_root_logger():
    """setup_logging() replaces root handlers; restore them after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
