"""Tests for the knowledge graph: upserts, indexes, validation, freeze barrier."""

import networkx as nx
import pytest

from codeweight.errors import GraphFrozenError, GraphValidationError
from codeweight.graph import KnowledgeGraph
from codeweight.models import CallType, Layer

from conftest import make_class, make_edge, make_method, order_facts


class TestUpserts:
    def test_insertion_order_is_kept(self):
        g = order_facts()
        assert [c.name for c in g.classes()] == ["OrderController", "OrderService", "OrderRepository"]
        assert [m.id for m in g.methods()] == ["m_place", "m_create", "m_save"]

    def test_upsert_replaces_by_id(self):
        g = order_facts()
        g.add_class(make_class("c_svc", "OrderService", Layer.SERVICE, package="com.other"))
        assert len(g.classes()) == 3
        assert g.get_class_by_id("c_svc").package == "com.other"

    def test_method_moved_between_classes_updates_index(self):
        g = order_facts()
        g.add_method(make_method("m_save", "c_svc", "save"))
        assert [m.id for m in g.get_methods_by_class("c_repo")] == []
        assert "m_save" in [m.id for m in g.get_methods_by_class("c_svc")]

    def test_edge_upsert_rewires_adjacency(self):
        g = order_facts()
        place, save = g.get_method_by_id("m_place"), g.get_method_by_id("m_save")
        g.add_edge(make_edge(place, save, "e1"))
        assert [e.to_method_id for e in g.get_outgoing_edges("m_place")] == ["m_save"]
        assert g.get_incoming_edges("m_create") == []
        assert len(g.edges()) == 2

    def test_edge_confidence_bounds(self):
        place = make_method("a", "c")
        with pytest.raises(ValueError):
            make_edge(place, place, confidence=1.5)


class TestLookups:
    def test_adjacency(self):
        g = order_facts()
        assert [e.id for e in g.get_outgoing_edges("m_place")] == ["e1"]
        assert [e.id for e in g.get_incoming_edges("m_save")] == ["e2"]
        assert g.get_outgoing_edges("missing") == []

    def test_classes_by_layer(self):
        g = order_facts()
        assert [c.id for c in g.get_classes_by_layer(Layer.SERVICE)] == ["c_svc"]
        assert g.get_classes_by_layer(Layer.UTIL) == []

    def test_find_classes_by_id_qualified_and_simple_name(self):
        g = order_facts()
        assert g.find_classes("c_repo")[0].name == "OrderRepository"
        assert g.find_classes("com.shop.OrderRepository")[0].id == "c_repo"
        assert g.find_classes("OrderRepository")[0].id == "c_repo"
        assert g.find_classes("Nope") == []

    def test_find_methods_returns_overloads(self):
        g = order_facts()
        g.add_method(make_method("m_save2", "c_repo", "save", signature="save(Order)"))
        assert {m.id for m in g.find_methods("OrderRepository", "save")} == {"m_save", "m_save2"}

    def test_class_of(self):
        g = order_facts()
        assert g.class_of("m_create").name == "OrderService"
        assert g.class_of("missing") is None


class TestValidation:
    def test_clean_graph_has_no_issues(self):
        assert order_facts().validate() == []

    def test_dangling_class(self):
        g = order_facts()
        g.add_method(make_method("orphan", "c_missing"))
        issues = g.validate()
        assert [(i.kind, i.entity_id) for i in issues] == [("dangling_class", "orphan")]

    def test_dangling_method_and_class_mismatch(self):
        g = order_facts()
        ghost = make_method("ghost", "c_ctrl")
        g.add_edge(make_edge(g.get_method_by_id("m_place"), ghost, "e_ghost"))
        g.add_edge(make_edge(
            g.get_method_by_id("m_create"), g.get_method_by_id("m_save"), "e_bad", to_class_id="c_ctrl",
        ))
        kinds = sorted(i.kind for i in g.validate())
        assert kinds == ["class_mismatch", "dangling_method"]

    def test_strict_freeze_raises_and_stays_mutable(self):
        g = order_facts()
        g.add_method(make_method("orphan", "c_missing"))
        with pytest.raises(GraphValidationError) as exc:
            g.freeze()
        assert exc.value.issues[0].kind == "dangling_class"
        assert not g.frozen
        g.add_class(make_class("c_missing"))
        assert g.freeze() == []

    def test_lenient_freeze_returns_issues(self):
        g = order_facts()
        g.add_method(make_method("orphan", "c_missing"))
        issues = g.freeze(strict=False)
        assert len(issues) == 1
        assert g.frozen


class TestFreeze:
    def test_frozen_graph_rejects_mutation(self, order_graph):
        with pytest.raises(GraphFrozenError):
            order_graph.add_class(make_class("c_new"))
        with pytest.raises(GraphFrozenError):
            order_graph.add_edge(make_edge(make_method("a", "c_ctrl"), make_method("b", "c_ctrl")))

    def test_reads_still_work_after_freeze(self, order_graph):
        assert order_graph.frozen
        assert order_graph.find_classes("OrderService")[0].id == "c_svc"


class TestStatistics:
    def test_counts_and_distributions(self, order_graph):
        stats = order_graph.get_statistics()
        assert stats.total_classes == 3
        assert stats.total_methods == 3
        assert stats.total_edges == 2
        assert stats.total_trees == 1
        assert stats.total_core_paths == 2
        assert stats.layer_distribution == {"CONTROLLER": 1, "SERVICE": 1, "REPOSITORY": 1}
        assert stats.call_type_distribution == {"DIRECT": 2}
        assert stats.avg_methods_per_class == 1.0
        assert stats.avg_tree_depth == 2.0

    def test_empty_graph(self):
        stats = KnowledgeGraph().get_statistics()
        assert stats.total_classes == 0
        assert stats.avg_methods_per_class == 0.0
        assert stats.to_dict()["avg_tree_depth"] == 0.0


class TestNetworkxView:
    def test_multidigraph_keeps_parallel_edges(self):
        g = order_facts()
        place, create = g.get_method_by_id("m_place"), g.get_method_by_id("m_create")
        g.add_edge(make_edge(place, create, "e1b", call_type=CallType.INTERFACE))
        G = g.to_networkx()
        assert isinstance(G, nx.MultiDiGraph)
        assert G.number_of_edges("m_place", "m_create") == 2
        assert G.nodes["m_save"]["layer"] == "REPOSITORY"
        assert G.edges["m_place", "m_create", "e1b"]["call_type"] == "INTERFACE"
