"""Tests for call tree and core path derivation."""

from codeweight.graph import KnowledgeGraph
from codeweight.models import Layer
from codeweight.trees import CallTreeBuilder, call_paths_from_trees, method_label

from conftest import finish, make_class, make_edge, make_method, order_facts


def _controller_graph(*edges_between: tuple[str, str], methods=("a", "b", "c")) -> KnowledgeGraph:
    g = KnowledgeGraph()
    g.add_class(make_class("c_ctrl", "ShopController", Layer.CONTROLLER))
    g.add_class(make_class("c_svc", "ShopService", Layer.SERVICE))
    nodes = {"root": make_method("root", "c_ctrl", "handle")}
    for name in methods:
        nodes[name] = make_method(name, "c_svc", name)
    g.add_all(methods=nodes.values(), edges=[make_edge(nodes[s], nodes[t]) for s, t in edges_between])
    return g


class TestRoots:
    def test_public_controller_methods_only(self):
        g = order_facts()
        g.add_method(make_method("m_private", "c_ctrl", "helper", is_public=False, modifiers={"private"}))
        g.add_method(make_method("m_ctor", "c_ctrl", "OrderController", is_constructor=True))
        roots = CallTreeBuilder(g).find_root_methods()
        assert [m.id for m in roots] == ["m_place"]


class TestOrderFlow:
    def test_depth_two_tree(self, order_graph):
        [tree] = order_graph.trees()
        assert tree.depth == 2
        assert tree.node_count == 3
        assert tree.path_count == 2
        assert tree.tree_number == "T001"
        assert tree.root_method_id == "m_place"
        assert tree.depth_limited is False
        assert tree.description == "Call tree rooted at OrderController.placeOrder"

    def test_relations(self, order_graph):
        rels = order_graph.tree_relations()
        assert [(r.parent_method_id, r.child_method_id, r.depth, r.path_index) for r in rels] == [
            ("m_place", "m_create", 1, 0),
            ("m_create", "m_save", 2, 1),
        ]

    def test_core_paths_member_to_root(self, order_graph):
        paths = {p.from_method_id: p for p in order_graph.core_paths()}
        assert paths["m_save"].nodes == ("m_save", "m_create", "m_place")
        assert paths["m_save"].path_length == 2
        assert paths["m_save"].layer_cross_count == 3
        assert paths["m_create"].nodes == ("m_create", "m_place")
        assert {p.path_number for p in paths.values()} == {"T001-CP001", "T001-CP002"}

    def test_membership_written_back(self, order_graph):
        save = order_graph.get_method_by_id("m_save")
        place = order_graph.get_method_by_id("m_place")
        assert save.depth == 2
        assert save.cross_count == 1
        assert place.is_root_node and place.depth == 0
        assert order_graph.get_edge_by_id("e2").cross_count == 1
        assert order_graph.get_class_by_id("c_repo").cross_count == 1

    def test_ids_are_stable(self):
        a, b = finish(order_facts()), finish(order_facts())
        assert [t.id for t in a.trees()] == [t.id for t in b.trees()]
        assert [p.id for p in a.core_paths()] == [p.id for p in b.core_paths()]


class TestCycles:
    def test_self_loop_gives_finite_tree(self):
        g = KnowledgeGraph()
        g.add_class(make_class("c_ctrl", "LoopController", Layer.CONTROLLER))
        m = make_method("m", "c_ctrl", "spin")
        g.add_method(m)
        g.add_edge(make_edge(m, m))
        finish(g)
        [tree] = g.trees()
        assert tree.node_count == 1
        assert tree.depth == 0
        assert tree.depth_limited is True
        assert g.core_paths() == []

    def test_mutual_recursion_terminates(self):
        g = finish(_controller_graph(("root", "a"), ("a", "b"), ("b", "a")))
        [tree] = g.trees()
        assert tree.node_count == 3
        assert tree.depth_limited is True

    def test_depth_cap(self):
        g = finish(_controller_graph(("root", "a"), ("a", "b"), ("b", "c")), max_depth=2)
        [tree] = g.trees()
        assert tree.depth == 2
        assert tree.depth_limited is True
        assert g.get_method_by_id("c").depth == -1

    def test_shallower_route_wins(self):
        # root -> a -> b -> c and root -> c
        g = finish(_controller_graph(("root", "a"), ("a", "b"), ("b", "c"), ("root", "c")))
        assert g.get_method_by_id("c").depth == 1
        paths = {p.from_method_id: p for p in g.core_paths()}
        assert paths["c"].nodes == ("c", "root")


class TestSharedMembers:
    def test_cross_counts_across_trees(self):
        g = KnowledgeGraph()
        g.add_class(make_class("c_ctrl", "ShopController", Layer.CONTROLLER))
        g.add_class(make_class("c_svc", "ShopService", Layer.SERVICE))
        one = make_method("one", "c_ctrl", "listItems")
        two = make_method("two", "c_ctrl", "showItem")
        shared = make_method("shared", "c_svc", "load")
        g.add_all(methods=[one, two, shared], edges=[make_edge(one, shared), make_edge(two, shared)])
        finish(g)
        assert g.get_method_by_id("shared").cross_count == 2
        assert len(g.get_method_by_id("shared").tree_ids) == 2
        assert all(t.cross_node_count == 1 for t in g.trees())
        assert [t.tree_number for t in g.trees()] == ["T001", "T002"]
        assert g.get_statistics().cross_node_count == 1


class TestPolymorphism:
    def test_interface_call_reaches_implementation(self):
        g = KnowledgeGraph()
        g.add_class(make_class("c_ctrl", "PayController", Layer.CONTROLLER))
        g.add_class(make_class("c_api", "PaymentGateway", Layer.SERVICE, is_interface=True))
        g.add_class(make_class("c_impl", "StripeGateway", Layer.SERVICE, interfaces=["PaymentGateway"]))
        pay = make_method("pay", "c_ctrl", "pay")
        declared = make_method("api_charge", "c_api", "charge")
        impl = make_method("impl_charge", "c_impl", "charge")
        g.add_all(methods=[pay, declared, impl], edges=[make_edge(pay, declared)])
        finish(g)
        assert len(g.implementation_mappings()) == 1
        impl_node = g.get_method_by_id("impl_charge")
        assert impl_node.depth == 1
        assert impl_node.cross_count == 1


class TestCallPaths:
    def test_paths_are_root_first(self, order_graph):
        paths = {p.id: p for p in call_paths_from_trees(order_graph)}
        assert ("OrderController.placeOrder", "OrderService.createOrder", "OrderRepository.save") in [
            p.methods for p in paths.values()
        ]
        assert all(p.description.startswith("Call tree rooted at") for p in paths.values())

    def test_method_label(self, order_graph):
        assert method_label(order_graph, "m_create") == "OrderService.createOrder"
        assert method_label(order_graph, "ghost") == "ghost"
