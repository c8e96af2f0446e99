"""In-memory knowledge graph: classes, methods, call edges and derived trees.

The graph has two phases.  While building, ingestion and the tree builder
upsert entities by id.  ``freeze()`` is the barrier: it validates references
and makes the graph read-only, after which queries, export and scoring read
it concurrently without locking.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

import networkx as nx

from codeweight.errors import GraphFrozenError, GraphValidationError
from codeweight.models import (
    CallEdge,
    CallTree,
    ClassBlock,
    CorePath,
    GraphMetadata,
    GraphStatistics,
    InterfaceImplementationMapping,
    Layer,
    MethodNode,
    TreeNodeRelation,
)

log = logging.getLogger("codeweight.graph")


@dataclass(frozen=True)
class ValidationIssue:
    kind: str           # dangling_class | dangling_method | class_mismatch | dangling_tree
    entity_id: str
    detail: str

    def __str__(self) -> str:
        return f"{self.kind} {self.entity_id}: {self.detail}"


class KnowledgeGraph:
    """Indexed store of the code structure of one project."""

    def __init__(self, metadata: GraphMetadata | None = None) -> None:
        self.metadata = metadata or GraphMetadata()
        self._classes: dict[str, ClassBlock] = {}
        self._methods: dict[str, MethodNode] = {}
        self._edges: dict[str, CallEdge] = {}
        self._trees: dict[str, CallTree] = {}
        self._relations: dict[str, TreeNodeRelation] = {}
        self._core_paths: dict[str, CorePath] = {}
        self._mappings: dict[str, InterfaceImplementationMapping] = {}

        self._methods_by_class: dict[str, list[str]] = {}
        self._outgoing: dict[str, list[str]] = {}
        self._incoming: dict[str, list[str]] = {}
        self._impls_by_method: dict[str, list[str]] = {}
        self._name_index: dict[str, list[str]] | None = None
        self._frozen = False

    # ------------------------------------------------------------------
    # Build phase
    # ------------------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise GraphFrozenError("Knowledge graph is frozen; build a new graph to change it")

    def add_class(self, cls: ClassBlock) -> None:
        self._check_mutable()
        self._classes[cls.id] = cls
        self._name_index = None

    def add_method(self, method: MethodNode) -> None:
        self._check_mutable()
        old = self._methods.get(method.id)
        if old is not None and old.class_id != method.class_id:
            self._methods_by_class[old.class_id].remove(method.id)
        if old is None or old.class_id != method.class_id:
            self._methods_by_class.setdefault(method.class_id, []).append(method.id)
        self._methods[method.id] = method

    def add_edge(self, edge: CallEdge) -> None:
        self._check_mutable()
        old = self._edges.get(edge.id)
        if old is not None:
            if old.from_method_id != edge.from_method_id:
                self._outgoing[old.from_method_id].remove(edge.id)
                self._outgoing.setdefault(edge.from_method_id, []).append(edge.id)
            if old.to_method_id != edge.to_method_id:
                self._incoming[old.to_method_id].remove(edge.id)
                self._incoming.setdefault(edge.to_method_id, []).append(edge.id)
        else:
            self._outgoing.setdefault(edge.from_method_id, []).append(edge.id)
            self._incoming.setdefault(edge.to_method_id, []).append(edge.id)
        self._edges[edge.id] = edge

    def add_tree(self, tree: CallTree) -> None:
        self._check_mutable()
        self._trees[tree.id] = tree

    def add_tree_relation(self, relation: TreeNodeRelation) -> None:
        self._check_mutable()
        self._relations[relation.id] = relation

    def add_core_path(self, path: CorePath) -> None:
        self._check_mutable()
        self._core_paths[path.id] = path

    def add_implementation_mapping(self, mapping: InterfaceImplementationMapping) -> None:
        self._check_mutable()
        old = self._mappings.get(mapping.id)
        if old is not None:
            self._impls_by_method[old.interface_method_id].remove(old.id)
        self._impls_by_method.setdefault(mapping.interface_method_id, []).append(mapping.id)
        self._mappings[mapping.id] = mapping

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_class_by_id(self, class_id: str) -> ClassBlock | None:
        return self._classes.get(class_id)

    def get_method_by_id(self, method_id: str) -> MethodNode | None:
        return self._methods.get(method_id)

    def get_edge_by_id(self, edge_id: str) -> CallEdge | None:
        return self._edges.get(edge_id)

    def get_tree_by_id(self, tree_id: str) -> CallTree | None:
        return self._trees.get(tree_id)

    def get_outgoing_edges(self, method_id: str) -> list[CallEdge]:
        return [self._edges[e] for e in self._outgoing.get(method_id, ())]

    def get_incoming_edges(self, method_id: str) -> list[CallEdge]:
        return [self._edges[e] for e in self._incoming.get(method_id, ())]

    def get_methods_by_class(self, class_id: str) -> list[MethodNode]:
        return [self._methods[m] for m in self._methods_by_class.get(class_id, ())]

    def get_classes_by_layer(self, layer: Layer) -> list[ClassBlock]:
        return [c for c in self._classes.values() if c.layer == layer]

    def get_implementations(self, interface_method_id: str) -> list[InterfaceImplementationMapping]:
        return [self._mappings[m] for m in self._impls_by_method.get(interface_method_id, ())]

    def class_of(self, method_id: str) -> ClassBlock | None:
        method = self._methods.get(method_id)
        return self._classes.get(method.class_id) if method else None

    def find_classes(self, name: str) -> list[ClassBlock]:
        """Resolve a class reference: id, then qualified name, then simple name."""
        if name in self._classes:
            return [self._classes[name]]
        if self._name_index is None:
            self._name_index = self._build_name_index()
        qualified = [c for c in self._name_index.get(name, ()) if self._classes[c].qualified_name == name]
        ids = qualified or self._name_index.get(name, [])
        return [self._classes[c] for c in ids]

    def find_methods(self, class_name: str, method_name: str) -> list[MethodNode]:
        """Every overload named *method_name* on the classes *class_name* resolves to."""
        return [
            m
            for cls in self.find_classes(class_name)
            for m in self.get_methods_by_class(cls.id)
            if m.name == method_name
        ]

    def _build_name_index(self) -> dict[str, list[str]]:
        index: dict[str, list[str]] = {}
        for cls in self._classes.values():
            if cls.qualified_name:
                index.setdefault(cls.qualified_name, []).append(cls.id)
            if cls.name and cls.name != cls.qualified_name:
                index.setdefault(cls.name, []).append(cls.id)
        return index

    # ------------------------------------------------------------------
    # Iteration (insertion order)
    # ------------------------------------------------------------------

    def classes(self) -> list[ClassBlock]:
        return list(self._classes.values())

    def methods(self) -> list[MethodNode]:
        return list(self._methods.values())

    def edges(self) -> list[CallEdge]:
        return list(self._edges.values())

    def trees(self) -> list[CallTree]:
        return list(self._trees.values())

    def tree_relations(self) -> list[TreeNodeRelation]:
        return list(self._relations.values())

    def core_paths(self) -> list[CorePath]:
        return list(self._core_paths.values())

    def implementation_mappings(self) -> list[InterfaceImplementationMapping]:
        return list(self._mappings.values())

    # ------------------------------------------------------------------
    # Validation / barrier
    # ------------------------------------------------------------------

    def validate(self) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for m in self._methods.values():
            if m.class_id not in self._classes:
                issues.append(ValidationIssue("dangling_class", m.id, f"owning class {m.class_id} not found"))
        for e in self._edges.values():
            for end, mid, cid in (("from", e.from_method_id, e.from_class_id),
                                  ("to", e.to_method_id, e.to_class_id)):
                method = self._methods.get(mid)
                if method is None:
                    issues.append(ValidationIssue("dangling_method", e.id, f"{end} method {mid} not found"))
                elif method.class_id != cid:
                    issues.append(ValidationIssue(
                        "class_mismatch", e.id,
                        f"{end} class {cid} does not own method {mid} (owner {method.class_id})",
                    ))
        for r in self._relations.values():
            if r.tree_id not in self._trees:
                issues.append(ValidationIssue("dangling_tree", r.id, f"tree {r.tree_id} not found"))
        for p in self._core_paths.values():
            if p.tree_id not in self._trees:
                issues.append(ValidationIssue("dangling_tree", p.id, f"tree {p.tree_id} not found"))
        return issues

    def freeze(self, strict: bool = True) -> list[ValidationIssue]:
        """Validate and switch the graph to read-only.

        With *strict* any issue raises ``GraphValidationError`` and the graph
        stays mutable.  Otherwise issues are logged and returned.
        """
        issues = self.validate()
        if issues:
            if strict:
                raise GraphValidationError(issues)
            log.warning("Freezing graph with %d validation issue(s)", len(issues))
        if self._name_index is None:
            self._name_index = self._build_name_index()
        self._frozen = True
        log.info(
            "Graph frozen: %d classes, %d methods, %d edges",
            len(self._classes), len(self._methods), len(self._edges),
        )
        return issues

    # ------------------------------------------------------------------
    # Statistics / views
    # ------------------------------------------------------------------

    def get_statistics(self) -> GraphStatistics:
        layers: Counter[str] = Counter()
        domains: Counter[str] = Counter()
        for c in self._classes.values():
            layers[c.layer.value] += 1
            domains[c.business_domain.value] += 1
        call_types: Counter[str] = Counter(e.call_type.value for e in self._edges.values())
        shared = sum(1 for m in self._methods.values() if m.cross_count > 1)
        n_classes = len(self._classes)
        n_trees = len(self._trees)
        depth_sum = sum(t.depth for t in self._trees.values())
        return GraphStatistics(
            total_classes=n_classes,
            total_methods=len(self._methods),
            total_edges=len(self._edges),
            total_trees=n_trees,
            total_core_paths=len(self._core_paths),
            layer_distribution=dict(layers),
            call_type_distribution=dict(call_types),
            business_domain_distribution=dict(domains),
            avg_methods_per_class=len(self._methods) / n_classes if n_classes else 0.0,
            avg_tree_depth=depth_sum / n_trees if n_trees else 0.0,
            cross_node_count=shared,
        )

    def to_networkx(self) -> nx.MultiDiGraph:
        """Method-level call graph; one keyed edge per ``CallEdge``."""
        G = nx.MultiDiGraph()
        for m in self._methods.values():
            cls = self._classes.get(m.class_id)
            G.add_node(
                m.id,
                name=m.name,
                class_id=m.class_id,
                layer=cls.layer.value if cls else Layer.UNKNOWN.value,
            )
        for e in self._edges.values():
            G.add_edge(e.from_method_id, e.to_method_id, key=e.id, call_type=e.call_type.value)
        return G

    # ------------------------------------------------------------------
    # Bulk helpers
    # ------------------------------------------------------------------

    def add_all(
        self,
        classes: Iterable[ClassBlock] = (),
        methods: Iterable[MethodNode] = (),
        edges: Iterable[CallEdge] = (),
    ) -> None:
        for c in classes:
            self.add_class(c)
        for m in methods:
            self.add_method(m)
        for e in edges:
            self.add_edge(e)
