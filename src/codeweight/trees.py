"""Call tree and core path derivation.

Every public, non-constructor method of a CONTROLLER class roots one call
tree.  Trees are grown by a bounded depth-first walk over outgoing call
edges; an edge into an interface or abstract method also reaches every
implementation recorded in the graph's implementation mappings.

Once all trees exist, membership is folded back onto the graph: each
method, edge and class learns how many trees contain it (``cross_count``),
which trees those are, and each method its shallowest depth.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field, replace

import networkx as nx

from codeweight import defaults
from codeweight.graph import KnowledgeGraph
from codeweight.layers import DOMAIN_PRIORITY, detect_business_domain
from codeweight.models import (
    BusinessDomain,
    CallPath,
    CallTree,
    CorePath,
    Layer,
    MethodNode,
    TreeNodeRelation,
)

log = logging.getLogger("codeweight.trees")

_PATH_LAYER_WEIGHT = {
    Layer.CONTROLLER: 10.0,
    Layer.SERVICE: 8.0,
    Layer.REPOSITORY: 6.0,
    Layer.COMPONENT: 4.0,
    Layer.UTIL: 2.0,
}


def _short_hash(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()[:defaults.ID_HASH_CHARS]


@dataclass
class _TreeWalk:
    """Mutable state for one tree while it is being walked."""
    root_id: str
    depths: dict[str, int] = field(default_factory=dict)
    links: dict[tuple[str, str], int] = field(default_factory=dict)   # (parent, child) -> depth
    edge_ids: set[str] = field(default_factory=set)
    depth_limited: bool = False


@dataclass
class TreeBuildResult:
    trees: list[CallTree] = field(default_factory=list)
    relations: list[TreeNodeRelation] = field(default_factory=list)
    core_paths: list[CorePath] = field(default_factory=list)
    method_trees: dict[str, dict[str, int]] = field(default_factory=dict)   # method -> {tree: depth}
    edge_trees: dict[str, set[str]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "trees": [t.to_dict() for t in self.trees],
            "total_relations": len(self.relations),
            "core_paths": [p.to_dict() for p in self.core_paths],
        }


class CallTreeBuilder:
    """Builds call trees for *graph* during the build phase."""

    def __init__(self, graph: KnowledgeGraph, max_depth: int = defaults.TREE_MAX_DEPTH) -> None:
        self.graph = graph
        self.max_depth = max_depth

    # ------------------------------------------------------------------
    # Roots
    # ------------------------------------------------------------------

    def find_root_methods(self) -> list[MethodNode]:
        roots: list[MethodNode] = []
        for cls in self.graph.get_classes_by_layer(Layer.CONTROLLER):
            roots.extend(
                m for m in self.graph.get_methods_by_class(cls.id)
                if m.is_public and not m.is_constructor
            )
        return roots

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _targets(self, method_id: str) -> list[tuple[str, str | None]]:
        """(child method id, call edge id or None for an implementation hop)."""
        out: list[tuple[str, str | None]] = []
        for e in self.graph.get_outgoing_edges(method_id):
            out.append((e.to_method_id, e.id))
            for mapping in self.graph.get_implementations(e.to_method_id):
                out.append((mapping.implementation_method_id, None))
        return out

    def _walk(self, walk: _TreeWalk, method_id: str, depth: int, on_path: frozenset[str]) -> None:
        for child, edge_id in self._targets(method_id):
            if child in on_path:
                walk.depth_limited = True
                continue
            if self.graph.get_method_by_id(child) is None:
                continue
            child_depth = depth + 1
            if child_depth > self.max_depth:
                walk.depth_limited = True
                continue
            if edge_id is not None:
                walk.edge_ids.add(edge_id)
            walk.links.setdefault((method_id, child), child_depth)
            known = walk.depths.get(child)
            if known is None or child_depth < known:
                walk.depths[child] = child_depth
                self._walk(walk, child, child_depth, on_path | {child})

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> TreeBuildResult:
        result = TreeBuildResult()
        walks: list[tuple[MethodNode, _TreeWalk]] = []
        for root in self.find_root_methods():
            walk = _TreeWalk(root_id=root.id, depths={root.id: 0})
            self._walk(walk, root.id, 0, frozenset({root.id}))
            walks.append((root, walk))
            tree_id = f"tree_{_short_hash(root.id)}"
            for mid, d in walk.depths.items():
                result.method_trees.setdefault(mid, {})[tree_id] = d
            for eid in walk.edge_ids:
                result.edge_trees.setdefault(eid, set()).add(tree_id)

        for number, (root, walk) in enumerate(walks, start=1):
            self._emit_tree(result, root, walk, f"T{number:03d}")

        log.info(
            "Built %d call tree(s), %d core path(s)",
            len(result.trees), len(result.core_paths),
        )
        return result

    def _emit_tree(self, result: TreeBuildResult, root: MethodNode, walk: _TreeWalk, tree_number: str) -> None:
        tree_id = f"tree_{_short_hash(root.id)}"
        local = nx.DiGraph()
        local.add_node(root.id)
        for index, ((parent, child), depth) in enumerate(walk.links.items()):
            local.add_edge(parent, child)
            result.relations.append(TreeNodeRelation(
                id=f"tree_rel_{_short_hash(f'{tree_id}_{parent}_{child}')}",
                tree_id=tree_id,
                parent_method_id=parent,
                child_method_id=child,
                depth=depth,
                path_index=index,
            ))

        paths: list[CorePath] = []
        for member in walk.depths:
            if member == root.id:
                continue
            nodes = tuple(reversed(nx.shortest_path(local, root.id, member)))
            paths.append(CorePath(
                id=f"core_path_{_short_hash(f'{member}_{root.id}')}",
                path_number=f"{tree_number}-CP{len(paths) + 1:03d}",
                from_method_id=member,
                root_method_id=root.id,
                tree_id=tree_id,
                nodes=nodes,
                path_length=len(nodes) - 1,
                layer_cross_count=len(self._path_layers(nodes)),
                weight=self.path_weight(nodes),
            ))
        result.core_paths.extend(paths)

        shared = sum(1 for mid in walk.depths if len(result.method_trees[mid]) > 1)
        root_cls = self.graph.get_class_by_id(root.class_id)
        result.trees.append(CallTree(
            id=tree_id,
            tree_number=tree_number,
            root_method_id=root.id,
            root_class_id=root.class_id,
            business_domain=self._tree_domain(root),
            depth=max(walk.depths.values()),
            node_count=len(walk.depths),
            cross_node_count=shared,
            path_count=len(paths),
            depth_limited=walk.depth_limited,
            description=f"Call tree rooted at {root_cls.name if root_cls else root.class_id}.{root.name}",
        ))

    def _tree_domain(self, root: MethodNode) -> BusinessDomain:
        cls = self.graph.get_class_by_id(root.class_id)
        if cls is not None and cls.business_domain != BusinessDomain.UNKNOWN:
            return cls.business_domain
        domain = detect_business_domain(root.name)
        return BusinessDomain.UNKNOWN if domain == BusinessDomain.COMMON else domain

    def _path_layers(self, nodes: tuple[str, ...]) -> set[Layer]:
        layers: set[Layer] = set()
        for mid in nodes:
            cls = self.graph.class_of(mid)
            if cls is not None:
                layers.add(cls.layer)
        return layers

    def path_weight(self, nodes: tuple[str, ...]) -> float:
        """Sum of per-node layer weight plus a tenth of the domain priority."""
        weight = 0.0
        for mid in nodes:
            cls = self.graph.class_of(mid)
            if cls is None:
                continue
            weight += _PATH_LAYER_WEIGHT.get(cls.layer, 1.0)
            weight += DOMAIN_PRIORITY[cls.business_domain] * 0.1
        return round(weight, 4)

    # ------------------------------------------------------------------
    # Write back
    # ------------------------------------------------------------------

    def apply(self) -> TreeBuildResult:
        """Build trees and write them plus membership into the graph."""
        result = self.build()
        for tree in result.trees:
            self.graph.add_tree(tree)
        for relation in result.relations:
            self.graph.add_tree_relation(relation)
        for path in result.core_paths:
            self.graph.add_core_path(path)

        roots = {t.root_method_id for t in result.trees}
        class_trees: dict[str, set[str]] = {}
        for method in self.graph.methods():
            membership = result.method_trees.get(method.id, {})
            if membership:
                class_trees.setdefault(method.class_id, set()).update(membership)
            self.graph.add_method(replace(
                method,
                tree_ids=set(membership),
                depth=min(membership.values()) if membership else -1,
                cross_count=len(membership),
                is_root_node=method.id in roots,
            ))
        for edge in self.graph.edges():
            trees = result.edge_trees.get(edge.id, set())
            self.graph.add_edge(replace(edge, tree_ids=set(trees), cross_count=len(trees)))
        for cls in self.graph.classes():
            self.graph.add_class(replace(cls, cross_count=len(class_trees.get(cls.id, ()))))
        return result


def method_label(graph: KnowledgeGraph, method_id: str) -> str:
    """``ClassName.methodName`` for a method id."""
    method = graph.get_method_by_id(method_id)
    if method is None:
        return method_id
    cls = graph.get_class_by_id(method.class_id)
    return f"{cls.name if cls else method.class_id}.{method.name}"


def call_paths_from_trees(graph: KnowledgeGraph) -> list[CallPath]:
    """One ``CallPath`` per core path, entry point first."""
    paths: list[CallPath] = []
    for core in graph.core_paths():
        tree = graph.get_tree_by_id(core.tree_id)
        paths.append(CallPath(
            id=core.path_number,
            methods=tuple(method_label(graph, m) for m in reversed(core.nodes)),
            description=tree.description if tree else "",
        ))
    return paths
