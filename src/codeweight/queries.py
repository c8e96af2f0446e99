"""In-memory query backend over a frozen ``KnowledgeGraph``.

Answers the five structural queries with the graph's adjacency indexes and
a networkx view for bounded shortest paths.  Every query is a pure function
of the graph state and its arguments; unknown classes or methods give empty
results with ``found=False``.
"""

from __future__ import annotations

import logging
from collections import Counter

import networkx as nx

from codeweight import defaults
from codeweight.graph import KnowledgeGraph
from codeweight.layers import is_layer_violation
from codeweight.models import (
    BlastRadiusInfo,
    CallerInfo,
    CallPathChainInfo,
    ClassArchitectureInfo,
    ClassBlock,
    Layer,
    MethodCalleesInfo,
    MethodCallersInfo,
)

log = logging.getLogger("codeweight.queries")


class InMemoryQueryService:
    """``GraphQueryPort`` implementation backed by the in-process graph."""

    def __init__(self, graph: KnowledgeGraph, max_chain_hops: int = defaults.MAX_CHAIN_HOPS) -> None:
        if not graph.frozen:
            log.warning("Querying a graph that is not frozen; results may change")
        self.graph = graph
        self.max_chain_hops = max_chain_hops
        self._nx: nx.DiGraph | None = None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @property
    def call_graph(self) -> nx.DiGraph:
        if self._nx is None:
            self._nx = nx.DiGraph(self.graph.to_networkx())
        return self._nx

    def _class(self, class_id: str) -> ClassBlock | None:
        return self.graph.get_class_by_id(class_id)

    def _layer_of_class(self, class_id: str) -> str:
        cls = self._class(class_id)
        return cls.layer.value if cls else Layer.UNKNOWN.value

    def _label(self, method_id: str) -> str:
        method = self.graph.get_method_by_id(method_id)
        if method is None:
            return method_id
        cls = self._class(method.class_id)
        return f"{cls.name if cls else method.class_id}.{method.name}"

    def _neighbours(self, method_ids: list[str], incoming: bool) -> list[CallerInfo]:
        counts: Counter[tuple[str, str]] = Counter()
        layers: dict[tuple[str, str], str] = {}
        for mid in method_ids:
            edges = self.graph.get_incoming_edges(mid) if incoming else self.graph.get_outgoing_edges(mid)
            for e in edges:
                other_id = e.from_method_id if incoming else e.to_method_id
                other = self.graph.get_method_by_id(other_id)
                class_id = e.from_class_id if incoming else e.to_class_id
                cls = self._class(class_id)
                key = (cls.name if cls else class_id, other.name if other else other_id)
                counts[key] += 1
                layers.setdefault(key, cls.layer.value if cls else Layer.UNKNOWN.value)
        rows = [
            CallerInfo(class_name=k[0], method_name=k[1], layer=layers[k], call_count=n)
            for k, n in counts.items()
        ]
        rows.sort(key=lambda r: -r.call_count)
        return rows

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def query_method_callers(self, class_name: str, method_name: str) -> MethodCallersInfo:
        methods = self.graph.find_methods(class_name, method_name)
        if not methods:
            return MethodCallersInfo()
        rows = self._neighbours([m.id for m in methods], incoming=True)
        return MethodCallersInfo(
            total_callers=len(rows),
            layer_distribution=dict(Counter(r.layer for r in rows)),
            callers=tuple(rows),
            found=True,
        )

    def query_method_callees(self, class_name: str, method_name: str) -> MethodCalleesInfo:
        methods = self.graph.find_methods(class_name, method_name)
        if not methods:
            return MethodCalleesInfo()
        rows = self._neighbours([m.id for m in methods], incoming=False)
        return MethodCalleesInfo(
            total_callees=len(rows),
            layer_distribution=dict(Counter(r.layer for r in rows)),
            callees=tuple(rows),
            found=True,
        )

    def query_class_architecture(self, class_name: str) -> ClassArchitectureInfo:
        matches = self.graph.find_classes(class_name)
        if not matches:
            return ClassArchitectureInfo(class_name=class_name)
        cls = matches[0]
        refs = {cls.qualified_name, cls.name} - {""}

        children: list[str] = []
        implementations: list[str] = []
        for other in self.graph.classes():
            if other.id == cls.id:
                continue
            if other.super_class in refs:
                children.append(other.name)
            if cls.is_interface and refs.intersection(other.interfaces):
                implementations.append(other.name)

        dependencies: dict[str, str] = {}
        for m in self.graph.get_methods_by_class(cls.id):
            for e in self.graph.get_outgoing_edges(m.id):
                if e.to_class_id == cls.id:
                    continue
                target = self._class(e.to_class_id)
                name = target.name if target else e.to_class_id
                dependencies.setdefault(name, self._layer_of_class(e.to_class_id))

        return ClassArchitectureInfo(
            class_name=cls.name,
            layer=cls.layer.value,
            package=cls.package,
            parents=(cls.super_class,) if cls.super_class else (),
            children=tuple(children),
            interfaces=tuple(cls.interfaces),
            implementations=tuple(implementations),
            dependencies=tuple(dependencies),
            dependency_layers=tuple(dict.fromkeys(dependencies.values())),
            found=True,
        )

    def query_call_path_chain(
        self,
        source_class: str,
        source_method: str,
        target_class: str,
        target_method: str,
    ) -> CallPathChainInfo:
        sources = [m.id for m in self.graph.find_methods(source_class, source_method)]
        targets = [m.id for m in self.graph.find_methods(target_class, target_method)]
        if not sources or not targets:
            return CallPathChainInfo()

        best: list[str] | None = None
        # search from the successors so a chain always has at least one call
        for s in sources:
            for nxt in self.call_graph.successors(s):
                reachable = nx.single_source_shortest_path(self.call_graph, nxt, cutoff=self.max_chain_hops - 1)
                for t in targets:
                    tail = reachable.get(t)
                    if tail is not None and (best is None or len(tail) + 1 < len(best)):
                        best = [s, *tail]
        if best is None:
            return CallPathChainInfo()

        layers = [self._layer_of_class(self.graph.get_method_by_id(m).class_id) for m in best]
        rel_types: list[str] = []
        for u, v in zip(best, best[1:]):
            edge = next(e for e in self.graph.get_outgoing_edges(u) if e.to_method_id == v)
            rel_types.append(edge.call_type.value)
        violation = any(is_layer_violation(a, b) for a, b in zip(layers, layers[1:]))
        return CallPathChainInfo(
            full_path=tuple(self._label(m) for m in best),
            layers_in_path=tuple(layers),
            path_length=len(best) - 1,
            relationship_types=tuple(rel_types),
            has_layer_violations=violation,
            found=True,
        )

    def query_blast_radius(self, class_name: str, method_name: str) -> BlastRadiusInfo:
        centre = {m.id for m in self.graph.find_methods(class_name, method_name)}
        if not centre:
            return BlastRadiusInfo()

        def hop(ids: set[str], incoming: bool) -> set[str]:
            out: set[str] = set()
            for mid in ids:
                if incoming:
                    out.update(e.from_method_id for e in self.graph.get_incoming_edges(mid))
                else:
                    out.update(e.to_method_id for e in self.graph.get_outgoing_edges(mid))
            return out

        direct_callers = hop(centre, True) - centre
        indirect_callers = hop(direct_callers, True) - centre - direct_callers
        direct_callees = hop(centre, False) - centre
        indirect_callees = hop(direct_callees, False) - centre - direct_callees

        def owners(ids: set[str]) -> list[str]:
            return [self.graph.get_method_by_id(m).class_id for m in sorted(ids)
                    if self.graph.get_method_by_id(m) is not None]

        affected = dict.fromkeys(
            self._layer_of_class(c)
            for c in owners(direct_callers) + owners(direct_callees)
        )
        classes = set(owners(direct_callers | indirect_callers | direct_callees | indirect_callees))
        return BlastRadiusInfo(
            direct_callers=len(direct_callers),
            indirect_callers=len(indirect_callers),
            direct_callees=len(direct_callees),
            indirect_callees=len(indirect_callees),
            affected_layers=tuple(affected),
            total_affected_classes=len(classes),
            found=True,
        )
