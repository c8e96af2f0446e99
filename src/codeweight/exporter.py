"""Cypher bulk-load script generation.

The script is deterministic: for an unchanged graph two renders differ only
in the ``// Generated at:`` header line.  Payloads are batched (50 nodes,
100 relationships per statement) and each entity occupies exactly one line,
in graph insertion order.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence, TypeVar

from codeweight import defaults
from codeweight.errors import GraphValidationError
from codeweight.graph import KnowledgeGraph
from codeweight.models import CallEdge, ClassBlock, EdgeKind, MethodNode

log = logging.getLogger("codeweight.exporter")

T = TypeVar("T")

_BANNER = "// " + "=" * 31

_INDEXES = (
    ("class_id_index", "c:Class", "c.id"),
    ("method_id_index", "m:Method", "m.id"),
    ("class_name_index", "c:Class", "c.name"),
    ("method_name_index", "m:Method", "m.name"),
    ("layer_index", "c:Class", "c.layer"),
    ("package_index", "c:Class", "c.package"),
)

_CONSTRAINTS = (
    ("class_id_unique", "c:Class", "c.id"),
    ("method_id_unique", "m:Method", "m.id"),
)

_CLASS_FIELDS = (
    "id", "name", "qualifiedName", "package", "layer", "layerDisplay", "businessDomain",
    "annotations", "superClass", "interfaces", "isAbstract", "isInterface",
    "methodCount", "filePath", "crossCount", "weight",
)

_METHOD_FIELDS = (
    "id", "name", "signature", "classId", "returnType", "parameterTypes", "parameterNames",
    "modifiers", "lineNumber", "isConstructor", "isStatic", "isPrivate", "isPublic",
    "isAbstract", "visibility", "crossCount", "weight", "depth", "isRootNode", "treeIds",
)

_CALL_FIELDS = ("fromClass", "toClass", "callType", "lineNumber", "confidence", "crossCount")

_STATISTICS_QUERIES = (
    ("Totals", (
        "MATCH (c:Class) RETURN 'Classes' AS Type, count(c) AS Count",
        "UNION",
        "MATCH (m:Method) RETURN 'Methods' AS Type, count(m) AS Count",
        "UNION",
        "MATCH ()-[r:CALLS]->() RETURN 'Calls' AS Type, count(r) AS Count;",
    )),
    ("Layer distribution", (
        "MATCH (c:Class)",
        "RETURN c.layer, c.layerDisplay, count(c) AS count",
        "ORDER BY count DESC;",
    )),
    ("Call type distribution", (
        "MATCH ()-[r:CALLS]->()",
        "RETURN r.callType, count(r) AS count",
        "ORDER BY count DESC;",
    )),
    ("Largest classes", (
        "MATCH (c:Class)",
        "RETURN c.name, c.package, c.methodCount",
        "ORDER BY c.methodCount DESC",
        "LIMIT 10;",
    )),
    ("Most called methods", (
        "MATCH (m:Method)<-[r:CALLS]-()",
        "RETURN m.name, m.signature, count(r) AS callCount",
        "ORDER BY callCount DESC",
        "LIMIT 10;",
    )),
    ("Cross-layer calls", (
        "MATCH (fromClass:Class)-[:CONTAINS]->(:Method)-[:CALLS]->(:Method)<-[:CONTAINS]-(toClass:Class)",
        "WHERE fromClass.layer <> toClass.layer",
        "RETURN fromClass.layer + ' -> ' + toClass.layer AS CrossLayerCall, count(*) AS count",
        "ORDER BY count DESC;",
    )),
)


# ---------------------------------------------------------------------------
# Literal rendering
# ---------------------------------------------------------------------------

_ESCAPES = (("\\", "\\\\"), ("'", "\\'"), ('"', '\\"'), ("\n", "\\n"), ("\r", "\\r"), ("\t", "\\t"))


def escape(value: str | None) -> str:
    """Quote *value* as a Cypher string literal. Total: never fails."""
    text = "" if value is None else str(value)
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return f"'{text}'"


def escape_array(values: Sequence[str]) -> str:
    return "[" + ", ".join(escape(v) for v in values) + "]"


def literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return escape_array([str(v) for v in value])
    return escape(value)


def _map(fields: Sequence[str], values: Sequence[Any]) -> str:
    return "{" + ", ".join(f"{k}: {literal(v)}" for k, v in zip(fields, values)) + "}"


def batched(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


# ---------------------------------------------------------------------------
# Payload rows
# ---------------------------------------------------------------------------

def _class_row(c: ClassBlock) -> list[Any]:
    return [
        c.id, c.name, c.qualified_name, c.package, c.layer.value, c.layer.display_name,
        c.business_domain.value, list(c.annotations), c.super_class or "", list(c.interfaces),
        c.is_abstract, c.is_interface, c.method_count, c.file_path, c.cross_count, c.weight,
    ]


def _method_row(m: MethodNode) -> list[Any]:
    return [
        m.id, m.name, m.signature, m.class_id, m.return_type,
        [p.type for p in m.parameters], [p.name for p in m.parameters],
        sorted(m.modifiers), m.line_number, m.is_constructor, m.is_static, m.is_private,
        m.is_public, m.is_abstract, m.visibility, m.cross_count, m.weight, m.depth,
        m.is_root_node, sorted(m.tree_ids),
    ]


def _call_row(e: CallEdge) -> list[Any]:
    return [
        e.from_method_id, e.to_method_id, e.from_class_id, e.to_class_id,
        e.call_type.value, e.line_number, e.confidence, e.cross_count,
    ]


class CypherExporter:
    """Render a ``KnowledgeGraph`` as a Neo4j import script."""

    def __init__(
        self,
        graph: KnowledgeGraph,
        node_batch_size: int = defaults.NODE_BATCH_SIZE,
        edge_batch_size: int = defaults.EDGE_BATCH_SIZE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.graph = graph
        self.node_batch_size = node_batch_size
        self.edge_batch_size = edge_batch_size
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _header(self, generated_at: str) -> list[str]:
        g = self.graph
        return [
            _BANNER,
            "// codeweight Knowledge Graph - Neo4j Import Script",
            f"// Generated at: {generated_at}",
            f"// Project: {g.metadata.project_name or defaults.DEFAULT_PROJECT_NAME}",
            f"// Classes: {len(g.classes())}",
            f"// Methods: {len(g.methods())}",
            f"// Call Relations: {len(g.edges())}",
            _BANNER,
            "",
        ]

    @staticmethod
    def _schema() -> list[str]:
        lines = ["// Reset", "MATCH (n) DETACH DELETE n;", "", "// Indexes"]
        lines += [f"CREATE INDEX {name} IF NOT EXISTS FOR ({label}) ON ({prop});"
                  for name, label, prop in _INDEXES]
        lines += ["", "// Constraints"]
        lines += [f"CREATE CONSTRAINT {name} IF NOT EXISTS FOR ({label}) REQUIRE {prop} IS UNIQUE;"
                  for name, label, prop in _CONSTRAINTS]
        lines.append("")
        return lines

    @staticmethod
    def _unwind(rows: Sequence[str], alias: str, item: str, tail: list[str]) -> list[str]:
        lines = ["WITH ["]
        lines += [f"  {row}," if i < len(rows) - 1 else f"  {row}" for i, row in enumerate(rows)]
        lines.append(f"] AS {alias}")
        lines.append(f"UNWIND {alias} AS {item}")
        lines += tail
        lines.append("")
        return lines

    def _node_batches(self, label: str, fields: Sequence[str], rows: list[list[Any]], alias: str, item: str) -> list[str]:
        lines: list[str] = []
        props = ", ".join(f"{f}: {item}.{f}" for f in fields)
        for index, batch in enumerate(batched(rows, self.node_batch_size), start=1):
            lines.append(f"// {label} batch {index}")
            lines += self._unwind(
                [_map(fields, r) for r in batch], alias, item,
                [f"CREATE (:{label} {{{props}}});"],
            )
        return lines

    def _calls(self) -> list[str]:
        rows = [_call_row(e) for e in self.graph.edges()]
        fields = ("fromId", "toId") + _CALL_FIELDS
        props = ", ".join(f"{f}: call.{f}" for f in _CALL_FIELDS)
        lines: list[str] = []
        for index, batch in enumerate(batched(rows, self.edge_batch_size), start=1):
            lines.append(f"// {EdgeKind.CALLS.relationship_type} batch {index}")
            lines += self._unwind(
                [_map(fields, r) for r in batch], "calls", "call",
                [
                    "MATCH (from:Method {id: call.fromId})",
                    "MATCH (to:Method {id: call.toId})",
                    f"CREATE (from)-[:{EdgeKind.CALLS.relationship_type} {{{props}}}]->(to);",
                ],
            )
        return lines

    def _type_links(self) -> tuple[list[tuple[str, str]], list[tuple[str, str]]]:
        """(child, parent) and (implementation, interface) class id pairs.

        References that do not resolve to a class in the graph (library
        types) are skipped.
        """
        extends: list[tuple[str, str]] = []
        implements: list[tuple[str, str]] = []
        for c in self.graph.classes():
            if c.super_class:
                parents = self.graph.find_classes(c.super_class)
                if parents:
                    extends.append((c.id, parents[0].id))
            for ref in c.interfaces:
                ifaces = self.graph.find_classes(ref)
                if ifaces:
                    implements.append((c.id, ifaces[0].id))
        return extends, implements

    def _relationship_batches(self, kind: EdgeKind, pairs: list[tuple[str, str]], keys: tuple[str, str]) -> list[str]:
        lines: list[str] = []
        a, b = keys
        rel = kind.relationship_type
        for index, batch in enumerate(batched(pairs, self.edge_batch_size), start=1):
            lines.append(f"// {rel} batch {index}")
            lines += self._unwind(
                [_map(keys, pair) for pair in batch], "links", "link",
                [
                    f"MATCH ({a}:Class {{id: link.{a}}})",
                    f"MATCH ({b}:Class {{id: link.{b}}})",
                    f"CREATE ({a})-[:{rel}]->({b});",
                ],
            )
        return lines

    @staticmethod
    def _statistics() -> list[str]:
        lines = [_BANNER, "// Statistics queries (not executed)", _BANNER, ""]
        for number, (title, query) in enumerate(_STATISTICS_QUERIES, start=1):
            lines.append(f"// {number}. {title}")
            lines += [f"// {q}" for q in query]
            lines.append("")
        return lines

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(self, generated_at: str | None = None) -> str:
        issues = self.graph.validate()
        if issues:
            raise GraphValidationError(issues)
        stamp = generated_at or self._clock().strftime("%Y-%m-%d %H:%M:%S")

        lines = self._header(stamp) + self._schema()
        lines += self._node_batches(
            "Class", _CLASS_FIELDS, [_class_row(c) for c in self.graph.classes()], "classes", "class",
        )
        lines += self._node_batches(
            "Method", _METHOD_FIELDS, [_method_row(m) for m in self.graph.methods()], "methods", "method",
        )
        if self.graph.methods():
            lines += [
                f"// {EdgeKind.CONTAINS.relationship_type}",
                "MATCH (c:Class), (m:Method)",
                "WHERE c.id = m.classId",
                f"CREATE (c)-[:{EdgeKind.CONTAINS.relationship_type}]->(m);",
                "",
            ]
        lines += self._calls()
        extends, implements = self._type_links()
        lines += self._relationship_batches(EdgeKind.INHERITS, extends, ("child", "parent"))
        lines += self._relationship_batches(EdgeKind.IMPLEMENTS, implements, ("impl", "iface"))
        lines += self._statistics()

        script = "\n".join(lines) + "\n"
        log.info(
            "Rendered Cypher script: %d classes, %d methods, %d calls",
            len(self.graph.classes()), len(self.graph.methods()), len(self.graph.edges()),
        )
        return script

    def write(self, path: str | Path, generated_at: str | None = None) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.render(generated_at), encoding="utf-8")
        return target
