"""Turn collaborator JSON into a built, frozen knowledge graph.

Pipeline: validate (pydantic) -> populate -> interface mappings -> call
trees -> node weights -> ``freeze``.  Change context and call path input
are parsed here too.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from codeweight import defaults
from codeweight.errors import GraphValidationError, IngestError
from codeweight.graph import KnowledgeGraph
from codeweight.interfaces import apply_implementations
from codeweight.layers import as_layer, detect_business_domain, detect_layer
from codeweight.models import (
    BusinessDomain,
    CallEdge,
    CallPath,
    CallType,
    ChangedFile,
    ClassBlock,
    FileChangeType,
    GitChangeContext,
    GitCommit,
    GraphMetadata,
    MethodNode,
    Parameter,
)
from codeweight.node_weights import assign_node_weights
from codeweight.schemas import (
    CallPathsDocument,
    ChangeDocument,
    ClassBody,
    EdgeBody,
    GraphDocument,
    MethodBody,
)
from codeweight.trees import CallTreeBuilder

log = logging.getLogger("codeweight.ingest")


def load_json(path: str | Path) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise IngestError(f"Cannot read {path}: {e}") from e


def _enum(enum_cls: type, value: str | None, default: Any) -> Any:
    if not value:
        return default
    try:
        return enum_cls(value.upper())
    except ValueError:
        log.warning("Unknown %s %r, using %s", enum_cls.__name__, value, default.value)
        return default


# ---------------------------------------------------------------------------
# Graph facts
# ---------------------------------------------------------------------------

def _to_class(body: ClassBody, method_count: int) -> ClassBlock:
    layer = as_layer(body.layer) if body.layer else detect_layer(body.name, body.package, body.annotations)
    domain = _enum(BusinessDomain, body.business_domain, BusinessDomain.UNKNOWN)
    if domain == BusinessDomain.UNKNOWN:
        domain = detect_business_domain(body.name, body.package, layer)
    return ClassBlock(
        id=body.id,
        name=body.name,
        qualified_name=body.qualified_name or (f"{body.package}.{body.name}" if body.package else body.name),
        package=body.package,
        layer=layer,
        business_domain=domain,
        annotations=list(body.annotations),
        super_class=body.super_class or None,
        interfaces=list(body.interfaces),
        is_abstract=body.is_abstract,
        is_interface=body.is_interface,
        method_count=body.method_count if body.method_count is not None else method_count,
        file_path=body.file_path,
    )


def _to_method(body: MethodBody) -> MethodNode:
    modifiers = {m.lower() for m in body.modifiers}

    def flag(explicit: bool | None, modifier: str) -> bool:
        return explicit if explicit is not None else modifier in modifiers

    return MethodNode(
        id=body.id,
        name=body.name,
        class_id=body.class_id,
        signature=body.signature or f"{body.name}({', '.join(p.type for p in body.parameters)})",
        return_type=body.return_type,
        parameters=[Parameter(p.name, p.type, p.is_varargs) for p in body.parameters],
        modifiers=modifiers,
        line_number=body.line_number,
        is_constructor=body.is_constructor,
        is_static=flag(body.is_static, "static"),
        is_abstract=flag(body.is_abstract, "abstract"),
        is_public=flag(body.is_public, "public"),
        is_private=flag(body.is_private, "private"),
    )


def _edge_id(body: EdgeBody) -> str:
    digest = hashlib.md5(
        f"{body.from_method_id}->{body.to_method_id}:{body.line_number}".encode()
    ).hexdigest()[:defaults.ID_HASH_CHARS]
    return f"edge_{digest}"


def _to_edge(body: EdgeBody, owners: dict[str, str]) -> CallEdge:
    return CallEdge(
        id=body.id or _edge_id(body),
        from_method_id=body.from_method_id,
        to_method_id=body.to_method_id,
        from_class_id=body.from_class_id or owners.get(body.from_method_id, ""),
        to_class_id=body.to_class_id or owners.get(body.to_method_id, ""),
        call_type=_enum(CallType, body.call_type, CallType.DIRECT),
        line_number=body.line_number,
        confidence=body.confidence,
    )


def parse_graph_document(data: Any) -> GraphDocument:
    try:
        return GraphDocument.model_validate(data)
    except ValidationError as e:
        raise IngestError(f"Invalid graph document: {e.error_count()} error(s)\n{e}") from e


def populate_graph(data: Any) -> KnowledgeGraph:
    """Build phase only: validated facts into a fresh, mutable graph."""
    doc = parse_graph_document(data)
    graph = KnowledgeGraph(GraphMetadata(
        project_name=doc.project.name or defaults.DEFAULT_PROJECT_NAME,
        version=doc.project.version or defaults.GRAPH_VERSION,
        description=doc.project.description or GraphMetadata().description,
    ))
    per_class: dict[str, int] = {}
    for m in doc.methods:
        per_class[m.class_id] = per_class.get(m.class_id, 0) + 1
    for c in doc.classes:
        graph.add_class(_to_class(c, per_class.get(c.id, 0)))
    owners = {m.id: m.class_id for m in doc.methods}
    for m in doc.methods:
        graph.add_method(_to_method(m))
    for e in doc.edges:
        graph.add_edge(_to_edge(e, owners))
    log.info(
        "Ingested %d classes, %d methods, %d edges",
        len(doc.classes), len(doc.methods), len(doc.edges),
    )
    return graph


def build_graph(
    data: Any,
    max_depth: int = defaults.TREE_MAX_DEPTH,
    strict: bool = True,
) -> KnowledgeGraph:
    """Full build: populate, map implementations, grow trees, weigh, freeze."""
    graph = populate_graph(data)
    if strict:
        # Dangling references would leak into trees and weights.
        issues = graph.validate()
        if issues:
            raise GraphValidationError(issues)
    apply_implementations(graph)
    CallTreeBuilder(graph, max_depth=max_depth).apply()
    assign_node_weights(graph)
    graph.freeze(strict=strict)
    return graph


def load_graph(path: str | Path, max_depth: int = defaults.TREE_MAX_DEPTH, strict: bool = True) -> KnowledgeGraph:
    return build_graph(load_json(path), max_depth=max_depth, strict=strict)


# ---------------------------------------------------------------------------
# Change context
# ---------------------------------------------------------------------------

def parse_change_context(data: Any) -> GitChangeContext:
    """Parse change input; malformed or absent input yields an empty context."""
    if data is None:
        return GitChangeContext()
    try:
        doc = ChangeDocument.model_validate(data)
    except ValidationError as e:
        log.warning("Ignoring malformed change context: %d error(s)", e.error_count())
        return GitChangeContext()
    files = tuple(
        ChangedFile(
            path=f.path,
            change_type=_enum(FileChangeType, f.change_type, FileChangeType.MODIFIED),
            added_lines=f.added_lines,
            deleted_lines=f.deleted_lines,
            added_content=tuple(f.added_content),
        )
        for f in doc.changed_files
    )
    return GitChangeContext(
        source_branch=doc.source_branch,
        target_branch=doc.target_branch,
        changed_files=files,
        added_lines=doc.added_lines if doc.added_lines is not None else sum(f.added_lines for f in files),
        deleted_lines=doc.deleted_lines if doc.deleted_lines is not None else sum(f.deleted_lines for f in files),
        commits=tuple(GitCommit(c.hash, c.message, c.author, c.date) for c in doc.commits),
    )


def load_change_context(path: str | Path | None) -> GitChangeContext:
    if path is None:
        return GitChangeContext()
    try:
        data = load_json(path)
    except IngestError as e:
        log.warning("Ignoring unreadable change context: %s", e)
        return GitChangeContext()
    return parse_change_context(data)


# ---------------------------------------------------------------------------
# Call paths
# ---------------------------------------------------------------------------

def parse_call_paths(data: Any, context: GitChangeContext | None = None) -> list[CallPath]:
    """Explicit call paths; related changes are looked up by path in *context*."""
    if isinstance(data, list):
        data = {"paths": data}
    try:
        doc = CallPathsDocument.model_validate(data)
    except ValidationError as e:
        raise IngestError(f"Invalid call path document: {e.error_count()} error(s)\n{e}") from e
    by_path = {f.path: f for f in context.changed_files} if context else {}
    return [
        CallPath(
            id=p.id,
            methods=tuple(p.methods),
            description=p.description,
            related_changes=tuple(
                by_path.get(rc) or ChangedFile(path=rc) for rc in p.related_changes
            ),
        )
        for p in doc.paths
    ]
