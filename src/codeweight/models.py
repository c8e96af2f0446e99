"""Core data types for codeweight."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def split_method_path(method_path: str) -> tuple[str, str] | None:
    """Split ``com.x.OrderService.createOrder`` into class and method parts."""
    if "." not in method_path:
        return None
    class_name, _, method_name = method_path.rpartition(".")
    if not class_name or not method_name:
        return None
    return class_name, method_name


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Layer(str, Enum):
    CONTROLLER = "CONTROLLER"
    SERVICE = "SERVICE"
    MAPPER = "MAPPER"
    DAO = "DAO"
    REPOSITORY = "REPOSITORY"
    UTIL = "UTIL"
    ENTITY = "ENTITY"
    CONFIG = "CONFIG"
    COMPONENT = "COMPONENT"
    UNKNOWN = "UNKNOWN"

    @property
    def display_name(self) -> str:
        return _LAYER_DISPLAY[self]


_LAYER_DISPLAY = {
    Layer.CONTROLLER: "Controller layer",
    Layer.SERVICE: "Service layer",
    Layer.MAPPER: "Mapper/DAO layer",
    Layer.DAO: "Mapper/DAO layer",
    Layer.REPOSITORY: "Repository layer",
    Layer.UTIL: "Utility",
    Layer.ENTITY: "Entity",
    Layer.CONFIG: "Configuration",
    Layer.COMPONENT: "Component",
    Layer.UNKNOWN: "Unclassified",
}


class BusinessDomain(str, Enum):
    USER = "USER"
    ORDER = "ORDER"
    PRODUCT = "PRODUCT"
    PAYMENT = "PAYMENT"
    AUTH = "AUTH"
    SYSTEM = "SYSTEM"
    COMMON = "COMMON"
    UNKNOWN = "UNKNOWN"


class CallType(str, Enum):
    DIRECT = "DIRECT"
    INTERFACE = "INTERFACE"
    INHERITANCE = "INHERITANCE"
    STATIC = "STATIC"
    REFLECTION = "REFLECTION"
    ASYNC = "ASYNC"
    LAMBDA = "LAMBDA"
    METHOD_REFERENCE = "METHOD_REFERENCE"


class EdgeKind(str, Enum):
    """Relationship kinds between graph nodes."""
    CALLS = "CALLS"
    IMPLEMENTS = "IMPLEMENTS"
    INHERITS = "INHERITS"
    DATA_FLOW = "DATA_FLOW"
    CONTAINS = "CONTAINS"

    @property
    def relationship_type(self) -> str:
        """Relationship type name in the exported Cypher."""
        return "EXTENDS" if self is EdgeKind.INHERITS else self.value


class FileChangeType(str, Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    RENAMED = "RENAMED"
    COPIED = "COPIED"


# ---------------------------------------------------------------------------
# Graph entities
# ---------------------------------------------------------------------------

@dataclass
class ClassBlock:
    id: str
    name: str
    qualified_name: str = ""
    package: str = ""
    layer: Layer = Layer.UNKNOWN
    business_domain: BusinessDomain = BusinessDomain.UNKNOWN
    annotations: list[str] = field(default_factory=list)
    super_class: str | None = None
    interfaces: list[str] = field(default_factory=list)
    is_abstract: bool = False
    is_interface: bool = False
    method_count: int = 0
    file_path: str = ""
    cross_count: int = 0
    weight: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "qualified_name": self.qualified_name,
            "package": self.package,
            "layer": self.layer.value,
            "business_domain": self.business_domain.value,
            "annotations": self.annotations,
            "super_class": self.super_class,
            "interfaces": self.interfaces,
            "is_abstract": self.is_abstract,
            "is_interface": self.is_interface,
            "method_count": self.method_count,
            "file_path": self.file_path,
            "cross_count": self.cross_count,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str
    is_varargs: bool = False


@dataclass
class MethodNode:
    id: str
    name: str
    class_id: str
    signature: str = ""
    return_type: str = "void"
    parameters: list[Parameter] = field(default_factory=list)
    modifiers: set[str] = field(default_factory=set)
    line_number: int = 0
    is_constructor: bool = False
    is_static: bool = False
    is_abstract: bool = False
    is_public: bool = False
    is_private: bool = False
    cross_count: int = 0
    weight: float = 0.0
    is_root_node: bool = False
    depth: int = -1
    tree_ids: set[str] = field(default_factory=set)

    @property
    def visibility(self) -> str:
        if self.is_public:
            return "public"
        if self.is_private:
            return "private"
        if "protected" in self.modifiers:
            return "protected"
        return "package"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "class_id": self.class_id,
            "signature": self.signature,
            "return_type": self.return_type,
            "parameters": [{"name": p.name, "type": p.type} for p in self.parameters],
            "visibility": self.visibility,
            "is_constructor": self.is_constructor,
            "cross_count": self.cross_count,
            "weight": self.weight,
            "is_root_node": self.is_root_node,
            "depth": self.depth,
            "tree_ids": sorted(self.tree_ids),
        }


@dataclass
class CallEdge:
    id: str
    from_method_id: str
    to_method_id: str
    from_class_id: str
    to_class_id: str
    call_type: CallType = CallType.DIRECT
    line_number: int = 0
    confidence: float = 1.0
    tree_ids: set[str] = field(default_factory=set)
    cross_count: int = 0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Edge {self.id}: confidence {self.confidence} outside [0, 1]")

    @property
    def is_self_loop(self) -> bool:
        return self.from_method_id == self.to_method_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "from_method_id": self.from_method_id,
            "to_method_id": self.to_method_id,
            "from_class_id": self.from_class_id,
            "to_class_id": self.to_class_id,
            "call_type": self.call_type.value,
            "confidence": self.confidence,
            "tree_ids": sorted(self.tree_ids),
            "cross_count": self.cross_count,
        }


# ---------------------------------------------------------------------------
# Derived structures (call trees, core paths)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CallTree:
    id: str
    tree_number: str
    root_method_id: str
    root_class_id: str
    business_domain: BusinessDomain
    depth: int
    node_count: int
    cross_node_count: int
    path_count: int
    depth_limited: bool = False
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tree_number": self.tree_number,
            "root_method_id": self.root_method_id,
            "root_class_id": self.root_class_id,
            "business_domain": self.business_domain.value,
            "depth": self.depth,
            "node_count": self.node_count,
            "cross_node_count": self.cross_node_count,
            "path_count": self.path_count,
            "depth_limited": self.depth_limited,
            "description": self.description,
        }


@dataclass(frozen=True)
class TreeNodeRelation:
    id: str
    tree_id: str
    parent_method_id: str
    child_method_id: str
    depth: int
    path_index: int


@dataclass(frozen=True)
class CorePath:
    id: str
    path_number: str
    from_method_id: str
    root_method_id: str
    tree_id: str
    nodes: tuple[str, ...]          # member first, root last
    path_length: int
    layer_cross_count: int
    weight: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path_number": self.path_number,
            "from_method_id": self.from_method_id,
            "root_method_id": self.root_method_id,
            "tree_id": self.tree_id,
            "nodes": list(self.nodes),
            "path_length": self.path_length,
            "layer_cross_count": self.layer_cross_count,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class InterfaceImplementationMapping:
    id: str
    interface_class_id: str
    interface_method_id: str
    implementation_class_id: str
    implementation_method_id: str


@dataclass
class GraphMetadata:
    project_name: str = ""
    build_time: str = field(default_factory=now_iso)
    version: str = "1.0.0"
    description: str = "codeweight knowledge graph"


@dataclass
class GraphStatistics:
    total_classes: int
    total_methods: int
    total_edges: int
    total_trees: int
    total_core_paths: int
    layer_distribution: dict[str, int]
    call_type_distribution: dict[str, int]
    business_domain_distribution: dict[str, int]
    avg_methods_per_class: float
    avg_tree_depth: float
    cross_node_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_classes": self.total_classes,
            "total_methods": self.total_methods,
            "total_edges": self.total_edges,
            "total_trees": self.total_trees,
            "total_core_paths": self.total_core_paths,
            "layer_distribution": self.layer_distribution,
            "call_type_distribution": self.call_type_distribution,
            "business_domain_distribution": self.business_domain_distribution,
            "avg_methods_per_class": round(self.avg_methods_per_class, 2),
            "avg_tree_depth": round(self.avg_tree_depth, 2),
            "cross_node_count": self.cross_node_count,
        }


# ---------------------------------------------------------------------------
# Query results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CallerInfo:
    """One row of a callers/callees query: a neighbouring method and its call count."""
    class_name: str
    method_name: str
    layer: str
    call_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_name": self.class_name,
            "method_name": self.method_name,
            "layer": self.layer,
            "call_count": self.call_count,
        }


@dataclass(frozen=True)
class MethodCallersInfo:
    total_callers: int = 0
    layer_distribution: dict[str, int] = field(default_factory=dict)
    callers: tuple[CallerInfo, ...] = ()
    found: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_callers": self.total_callers,
            "layer_distribution": dict(self.layer_distribution),
            "callers": [c.to_dict() for c in self.callers],
            "found": self.found,
        }


@dataclass(frozen=True)
class MethodCalleesInfo:
    total_callees: int = 0
    layer_distribution: dict[str, int] = field(default_factory=dict)
    callees: tuple[CallerInfo, ...] = ()
    found: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_callees": self.total_callees,
            "layer_distribution": dict(self.layer_distribution),
            "callees": [c.to_dict() for c in self.callees],
            "found": self.found,
        }


@dataclass(frozen=True)
class ClassArchitectureInfo:
    class_name: str
    layer: str = Layer.UNKNOWN.value
    package: str = ""
    parents: tuple[str, ...] = ()
    children: tuple[str, ...] = ()
    interfaces: tuple[str, ...] = ()
    implementations: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    dependency_layers: tuple[str, ...] = ()
    found: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_name": self.class_name,
            "layer": self.layer,
            "package": self.package,
            "parents": list(self.parents),
            "children": list(self.children),
            "interfaces": list(self.interfaces),
            "implementations": list(self.implementations),
            "dependencies": list(self.dependencies),
            "dependency_layers": list(self.dependency_layers),
            "found": self.found,
        }


@dataclass(frozen=True)
class CallPathChainInfo:
    full_path: tuple[str, ...] = ()
    layers_in_path: tuple[str, ...] = ()
    path_length: int = 0
    relationship_types: tuple[str, ...] = ()
    has_layer_violations: bool = False
    found: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "full_path": list(self.full_path),
            "layers_in_path": list(self.layers_in_path),
            "path_length": self.path_length,
            "relationship_types": list(self.relationship_types),
            "has_layer_violations": self.has_layer_violations,
            "found": self.found,
        }


@dataclass(frozen=True)
class BlastRadiusInfo:
    direct_callers: int = 0
    indirect_callers: int = 0
    direct_callees: int = 0
    indirect_callees: int = 0
    affected_layers: tuple[str, ...] = ()
    total_affected_classes: int = 0
    found: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "direct_callers": self.direct_callers,
            "indirect_callers": self.indirect_callers,
            "direct_callees": self.direct_callees,
            "indirect_callees": self.indirect_callees,
            "affected_layers": list(self.affected_layers),
            "total_affected_classes": self.total_affected_classes,
            "found": self.found,
        }


# ---------------------------------------------------------------------------
# Git change context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChangedFile:
    path: str
    change_type: FileChangeType = FileChangeType.MODIFIED
    added_lines: int = 0
    deleted_lines: int = 0
    added_content: tuple[str, ...] = ()


@dataclass(frozen=True)
class GitCommit:
    hash: str
    message: str = ""
    author: str = ""
    date: str = ""


@dataclass(frozen=True)
class GitChangeContext:
    source_branch: str = ""
    target_branch: str = ""
    changed_files: tuple[ChangedFile, ...] = ()
    added_lines: int = 0
    deleted_lines: int = 0
    commits: tuple[GitCommit, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.changed_files and not self.commits \
            and self.added_lines == 0 and self.deleted_lines == 0


# ---------------------------------------------------------------------------
# Call paths and scores
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CallPath:
    id: str
    methods: tuple[str, ...]                  # "Class.method", entry point first
    description: str = ""
    related_changes: tuple[ChangedFile, ...] = ()

    @property
    def class_names(self) -> list[str]:
        """Distinct owning class names in path order."""
        seen: list[str] = []
        for m in self.methods:
            parts = split_method_path(m)
            if parts and parts[0] not in seen:
                seen.append(parts[0])
        return seen


@dataclass(frozen=True)
class WeightBreakdown:
    """One calculator's verdict: the clamped weight and its inputs."""
    weight: float
    components: dict[str, float] = field(default_factory=dict)
    degraded: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredCallPath:
    path_id: str
    methods: tuple[str, ...]
    classes: tuple[str, ...]
    intent_weight: float
    risk_weight: float
    intent_components: dict[str, float] = field(default_factory=dict)
    risk_components: dict[str, float] = field(default_factory=dict)
    degraded: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "path_id": self.path_id,
            "methods": list(self.methods),
            "classes": list(self.classes),
            "intent_weight": round(self.intent_weight, 2),
            "risk_weight": round(self.risk_weight, 2),
            "intent_components": {k: round(v, 2) for k, v in self.intent_components.items()},
            "risk_components": {k: round(v, 2) for k, v in self.risk_components.items()},
            "degraded": list(self.degraded),
        }
