"""Interface/abstract method to implementation mapping.

A mapping links a method declared on an interface (or an abstract method on
an abstract class) to each concrete method that implements it: same name,
same normalized parameter types, compatible return type, public.
"""

from __future__ import annotations

import hashlib
import logging
import re

from codeweight.graph import KnowledgeGraph
from codeweight.models import ClassBlock, InterfaceImplementationMapping, MethodNode

log = logging.getLogger("codeweight.interfaces")

_WS = re.compile(r"\s+")
_IMPLICIT_PACKAGES = ("java.lang.", "java.util.")


def normalize_type(type_name: str) -> str:
    t = _WS.sub("", type_name)
    for prefix in _IMPLICIT_PACKAGES:
        t = t.replace(prefix, "")
    return t


def mapping_id(interface_method_id: str, impl_method_id: str) -> str:
    digest = hashlib.md5(f"{interface_method_id}->{impl_method_id}".encode()).hexdigest()
    return f"mapping_{digest}"


def is_method_implementation(declared: MethodNode, impl: MethodNode) -> bool:
    if declared.name != impl.name or not impl.is_public:
        return False
    if len(declared.parameters) != len(impl.parameters):
        return False
    if any(normalize_type(a.type) != normalize_type(b.type)
           for a, b in zip(declared.parameters, impl.parameters)):
        return False
    return normalize_type(declared.return_type) == normalize_type(impl.return_type)


def _refers_to(ref: str, cls: ClassBlock) -> bool:
    return ref == cls.name or (bool(cls.qualified_name) and ref == cls.qualified_name)


def _implementors(graph: KnowledgeGraph, base: ClassBlock) -> list[ClassBlock]:
    if base.is_interface:
        return [
            c for c in graph.classes()
            if not c.is_interface and any(_refers_to(i, base) for i in c.interfaces)
        ]
    return [
        c for c in graph.classes()
        if c.id != base.id and c.super_class and _refers_to(c.super_class, base)
    ]


def _declared_methods(graph: KnowledgeGraph, base: ClassBlock) -> list[MethodNode]:
    methods = [m for m in graph.get_methods_by_class(base.id) if not m.is_static]
    if base.is_interface:
        return methods
    return [m for m in methods if m.is_abstract]


def analyze_implementations(graph: KnowledgeGraph) -> list[InterfaceImplementationMapping]:
    """Compute every interface/abstract method to implementation mapping."""
    mappings: list[InterfaceImplementationMapping] = []
    for base in graph.classes():
        if not (base.is_interface or base.is_abstract):
            continue
        declared = _declared_methods(graph, base)
        if not declared:
            continue
        for impl_cls in _implementors(graph, base):
            impl_methods = graph.get_methods_by_class(impl_cls.id)
            for d in declared:
                for impl in impl_methods:
                    if is_method_implementation(d, impl):
                        mappings.append(InterfaceImplementationMapping(
                            id=mapping_id(d.id, impl.id),
                            interface_class_id=base.id,
                            interface_method_id=d.id,
                            implementation_class_id=impl_cls.id,
                            implementation_method_id=impl.id,
                        ))
    log.info("Found %d interface implementation mapping(s)", len(mappings))
    return mappings


def apply_implementations(graph: KnowledgeGraph) -> int:
    """Analyze and store mappings in *graph* (build phase). Returns the count."""
    mappings = analyze_implementations(graph)
    for m in mappings:
        graph.add_implementation_mapping(m)
    return len(mappings)
