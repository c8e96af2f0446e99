"""Query port for structural call-graph questions.

Defines the Protocol every query backend implements.  The weight
calculators depend only on ``GraphQueryPort``; backends are the in-memory
networkx service and the Neo4j adapter, optionally wrapped by
``ResilientQueryService``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from codeweight.models import (
    BlastRadiusInfo,
    CallPathChainInfo,
    ClassArchitectureInfo,
    MethodCalleesInfo,
    MethodCallersInfo,
)


@runtime_checkable
class GraphQueryPort(Protocol):
    def query_method_callers(self, class_name: str, method_name: str) -> MethodCallersInfo: ...
    def query_method_callees(self, class_name: str, method_name: str) -> MethodCalleesInfo: ...
    def query_class_architecture(self, class_name: str) -> ClassArchitectureInfo: ...
    def query_call_path_chain(
        self,
        source_class: str,
        source_method: str,
        target_class: str,
        target_method: str,
    ) -> CallPathChainInfo: ...
    def query_blast_radius(self, class_name: str, method_name: str) -> BlastRadiusInfo: ...


QUERY_NAMES = (
    "query_method_callers",
    "query_method_callees",
    "query_class_architecture",
    "query_call_path_chain",
    "query_blast_radius",
)
