"""Neo4j adapter: load an exported Cypher script and answer the five queries.

Dependency: neo4j>=5 (optional extra).  The driver is imported lazily so
the rest of codeweight works without it; tests inject a fake driver.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterator

from codeweight import defaults
from codeweight.layers import is_layer_violation
from codeweight.models import (
    BlastRadiusInfo,
    CallerInfo,
    CallPathChainInfo,
    ClassArchitectureInfo,
    Layer,
    MethodCalleesInfo,
    MethodCallersInfo,
)

log = logging.getLogger("codeweight.adapters.neo4j")


@dataclass
class Neo4jConfig:
    uri: str = defaults.NEO4J_URI
    user: str = defaults.NEO4J_USER
    password: str = defaults.NEO4J_PASSWORD
    database: str = defaults.NEO4J_DATABASE


# ---------------------------------------------------------------------------
# Script loading
# ---------------------------------------------------------------------------

def split_statements(script: str) -> list[str]:
    """Split an export script into executable statements.

    Comment lines are dropped; a statement ends at a line ending in ``;``.
    A trailing statement without ``;`` is kept.
    """
    statements: list[str] = []
    current: list[str] = []
    for raw in script.splitlines():
        line = raw.rstrip()
        stripped = line.strip()
        if not stripped or stripped.startswith("//"):
            continue
        if stripped.endswith(";"):
            current.append(line[: line.rfind(";")])
            statements.append("\n".join(current).strip())
            current = []
        else:
            current.append(line)
    tail = "\n".join(current).strip()
    if tail:
        statements.append(tail)
    return [s for s in statements if s]


# Class reference: id, then qualified name, then simple name
_CLASS_MATCH = "(c.id = $cls OR c.qualifiedName = $cls OR c.name = $cls)"
_CLASS_RANK = "CASE WHEN c.id = $cls THEN 0 WHEN c.qualifiedName = $cls THEN 1 ELSE 2 END"

_CALLERS = f"""
MATCH (c:Class)-[:CONTAINS]->(m:Method {{name: $method}})
WHERE {_CLASS_MATCH}
OPTIONAL MATCH (other:Method)-[r:CALLS]->(m)
OPTIONAL MATCH (oc:Class)-[:CONTAINS]->(other)
RETURN oc.name AS class_name, other.name AS method_name, oc.layer AS layer, count(r) AS call_count
ORDER BY call_count DESC
"""

_CALLEES = f"""
MATCH (c:Class)-[:CONTAINS]->(m:Method {{name: $method}})
WHERE {_CLASS_MATCH}
OPTIONAL MATCH (m)-[r:CALLS]->(other:Method)
OPTIONAL MATCH (oc:Class)-[:CONTAINS]->(other)
RETURN oc.name AS class_name, other.name AS method_name, oc.layer AS layer, count(r) AS call_count
ORDER BY call_count DESC
"""

_ARCHITECTURE = f"""
MATCH (c:Class)
WHERE {_CLASS_MATCH}
WITH c ORDER BY {_CLASS_RANK} LIMIT 1
OPTIONAL MATCH (child:Class)
WHERE child.id <> c.id AND child.superClass IN [c.qualifiedName, c.name]
WITH c, collect(DISTINCT child.name) AS children
OPTIONAL MATCH (impl:Class)
WHERE c.isInterface AND impl.id <> c.id
  AND any(i IN impl.interfaces WHERE i IN [c.qualifiedName, c.name])
WITH c, children, collect(DISTINCT impl.name) AS implementations
OPTIONAL MATCH (c)-[:CONTAINS]->(:Method)-[:CALLS]->(:Method)<-[:CONTAINS]-(dep:Class)
WHERE dep.id <> c.id
RETURN c.name AS class_name, c.layer AS layer, c.package AS package,
       c.superClass AS super_class, c.interfaces AS interfaces,
       children, implementations,
       collect(DISTINCT {{name: dep.name, layer: dep.layer}}) AS dependencies
"""

# The hop bound cannot be a parameter in a variable-length pattern.
_CHAIN = """
MATCH (sc:Class)-[:CONTAINS]->(s:Method {{name: $source_method}})
WHERE sc.id = $source_class OR sc.qualifiedName = $source_class OR sc.name = $source_class
MATCH (tc:Class)-[:CONTAINS]->(t:Method {{name: $target_method}})
WHERE tc.id = $target_class OR tc.qualifiedName = $target_class OR tc.name = $target_class
MATCH p = shortestPath((s)-[:CALLS*1..{hops}]->(t))
WITH p ORDER BY length(p) LIMIT 1
RETURN [n IN nodes(p) | head([(k:Class)-[:CONTAINS]->(n) | k.name]) + '.' + n.name] AS full_path,
       [n IN nodes(p) | head([(k:Class)-[:CONTAINS]->(n) | k.layer])] AS layers,
       [r IN relationships(p) | r.callType] AS relationship_types,
       length(p) AS path_length
"""

_BLAST = f"""
MATCH (c:Class)-[:CONTAINS]->(m:Method {{name: $method}})
WHERE {_CLASS_MATCH}
WITH collect(m) AS centre
OPTIONAL MATCH (dc:Method)-[:CALLS]->(x:Method)
WHERE x IN centre AND NOT dc IN centre
WITH centre, collect(DISTINCT dc) AS direct_callers
OPTIONAL MATCH (ic:Method)-[:CALLS]->(y:Method)
WHERE y IN direct_callers AND NOT ic IN centre AND NOT ic IN direct_callers
WITH centre, direct_callers, collect(DISTINCT ic) AS indirect_callers
OPTIONAL MATCH (x2:Method)-[:CALLS]->(de:Method)
WHERE x2 IN centre AND NOT de IN centre
WITH centre, direct_callers, indirect_callers, collect(DISTINCT de) AS direct_callees
OPTIONAL MATCH (y2:Method)-[:CALLS]->(ie:Method)
WHERE y2 IN direct_callees AND NOT ie IN centre AND NOT ie IN direct_callees
WITH centre, direct_callers, indirect_callers, direct_callees, collect(DISTINCT ie) AS indirect_callees
RETURN size(centre) AS centre,
       size(direct_callers) AS direct_callers,
       size(indirect_callers) AS indirect_callers,
       size(direct_callees) AS direct_callees,
       size(indirect_callees) AS indirect_callees,
       [n IN direct_callers + direct_callees | n.classId] AS direct_class_ids,
       [n IN direct_callers + indirect_callers + direct_callees + indirect_callees | n.classId] AS class_ids
"""

_CLASS_LAYERS = """
MATCH (c:Class) WHERE c.id IN $ids
RETURN c.id AS id, c.layer AS layer
"""


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class Neo4jStore:
    """Owns the driver; one short-lived session per call.

    The driver is thread-safe, so a store can be shared by scoring workers.
    """

    def __init__(self, cfg: Neo4jConfig | None = None, driver: Any | None = None) -> None:
        self.cfg = cfg or Neo4jConfig()
        if driver is None:
            from neo4j import GraphDatabase  # type: ignore

            driver = GraphDatabase.driver(self.cfg.uri, auth=(self.cfg.user, self.cfg.password))
        self._driver = driver

    def close(self) -> None:
        self._driver.close()

    def __enter__(self) -> Neo4jStore:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _run(self, query: str, **params: Any) -> list[dict[str, Any]]:
        with self._driver.session(database=self.cfg.database) as s:
            return [dict(record) for record in s.run(query, **params)]

    def execute_script(self, script: str) -> int:
        """Run every statement of *script* in order; return the count executed."""
        statements = split_statements(script)
        start = time.monotonic()
        with self._driver.session(database=self.cfg.database) as s:
            for stmt in statements:
                s.run(stmt)
        log.info(
            "Loaded %d statements into %s", len(statements), self.cfg.database,
            extra={"duration_ms": round((time.monotonic() - start) * 1000, 1)},
        )
        return len(statements)


def load_script(cfg: Neo4jConfig, script: str, driver: Any | None = None) -> int:
    with Neo4jStore(cfg, driver=driver) as store:
        return store.execute_script(script)


# ---------------------------------------------------------------------------
# Query service
# ---------------------------------------------------------------------------

def _layer(value: Any) -> str:
    return value or Layer.UNKNOWN.value


def _neighbour_rows(records: list[dict[str, Any]]) -> Iterator[CallerInfo]:
    for r in records:
        if r.get("call_count") and r.get("method_name") is not None:
            yield CallerInfo(
                class_name=r.get("class_name") or "",
                method_name=r["method_name"],
                layer=_layer(r.get("layer")),
                call_count=int(r["call_count"]),
            )


class Neo4jQueryService(Neo4jStore):
    """``GraphQueryPort`` over a database loaded from an export script."""

    def __init__(
        self,
        cfg: Neo4jConfig | None = None,
        driver: Any | None = None,
        max_chain_hops: int = defaults.MAX_CHAIN_HOPS,
    ) -> None:
        super().__init__(cfg, driver)
        self.max_chain_hops = int(max_chain_hops)

    def query_method_callers(self, class_name: str, method_name: str) -> MethodCallersInfo:
        records = self._run(_CALLERS, cls=class_name, method=method_name)
        if not records:
            return MethodCallersInfo()
        rows = list(_neighbour_rows(records))
        return MethodCallersInfo(
            total_callers=len(rows),
            layer_distribution=dict(Counter(r.layer for r in rows)),
            callers=tuple(rows),
            found=True,
        )

    def query_method_callees(self, class_name: str, method_name: str) -> MethodCalleesInfo:
        records = self._run(_CALLEES, cls=class_name, method=method_name)
        if not records:
            return MethodCalleesInfo()
        rows = list(_neighbour_rows(records))
        return MethodCalleesInfo(
            total_callees=len(rows),
            layer_distribution=dict(Counter(r.layer for r in rows)),
            callees=tuple(rows),
            found=True,
        )

    def query_class_architecture(self, class_name: str) -> ClassArchitectureInfo:
        records = self._run(_ARCHITECTURE, cls=class_name)
        if not records:
            return ClassArchitectureInfo(class_name=class_name)
        r = records[0]
        dependencies: dict[str, str] = {}
        for dep in r.get("dependencies") or []:
            if dep and dep.get("name") is not None:
                dependencies.setdefault(dep["name"], _layer(dep.get("layer")))
        super_class = r.get("super_class")
        return ClassArchitectureInfo(
            class_name=r.get("class_name") or class_name,
            layer=_layer(r.get("layer")),
            package=r.get("package") or "",
            parents=(super_class,) if super_class else (),
            children=tuple(r.get("children") or ()),
            interfaces=tuple(r.get("interfaces") or ()),
            implementations=tuple(r.get("implementations") or ()),
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
        records = self._run(
            _CHAIN.format(hops=self.max_chain_hops),
            source_class=source_class,
            source_method=source_method,
            target_class=target_class,
            target_method=target_method,
        )
        if not records:
            return CallPathChainInfo()
        r = records[0]
        layers = [_layer(v) for v in r.get("layers") or []]
        return CallPathChainInfo(
            full_path=tuple(r.get("full_path") or ()),
            layers_in_path=tuple(layers),
            path_length=int(r.get("path_length") or 0),
            relationship_types=tuple(r.get("relationship_types") or ()),
            has_layer_violations=any(is_layer_violation(a, b) for a, b in zip(layers, layers[1:])),
            found=True,
        )

    def query_blast_radius(self, class_name: str, method_name: str) -> BlastRadiusInfo:
        records = self._run(_BLAST, cls=class_name, method=method_name)
        if not records or not records[0].get("centre"):
            return BlastRadiusInfo()
        r = records[0]
        direct_ids = list(r.get("direct_class_ids") or [])
        all_ids = set(r.get("class_ids") or [])
        layer_of: dict[str, str] = {}
        if direct_ids:
            layer_of = {
                row["id"]: _layer(row.get("layer"))
                for row in self._run(_CLASS_LAYERS, ids=sorted(set(direct_ids)))
            }
        affected = dict.fromkeys(layer_of.get(cid, Layer.UNKNOWN.value) for cid in direct_ids)
        return BlastRadiusInfo(
            direct_callers=int(r.get("direct_callers") or 0),
            indirect_callers=int(r.get("indirect_callers") or 0),
            direct_callees=int(r.get("direct_callees") or 0),
            indirect_callees=int(r.get("indirect_callees") or 0),
            affected_layers=tuple(affected),
            total_affected_classes=len(all_ids),
            found=True,
        )
