"""Runtime configuration from ``CODEWEIGHT_*`` environment variables.

Defaults come from ``codeweight.defaults``.  Invalid numeric values fall
back to the default with a warning rather than aborting a run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from codeweight import defaults
from codeweight.adapters.neo4j_store import Neo4jConfig

log = logging.getLogger("codeweight.config")

ENV_PREFIX = "CODEWEIGHT_"


def _number(env: Mapping[str, str], key: str, default: float, cast: type = float) -> float:
    raw = env.get(ENV_PREFIX + key)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        log.warning("Invalid %s%s=%r, using %s", ENV_PREFIX, key, raw, default)
        return default
    if value < 0:
        log.warning("Negative %s%s=%r, using %s", ENV_PREFIX, key, raw, default)
        return default
    return value


@dataclass
class Settings:
    neo4j_uri: str = defaults.NEO4J_URI
    neo4j_user: str = defaults.NEO4J_USER
    neo4j_password: str = defaults.NEO4J_PASSWORD
    neo4j_database: str = defaults.NEO4J_DATABASE
    query_timeout: float = defaults.QUERY_TIMEOUT_SECONDS
    query_retries: int = defaults.QUERY_MAX_ATTEMPTS
    query_backoff: float = defaults.QUERY_BASE_DELAY
    tree_max_depth: int = defaults.TREE_MAX_DEPTH
    score_workers: int = defaults.SCORE_WORKERS
    run_deadline: float = defaults.RUN_DEADLINE_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            neo4j_uri=env.get(ENV_PREFIX + "NEO4J_URI", defaults.NEO4J_URI),
            neo4j_user=env.get(ENV_PREFIX + "NEO4J_USER", defaults.NEO4J_USER),
            neo4j_password=env.get(ENV_PREFIX + "NEO4J_PASSWORD", defaults.NEO4J_PASSWORD),
            neo4j_database=env.get(ENV_PREFIX + "NEO4J_DATABASE", defaults.NEO4J_DATABASE),
            query_timeout=_number(env, "QUERY_TIMEOUT", defaults.QUERY_TIMEOUT_SECONDS),
            query_retries=max(1, int(_number(env, "QUERY_RETRIES", defaults.QUERY_MAX_ATTEMPTS, int))),
            query_backoff=_number(env, "QUERY_BACKOFF", defaults.QUERY_BASE_DELAY),
            tree_max_depth=int(_number(env, "TREE_MAX_DEPTH", defaults.TREE_MAX_DEPTH, int)),
            score_workers=max(1, int(_number(env, "SCORE_WORKERS", defaults.SCORE_WORKERS, int))),
            run_deadline=_number(env, "RUN_DEADLINE", defaults.RUN_DEADLINE_SECONDS),
            log_level=env.get(ENV_PREFIX + "LOG_LEVEL", "INFO").upper(),
        )

    def neo4j_config(self) -> Neo4jConfig:
        return Neo4jConfig(
            uri=self.neo4j_uri,
            user=self.neo4j_user,
            password=self.neo4j_password,
            database=self.neo4j_database,
        )
