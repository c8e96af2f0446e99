"""Single source of truth for shared constants and configuration defaults.

Every bound, batch size or default that appears in more than one module is
defined here.  Scoring tier tables are local to ``codeweight.weights._tables``.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Traversal bounds
# ---------------------------------------------------------------------------

MAX_CHAIN_HOPS = 5              # queryCallPathChain shortest-path bound
BLAST_RADIUS_HOPS = 2           # direct (1) + indirect (2)
TREE_MAX_DEPTH = 5              # call tree depth cap, matches MAX_CHAIN_HOPS

# ---------------------------------------------------------------------------
# Composite weighting (graph 80% / git 20%)
# ---------------------------------------------------------------------------

GRAPH_SHARE = 0.8
GIT_SHARE = 0.2
SCORE_MIN = 0.0
SCORE_MAX = 100.0

# ---------------------------------------------------------------------------
# Export batching
# ---------------------------------------------------------------------------

NODE_BATCH_SIZE = 50
EDGE_BATCH_SIZE = 100

# ---------------------------------------------------------------------------
# Query resilience
# ---------------------------------------------------------------------------

QUERY_TIMEOUT_SECONDS = 10.0
QUERY_MAX_ATTEMPTS = 3
QUERY_BASE_DELAY = 0.2
QUERY_MAX_DELAY = 2.0
BREAKER_FAILURE_THRESHOLD = 5
BREAKER_RECOVERY_SECONDS = 30.0

# ---------------------------------------------------------------------------
# Analysis run
# ---------------------------------------------------------------------------

SCORE_WORKERS = 4
RUN_DEADLINE_SECONDS = 300.0

# ---------------------------------------------------------------------------
# Neo4j connection
# ---------------------------------------------------------------------------

NEO4J_URI = "bolt://localhost:7687"
NEO4J_USER = "neo4j"
NEO4J_PASSWORD = "password"
NEO4J_DATABASE = "neo4j"

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

DEFAULT_PROJECT_NAME = "unnamed"
GRAPH_VERSION = "1.0.0"
ID_HASH_CHARS = 8
