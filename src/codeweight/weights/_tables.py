"""Tier tables and composition constants for intent and risk scoring.

Tier tables are ``((threshold, score), ...)`` checked top-down with a strict
``>`` comparison; the first row whose threshold is exceeded wins.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

_INTENT_BUSINESS_SHARE = 0.40
_INTENT_ARCH_SHARE = 0.25
_INTENT_CHAIN_SHARE = 0.15

_RISK_ARCH_SHARE = 0.35
_RISK_BLAST_SHARE = 0.30
_RISK_LAYER_SHARE = 0.15

# ---------------------------------------------------------------------------
# Intent: business impact
# ---------------------------------------------------------------------------

_BUSINESS_CAP = 90.0

_DOWNSTREAM_LAYER = {"REPOSITORY": 20.0, "DAO": 20.0, "MAPPER": 20.0, "SERVICE": 15.0, "UTIL": 10.0}
_DOWNSTREAM_DEFAULT = 5.0
_DOWNSTREAM_TERMS = ("user", "order", "product", "payment", "customer", "account")
_DOWNSTREAM_TERM_BONUS = 8.0
_DOWNSTREAM_CAP = 50.0

_UPSTREAM_LAYER = {"CONTROLLER": 25.0, "SERVICE": 15.0}
_UPSTREAM_DEFAULT = 5.0
_UPSTREAM_FREQUENCY = ((20, 20.0), (10, 15.0), (5, 10.0))
_UPSTREAM_FREQUENCY_DEFAULT = 5.0
_UPSTREAM_CAP = 40.0

_POSITION_LAYER = {"CONTROLLER": 20.0, "SERVICE": 15.0, "REPOSITORY": 12.0, "CONFIG": 10.0, "UTIL": 8.0}
_POSITION_DEFAULT = 5.0
_POSITION_PER_DEPENDENCY = 2.0
_POSITION_DEPENDENCY_CAP = 15.0
_POSITION_PER_INTERFACE = 5.0
_POSITION_PER_RELATIVE = 3.0
_POSITION_CAP = 30.0

# ---------------------------------------------------------------------------
# Intent: architecture value
# ---------------------------------------------------------------------------

_ARCH_VALUE_CAP = 65.0
_CROSS_LAYER = ((3, 40.0), (2, 30.0), (1, 20.0))        # distinct layers > n
_CROSS_LAYER_DEFAULT = 10.0
_DEPENDENCY_COMPLEXITY = ((10, 15.0), (5, 25.0), (2, 20.0), (0, 10.0))
_DEPENDENCY_COMPLEXITY_DEFAULT = 5.0

# ---------------------------------------------------------------------------
# Intent: call-chain completeness
# ---------------------------------------------------------------------------

_CHAIN_CAP = 80.0
_CHAIN_LENGTH = {1: 30.0, 2: 40.0, 3: 35.0, 4: 25.0}
_CHAIN_LENGTH_DEFAULT = 15.0
_CHAIN_CLEAN = 30.0
_CHAIN_VIOLATING = 10.0
_CHAIN_PER_LAYER = 10.0

_SINGLE_INFLUENCE = ((20, 60.0), (10, 50.0), (5, 40.0), (0, 30.0))
_SINGLE_INFLUENCE_DEFAULT = 20.0
_SINGLE_PER_LAYER = 8.0
_SINGLE_CAP = 70.0

# ---------------------------------------------------------------------------
# Intent: git change value
# ---------------------------------------------------------------------------

_GIT_CAP = 100.0

_INTENT_FILE_TYPES = (
    (("controller", "rest"), 20.0),
    (("service",), 15.0),
    (("dto", "vo", "model"), 12.0),
    (("repository", "dao"), 12.0),
    (("entity",), 10.0),
    (("config",), 8.0),
    (("util", "helper"), 5.0),
)
_INTENT_FILE_DEFAULT = 3.0
_INTENT_FILE_CAP = 30.0

_INTENT_SIZE_LINES = ((500, 15.0), (200, 12.0), (100, 10.0), (50, 8.0))
_INTENT_SIZE_LINES_DEFAULT = 5.0
_INTENT_SIZE_FILES = ((10, 10.0), (5, 8.0), (3, 6.0))
_INTENT_SIZE_FILES_DEFAULT = 3.0
_INTENT_SIZE_CAP = 25.0

_BUSINESS_TERMS = (
    "user", "customer", "order", "product", "payment", "cart", "checkout",
    "account", "profile", "auth", "login", "register", "inventory",
)
_BUSINESS_TERM_SCORE = 4.0
_BUSINESS_TERM_CAP = 20.0

_ENDPOINT_ANNOTATIONS = ("@postmapping", "@getmapping", "@putmapping", "@deletemapping")
_ENDPOINT_SCORE = 8.0
_NEW_CLASS_SCORE = 5.0
_COMPONENT_ANNOTATIONS = ("@service", "@component", "@repository")
_COMPONENT_SCORE = 2.0

_API_CONTROLLER_SCORE = 6.0
_API_ENDPOINT_TERMS = ("endpoint", "api")
_API_ENDPOINT_SCORE = 4.0

# ---------------------------------------------------------------------------
# Risk: architecture
# ---------------------------------------------------------------------------

_ARCH_RISK_CAP = 95.0
_DEPENDENCY_RISK = ((15, 40.0), (10, 25.0), (5, 10.0))
_DEPENDENCY_RISK_DEFAULT = 5.0
_INTERFACE_FREE = 3
_INTERFACE_PENALTY = 8.0
_IMPLEMENTATION_FREE = 5
_IMPLEMENTATION_PENALTY = 5.0
_INTERFACE_RISK_CAP = 30.0
_HIERARCHY_FREE = 4
_HIERARCHY_PENALTY = 6.0
_HIERARCHY_RISK_CAP = 25.0

# ---------------------------------------------------------------------------
# Risk: blast radius
# ---------------------------------------------------------------------------

_BLAST_CAP = 80.0
_DIRECT_CALLERS = ((20, 40.0), (10, 30.0), (5, 20.0))
_DIRECT_CALLERS_DEFAULT = 10.0
_INDIRECT_CALLERS = ((50, 30.0), (20, 20.0), (10, 10.0))
_INDIRECT_CALLERS_DEFAULT = 5.0
_LAYERS_FREE = 3
_LAYER_SPREAD_PENALTY = 8.0
_AFFECTED_CLASSES_THRESHOLD = 30
_AFFECTED_CLASSES_PENALTY = 20.0

# ---------------------------------------------------------------------------
# Risk: layer violation
# ---------------------------------------------------------------------------

_LAYER_RISK_CAP = 105.0
_VIOLATION_BASE = 30.0
_VIOLATION_LENGTH_FREE = 3
_VIOLATION_PER_HOP = 5.0
_VIOLATION_LAYER_SPAN = 4
_VIOLATION_SPAN_PENALTY = 15.0
_VIOLATION_CAP = 60.0
_INVALID_DEPENDENCY_PENALTY = 15.0
_SINGLE_CLASS_CAP = 45.0

# ---------------------------------------------------------------------------
# Risk: git change risk
# ---------------------------------------------------------------------------

_RISK_FILE_CAP = 30.0
_RISK_FILE_DEFAULT = 3.0
_CONFIG_SUFFIXES = (".properties", ".yml", ".yaml")
_RISK_CONFIG_FILE = 25.0
# (substrings, suffixes, risk)
_RISK_FILE_TYPES = (
    (("security", "auth"), (), 20.0),
    (("controller", "rest"), (), 12.0),
    (("database", "migration"), (".sql",), 15.0),
    (("util", "common"), (), 18.0),
    (("service",), (), 8.0),
)

_RISK_SIZE_LINES = ((1000, 20.0), (500, 15.0), (200, 12.0), (100, 8.0))
_RISK_SIZE_LINES_DEFAULT = 5.0
_RISK_SIZE_FILES = ((20, 5.0), (10, 3.0))
_RISK_SIZE_FILES_DEFAULT = 0.0
_RISK_SIZE_CAP = 25.0

_SENSITIVE_KEYWORDS = {
    "@transactional": 8.0,
    "delete": 6.0,
    "drop": 10.0,
    "truncate": 9.0,
    "alter": 5.0,
    "@async": 4.0,
    "@scheduled": 4.0,
    "@preauthorize": 7.0,
    "@postauthorize": 6.0,
    "password": 5.0,
    "token": 4.0,
    "secret": 8.0,
}
_SENSITIVE_CAP = 20.0

_DELETED_FILE_PENALTY = 5.0
_DELETED_LINES = ((500, 10.0), (200, 8.0), (100, 6.0), (50, 4.0))
_DELETED_LINES_DEFAULT = 2.0
_DELETION_CAP = 15.0

_CONFIG_CHANGE_SUFFIXES = (".properties", ".yml", ".yaml", ".xml")
_CONFIG_CHANGE_PENALTY = 5.0
_CONFIG_CHANGE_CAP = 10.0


def _tier(value: float, table: tuple[tuple[float, float], ...], default: float) -> float:
    for threshold, score in table:
        if value > threshold:
            return score
    return default
