"""Layer rules and name-based classification of classes.

``VALID_LAYER_TRANSITIONS`` is the allowed-call table used by both the chain
query (``has_layer_violations``) and the risk calculator.  The detectors infer
a class's layer and business domain from annotations, package and class name
when the collaborator input does not carry them.
"""

from __future__ import annotations

from codeweight.models import BusinessDomain, Layer


# ---------------------------------------------------------------------------
# Layer validity
# ---------------------------------------------------------------------------

VALID_LAYER_TRANSITIONS: dict[Layer, frozenset[Layer]] = {
    Layer.CONTROLLER: frozenset({Layer.SERVICE}),
    Layer.SERVICE: frozenset({Layer.REPOSITORY, Layer.UTIL}),
    Layer.REPOSITORY: frozenset(),
    Layer.UTIL: frozenset(),
}

_UPPER_LAYERS = frozenset({Layer.CONTROLLER, Layer.SERVICE})


def as_layer(value: str | Layer | None) -> Layer:
    if isinstance(value, Layer):
        return value
    if not value:
        return Layer.UNKNOWN
    try:
        return Layer(value.upper())
    except ValueError:
        return Layer.UNKNOWN


def is_layer_violation(source: str | Layer, target: str | Layer) -> bool:
    """True when a call from *source* into *target* breaks the layering.

    Calls into UNKNOWN are never flagged.  A source with a non-empty
    allowed set may only call into that set, so SERVICE to SERVICE counts.  Leaf
    layers (empty or missing entry) may call sideways or down, but an upward
    call into CONTROLLER or SERVICE is a violation.
    """
    src, dst = as_layer(source), as_layer(target)
    if dst == Layer.UNKNOWN:
        return False
    allowed = VALID_LAYER_TRANSITIONS.get(src, frozenset())
    if allowed:
        return dst not in allowed
    return dst in _UPPER_LAYERS


def disallowed_dependency_layers(layer: str | Layer, dependency_layers: list[str]) -> list[str]:
    """Dependency layers outside the allowed set of *layer*.

    Stricter than ``is_layer_violation``: a layer missing from the table
    allows nothing, so every dependency layer of such a class counts.
    """
    allowed = VALID_LAYER_TRANSITIONS.get(as_layer(layer), frozenset())
    return [d for d in dependency_layers if as_layer(d) not in allowed]


# ---------------------------------------------------------------------------
# Layer detection
# ---------------------------------------------------------------------------

_ANNOTATION_LAYERS: dict[str, Layer] = {
    "Controller": Layer.CONTROLLER,
    "RestController": Layer.CONTROLLER,
    "Service": Layer.SERVICE,
    "Repository": Layer.REPOSITORY,
    "Mapper": Layer.MAPPER,
    "Configuration": Layer.CONFIG,
    "Component": Layer.COMPONENT,
    "Entity": Layer.ENTITY,
}

# Order matters: first matching package segment wins.
_PACKAGE_LAYERS: tuple[tuple[tuple[str, ...], Layer], ...] = (
    (("controller", "web"), Layer.CONTROLLER),
    (("service", "business"), Layer.SERVICE),
    (("mapper", "dao"), Layer.MAPPER),
    (("repository", "repo"), Layer.REPOSITORY),
    (("util", "helper"), Layer.UTIL),
    (("entity", "model", "domain"), Layer.ENTITY),
    (("config",), Layer.CONFIG),
    (("component",), Layer.COMPONENT),
)

_SUFFIX_LAYERS: tuple[tuple[tuple[str, ...], Layer], ...] = (
    (("controller",), Layer.CONTROLLER),
    (("serviceimpl", "service"), Layer.SERVICE),
    (("mapper", "dao"), Layer.MAPPER),
    (("repository", "repo"), Layer.REPOSITORY),
    (("utils", "util", "helper"), Layer.UTIL),
    (("entity", "model", "dto", "vo", "po", "do"), Layer.ENTITY),
    (("configuration", "config"), Layer.CONFIG),
    (("component",), Layer.COMPONENT),
)


def _annotation_name(annotation: str) -> str:
    name = annotation.lstrip("@")
    name = name.split("(", 1)[0]
    return name.rsplit(".", 1)[-1]


def detect_layer(name: str, package: str = "", annotations: list[str] | None = None) -> Layer:
    """Annotations first, then package segments, then class-name suffix."""
    for ann in annotations or []:
        layer = _ANNOTATION_LAYERS.get(_annotation_name(ann))
        if layer is not None:
            return layer

    pkg = package.lower()
    if pkg:
        for keys, layer in _PACKAGE_LAYERS:
            if any(k in pkg for k in keys):
                return layer

    lowered = name.lower()
    for suffixes, layer in _SUFFIX_LAYERS:
        if any(lowered.endswith(s) for s in suffixes):
            return layer
    return Layer.UNKNOWN


# ---------------------------------------------------------------------------
# Business domain detection
# ---------------------------------------------------------------------------

DOMAIN_KEYWORDS: dict[BusinessDomain, tuple[str, ...]] = {
    BusinessDomain.USER: ("user", "account", "member", "customer", "profile", "person"),
    BusinessDomain.ORDER: ("order", "purchase", "cart", "shopping", "checkout"),
    BusinessDomain.PRODUCT: ("product", "goods", "item", "sku", "catalog", "inventory"),
    BusinessDomain.PAYMENT: ("payment", "pay", "billing", "invoice", "refund", "wallet"),
    BusinessDomain.AUTH: ("auth", "login", "security", "permission", "role", "token"),
    BusinessDomain.SYSTEM: ("system", "admin", "config", "setting", "monitor"),
    BusinessDomain.COMMON: ("common", "util", "helper", "base", "abstract"),
}

DOMAIN_PRIORITY: dict[BusinessDomain, int] = {
    BusinessDomain.USER: 10,
    BusinessDomain.ORDER: 9,
    BusinessDomain.PAYMENT: 8,
    BusinessDomain.PRODUCT: 7,
    BusinessDomain.AUTH: 6,
    BusinessDomain.SYSTEM: 3,
    BusinessDomain.COMMON: 2,
    BusinessDomain.UNKNOWN: 1,
}


def detect_business_domain(name: str, package: str = "", layer: Layer = Layer.UNKNOWN) -> BusinessDomain:
    """Keyword match on the class name, then the package; config/util fall back to COMMON."""
    for text in (name.lower(), package.lower()):
        if not text:
            continue
        for domain, keywords in DOMAIN_KEYWORDS.items():
            if any(k in text for k in keywords):
                return domain
    if layer in (Layer.CONFIG, Layer.UTIL):
        return BusinessDomain.COMMON
    return BusinessDomain.UNKNOWN
