"""Route Classification — maps a request path to exactly one RouteCategory.

Invariants:
    - Total: every path maps to exactly one category (fallback: config.default_category)
    - Deterministic: same config + same path → same category
    - Segment matching: "/home" matches "/home" and "/home/x", never "/homepage"
    - Most specific pattern wins; CATEGORY_PRECEDENCE breaks ties only
    - Action suffixes ("/business/*/edit") out-rank their parent detail path

Design Decisions:
    - Patterns compiled once in __init__: classify() is a tuple scan, no regex
    - Specificity before precedence: a dedicated sub-page entry in a looser table
      is the config author's explicit intent and must not be shadowed by a broad
      restrictive prefix
"""

from dataclasses import dataclass

from route_guard.core.domain_types import CATEGORY_PRECEDENCE, RouteCategory
from route_guard.core.route_config import RouteConfig

WILDCARD = "*"
EXACT_MARKER = "$"


def normalize_path(path: str) -> str:
    """Strip query/fragment, collapse duplicate slashes, drop trailing slash."""
    raw = path.split("#", 1)[0].split("?", 1)[0]
    segments = [s for s in raw.split("/") if s]
    return "/" + "/".join(segments)


def path_segments(path: str) -> tuple[str, ...]:
    return tuple(s for s in path.split("/") if s)


def path_matches(path: str, prefix: str) -> bool:
    """Segment-wise prefix check used for fixed route sets (personal, shared)."""
    want = path_segments(prefix)
    have = path_segments(path)
    return have[:len(want)] == want


@dataclass(frozen=True)
class CompiledPattern:
    """One route table entry, pre-split into segments."""
    source: str
    segments: tuple[str, ...]
    exact: bool
    category: RouteCategory
    precedence: int

    def matches(self, segments: tuple[str, ...]) -> bool:
        if self.exact and len(segments) != len(self.segments):
            return False
        if len(segments) < len(self.segments):
            return False
        return all(
            want == WILDCARD or want == have
            for want, have in zip(self.segments, segments)
        )

    @property
    def specificity(self) -> tuple[int, int, int, int]:
        literal = sum(1 for s in self.segments if s != WILDCARD)
        # Higher tuple wins; precedence index is negated so rank 0 beats rank 6.
        return (len(self.segments), literal, int(self.exact), -self.precedence)


def compile_pattern(source: str, category: RouteCategory) -> CompiledPattern:
    exact = source.endswith(EXACT_MARKER)
    body = source[:-1] if exact else source
    segments = path_segments(body)
    if not segments:
        exact = True  # root pattern never acts as a catch-all prefix
    return CompiledPattern(
        source=source,
        segments=segments,
        exact=exact,
        category=category,
        precedence=CATEGORY_PRECEDENCE.index(category),
    )


class RouteClassifier:
    """Pure path → RouteCategory function over a fixed RouteConfig."""

    def __init__(self, config: RouteConfig):
        self.config = config
        self._patterns: tuple[CompiledPattern, ...] = tuple(
            compile_pattern(pattern, category)
            for category, patterns in config.tables.items()
            for pattern in patterns
        )

    def classify(self, path: str) -> RouteCategory:
        segments = path_segments(normalize_path(path))
        best: CompiledPattern | None = None
        for pattern in self._patterns:
            if not pattern.matches(segments):
                continue
            if best is None or pattern.specificity > best.specificity:
                best = pattern
        return best.category if best else self.config.default_category

    def is_excluded(self, path: str) -> bool:
        """Assets, API and framework paths bypass the guard entirely."""
        normalized = normalize_path(path)
        if any(path_matches(normalized, p) for p in self.config.excluded_prefixes):
            return True
        return normalized.lower().endswith(tuple(self.config.excluded_suffixes))
