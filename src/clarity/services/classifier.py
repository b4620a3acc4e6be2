# src/clarity/services/classifier.py
"""
Rule-based classification of x402 endpoints.

Three signal layers add into a per-category score:

1. Known host (``domain_score``, e.g. 100)
2. URL path/query pattern, counted once per category (``path_score``, e.g. 50)
3. Keywords in the analyzed text, each worth its own length

The strictly highest score wins; ties go to the category declared first.
With no signal at all the category is None, never a catch-all.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional
from urllib.parse import urlsplit

from opentelemetry import trace

from clarity.services.classification_tables import ClassificationTables, DEFAULT_TABLES
from clarity.utils.url_utils import extract_host, path_and_query

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DOMAIN_MATCH_CONFIDENCE = 0.95
PATTERN_MATCH_CONFIDENCE = 0.8
KEYWORD_CONFIDENCE_CAP = 0.6
KEYWORD_SCORE_SCALE = 50
COMPETING_CATEGORY_PENALTY = 0.1


@dataclass(frozen=True)
class ClassificationResult:
    category: Optional[str]
    tags: FrozenSet[str]
    confidence: float


def _dump_metadata(metadata: Any) -> str:
    if metadata is None:
        metadata = {}
    try:
        return json.dumps(metadata, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return str(metadata)


def build_analysis_text(
    url: str,
    description: Optional[str] = None,
    provider_name: Optional[str] = None,
    metadata: Any = None,
) -> str:
    """Description, URL, provider name and metadata dump, case-folded."""
    return " ".join([
        description or "",
        url or "",
        provider_name or "",
        _dump_metadata(metadata),
    ]).casefold()


class EndpointClassifier:
    """Deterministic classifier over injectable lookup tables."""

    def __init__(self, tables: ClassificationTables = DEFAULT_TABLES):
        self.tables = tables

    def score_categories(self, url: str, text: str) -> Dict[str, int]:
        """Return the summed score of every category with a positive score."""
        tables = self.tables
        scores: Dict[str, int] = {}

        host = extract_host(url)
        domain_category = tables.domains.get(host) if host else None
        if domain_category:
            scores[domain_category] = scores.get(domain_category, 0) + tables.domain_score

        target = path_and_query(url)
        if target:
            for category, patterns in tables.compiled_paths.items():
                if any(pattern.search(target) for pattern in patterns):
                    scores[category] = scores.get(category, 0) + tables.path_score

        for category, keywords in tables.keywords.items():
            keyword_score = sum(len(k) for k in keywords if k.casefold() in text)
            if keyword_score > 0:
                scores[category] = scores.get(category, 0) + keyword_score

        return scores

    def extract_tags(self, text: str) -> FrozenSet[str]:
        return frozenset(
            tag for tag, pattern in self.tables.compiled_tags.items() if pattern.search(text)
        )

    def classify(
        self,
        url: str,
        description: Optional[str] = None,
        provider_name: Optional[str] = None,
        metadata: Any = None,
    ) -> ClassificationResult:
        with tracer.start_as_current_span("classifier.classify") as span:
            text = build_analysis_text(url, description, provider_name, metadata)
            scores = self.score_categories(url, text)

            best_category: Optional[str] = None
            best_score = 0
            # Explicit declared order with strict comparison: first max wins.
            for category in self.tables.category_order:
                score = scores.get(category, 0)
                if score > best_score:
                    best_category = category
                    best_score = score

            host = extract_host(url)
            domain_matched = bool(host) and host in self.tables.domains
            confidence = self._confidence(best_score, len(scores), domain_matched)

            result = ClassificationResult(
                category=best_category,
                tags=self.extract_tags(text),
                confidence=confidence,
            )
            span.set_attribute("classifier.category", best_category or "")
            span.set_attribute("classifier.confidence", confidence)

        logger.debug("Classified %s as %s (confidence=%.2f)", url, best_category, confidence)
        return result

    def _confidence(self, best_score: int, competing: int, domain_matched: bool) -> float:
        if domain_matched:
            return DOMAIN_MATCH_CONFIDENCE
        if best_score >= self.tables.path_score:
            return PATTERN_MATCH_CONFIDENCE
        if best_score > 0:
            base = min(KEYWORD_CONFIDENCE_CAP, best_score / KEYWORD_SCORE_SCALE)
            penalty = 1 - COMPETING_CATEGORY_PENALTY * (competing - 1)
            return max(0.0, base * penalty)
        return 0.0


_default_classifier = EndpointClassifier()


def classify_endpoint(
    url: str,
    description: Optional[str] = None,
    provider_name: Optional[str] = None,
    metadata: Any = None,
) -> ClassificationResult:
    """Classify with the default tables."""
    return _default_classifier.classify(url, description, provider_name, metadata)


# ----------------------------------------
# Description backfill
# ----------------------------------------
_SEGMENT_SPLIT = re.compile(r"[/\-_.]+")
_VERSION_SEGMENT = re.compile(r"^v\d+$")
_GENERIC_SEGMENTS = frozenset({
    "api", "apis", "x402", "www", "http", "https", "com", "app", "io", "net",
    "org", "dev", "rest", "json", "html", "index", "endpoint", "endpoints",
    "service", "services",
})
_PROVIDER_PREFIX = re.compile(r"^(?:api|www|app|my)[.\-]")
_PROVIDER_SUFFIX = re.compile(r"[.\-](?:api|app|service|server|prod|dev|staging)$")
_HOSTING_LABELS = frozenset({
    "vercel", "netlify", "herokuapp", "onrender", "railway", "fly", "workers",
    "pages", "replit", "ngrok", "ngrok-free",
})
MAX_ACTION_SEGMENTS = 3


def _title(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def _action_segments(path: str) -> List[str]:
    segments = []
    for segment in _SEGMENT_SPLIT.split(path):
        lowered = segment.lower()
        if len(lowered) <= 2 or lowered.isdigit():
            continue
        if lowered in _GENERIC_SEGMENTS or _VERSION_SEGMENT.match(lowered):
            continue
        segments.append(_title(segment))
    return segments[:MAX_ACTION_SEGMENTS]


def format_provider_name(host: str) -> Optional[str]:
    """
    Turn a hostname into a display name: ``api.cool-weather.io`` -> ``Cool Weather``.
    """
    labels = [label for label in host.lower().split(".") if label]
    if len(labels) > 1:
        labels = labels[:-1]
    labels = [label for label in labels if label not in _HOSTING_LABELS] or labels

    name = ".".join(labels)
    previous = None
    while previous != name:
        previous = name
        name = _PROVIDER_PREFIX.sub("", name)
        name = _PROVIDER_SUFFIX.sub("", name)

    words = [w for w in re.split(r"[.\-_]+", name) if w]
    if not words:
        return None
    return " ".join(_title(w) for w in words)


def generate_description_from_url(url: str) -> Optional[str]:
    """
    Build a readable description when a registry supplied none.

    Returns ``"<Action> service by <Provider>"``, ``"<Action> API"`` or None.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    action_segments = _action_segments(parts.path or "")
    if not action_segments:
        return None

    action = " ".join(action_segments)
    provider = format_provider_name(parts.hostname or "") if parts.hostname else None

    if provider:
        return f"{action} service by {provider}"
    return f"{action} API"
