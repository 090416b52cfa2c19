# n8nforge/advisory/confidence.py

"""
Weighted-factor confidence scores for advisory recommendations.

Each scorer evaluates a fixed list of factors; the score is the matched
weight over the total weight, rounded to two decimals.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List

from n8nforge.utils.graph import has_trigger


@dataclass
class ConfidenceFactor:
    name: str
    weight: float
    matched: bool
    description: str


@dataclass
class ConfidenceScore:
    value: float
    reason: str
    factors: List[ConfidenceFactor] = field(default_factory=list)

    @property
    def level(self) -> str:
        return confidence_level(self.value)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["level"] = self.level
        d["color"] = confidence_color(self.value)
        return d


# Fields known to take a resource locator, by node type
RESOURCE_LOCATOR_FIELDS: Dict[str, List[str]] = {
    "n8n-nodes-base.httpRequest": ["url", "baseUrl", "endpoint"],
    "n8n-nodes-base.webhook": ["path", "webhookUrl"],
    "n8n-nodes-base.slack": ["channel", "channelId"],
    "n8n-nodes-base.googleSheets": ["documentId", "sheetName"],
    "n8n-nodes-base.postgres": ["table", "schema"],
    "n8n-nodes-base.mysql": ["table", "database"],
    "n8n-nodes-base.mongodb": ["collection", "database"],
}

FIELD_PATTERNS = (
    "url", "path", "endpoint", "table", "collection", "sheet",
    "channel", "database", "schema", "id", "name",
)

COMMON_NODES = frozenset({
    "n8n-nodes-base.httpRequest",
    "n8n-nodes-base.webhook",
    "n8n-nodes-base.set",
    "n8n-nodes-base.if",
    "n8n-nodes-base.slack",
    "n8n-nodes-base.googleSheets",
})

_URL_RE = re.compile(r"^https?://")
_PATH_RE = re.compile(r"^/[a-zA-Z0-9_/-]+$")
_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


# ---------- Public API ----------

def score_resource_locator(field_name: str, node_type: str, value: str) -> ConfidenceScore:
    """How likely `field_name` on `node_type` should be a resource locator."""
    return _score([
        ConfidenceFactor(
            "exact-field-match", 0.5,
            field_name in RESOURCE_LOCATOR_FIELDS.get(node_type, []),
            f"Field name '{field_name}' is known to use resource locator in {node_type}",
        ),
        ConfidenceFactor(
            "field-pattern", 0.3,
            any(p in field_name.lower() for p in FIELD_PATTERNS),
            f"Field name '{field_name}' matches common resource locator patterns",
        ),
        ConfidenceFactor(
            "value-format", 0.2,
            _looks_like_locator(value),
            "Value format suggests resource locator usage",
        ),
    ])


def score_node_type_suggestion(search_term: str, node_type: str, context: str = "") -> ConfidenceScore:
    """How well `node_type` answers a search for `search_term` in `context`."""
    short = node_type.split(".")[-1].lower()
    term = search_term.lower()
    return _score([
        ConfidenceFactor("exact-name-match", 0.4, short == term,
                         "Exact match between search term and node type"),
        ConfidenceFactor("partial-name-match", 0.3, bool(term) and (term in short or short in term),
                         "Partial match between search term and node type"),
        ConfidenceFactor("context-relevance", 0.2, _context_relevant(context, node_type),
                         "Node type is relevant to the given context"),
        ConfidenceFactor("common-usage", 0.1, node_type in COMMON_NODES,
                         "Node type is commonly used"),
    ])


def score_workflow_validation(workflow: Dict[str, Any], results: Iterable[Any]) -> ConfidenceScore:
    """
    Confidence that a workflow is ready, given validation issues.
    `results` holds issue dicts or objects with a `type` of "error"/"warning".
    """
    types = [_issue_type(r) for r in results]
    return _score([
        ConfidenceFactor("no-errors", 0.4, "error" not in types,
                         "Workflow has no validation errors"),
        ConfidenceFactor("no-warnings", 0.3, "warning" not in types,
                         "Workflow has no validation warnings"),
        ConfidenceFactor("complete-structure", 0.2, _complete_structure(workflow),
                         "Workflow has complete structure (nodes, connections)"),
        ConfidenceFactor("best-practices", 0.1, _best_practices(workflow),
                         "Workflow follows best practices"),
    ])


def confidence_level(score: float) -> str:
    if score >= 0.9:
        return "Very High"
    if score >= 0.8:
        return "High"
    if score >= 0.6:
        return "Medium"
    if score >= 0.4:
        return "Low"
    return "Very Low"


def confidence_color(score: float) -> str:
    if score >= 0.8:
        return "green"
    if score >= 0.6:
        return "yellow"
    if score >= 0.4:
        return "orange"
    return "red"


# ---------- helpers ----------

def _score(factors: List[ConfidenceFactor]) -> ConfidenceScore:
    total = sum(f.weight for f in factors)
    matched = sum(f.weight for f in factors if f.matched)
    score = round(matched / total, 2) if total > 0 else 0.0
    return ConfidenceScore(value=score, reason=_reason(score, factors), factors=factors)


def _reason(score: float, factors: List[ConfidenceFactor]) -> str:
    if score >= 0.8:
        label = "High"
    elif score >= 0.6:
        label = "Medium"
    elif score >= 0.4:
        label = "Low"
    else:
        label = "Very low"
    n_matched = sum(1 for f in factors if f.matched)
    return f"{label} confidence ({round(score * 100)}%) - {n_matched} of {len(factors)} factors matched"


def _looks_like_locator(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    if _URL_RE.match(value) or _PATH_RE.match(value) or _ID_RE.match(value):
        return True
    return "{{" in value and "}}" in value


def _context_relevant(context: str, node_type: str) -> bool:
    keywords = [k for k in (context or "").lower().split() if k]
    parts = [p for p in node_type.lower().split(".") if p]
    return any(k in p or p in k for k in keywords for p in parts)


def _issue_type(issue: Any) -> str:
    if isinstance(issue, dict):
        return str(issue.get("type", ""))
    return str(getattr(issue, "type", ""))


def _complete_structure(workflow: Dict[str, Any]) -> bool:
    nodes = workflow.get("nodes")
    conns = workflow.get("connections")
    return bool(isinstance(nodes, list) and nodes and isinstance(conns, dict) and conns)


def _best_practices(workflow: Dict[str, Any]) -> bool:
    nodes = workflow.get("nodes")
    if not isinstance(nodes, list) or not nodes:
        return False
    named = all(isinstance(n, dict) and str(n.get("name") or "").strip() for n in nodes)
    return named and has_trigger(nodes)
