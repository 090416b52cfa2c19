# n8nforge/structural/validator.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from n8nforge.structural.schema import settings_errors
from n8nforge.utils.graph import build_graph, cycles, has_trigger, orphan_nodes
from n8nforge.utils.logger import get_logger

log = get_logger("validator")


@dataclass
class ValidationIssue:
    type: str                      # "error" | "warning"
    message: str
    node_id: Optional[str] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": self.type, "message": self.message}
        if self.node_id is not None:
            d["nodeId"] = self.node_id
        if self.field is not None:
            d["field"] = self.field
        return d


@dataclass
class ValidationReport:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def issues(self) -> List[ValidationIssue]:
        return self.errors + self.warnings

    def error(self, message: str, node_id: Optional[str] = None, field: Optional[str] = None) -> None:
        self.errors.append(ValidationIssue("error", message, node_id, field))

    def warn(self, message: str, node_id: Optional[str] = None, field: Optional[str] = None) -> None:
        self.warnings.append(ValidationIssue("warning", message, node_id, field))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "suggestions": list(self.suggestions),
        }


# ---------- Public API ----------

def validate_workflow(workflow: Any) -> ValidationReport:
    """
    Rule-based shape check of a parsed n8n workflow.

    Never raises on malformed input: every problem is reported as an error
    or warning. `report.valid` is True iff no errors were found.
    """
    report = ValidationReport()
    if not isinstance(workflow, dict):
        report.error("Workflow must be an object")
        return report

    _check_structure(workflow, report)
    raw_nodes = workflow.get("nodes")
    nodes = [n for n in raw_nodes if isinstance(n, dict)] if isinstance(raw_nodes, list) else []
    _check_nodes(workflow, report)
    _check_connections(workflow, nodes, report)
    if "settings" in workflow and workflow["settings"] is not None:
        for e in settings_errors(workflow["settings"]):
            report.error(e["message"], field=e["field"])
    _check_graph(workflow, report)
    _suggest(nodes, report)

    log.debug(
        "validated workflow %r: %d errors, %d warnings",
        workflow.get("name"), len(report.errors), len(report.warnings),
    )
    return report


# ---------- Structure ----------

def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _check_structure(workflow: Dict[str, Any], report: ValidationReport) -> None:
    if _blank(workflow.get("name")):
        report.error("Workflow name is required", field="name")

    nodes = workflow.get("nodes")
    if nodes is not None and not isinstance(nodes, list):
        report.error("Workflow nodes must be an array", field="nodes")
    elif not nodes:
        report.error("Workflow must have at least one node", field="nodes")

    conns = workflow.get("connections")
    if conns is not None and not isinstance(conns, dict):
        report.error("Workflow connections must be an object", field="connections")
    elif not conns:
        report.warn(
            "Workflow has no connections - nodes will not execute in sequence",
            field="connections",
        )


# ---------- Nodes ----------

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _check_nodes(workflow: Dict[str, Any], report: ValidationReport) -> None:
    nodes = workflow.get("nodes")
    if not isinstance(nodes, list):
        return

    seen_ids = set()
    seen_names = set()
    for i, node in enumerate(nodes):
        if not isinstance(node, dict):
            report.error(f"Node at index {i} must be an object", field=f"nodes[{i}]")
            continue
        nid = node.get("id")
        nid_key = str(nid) if nid is not None else None

        if nid_key is not None:
            if nid_key in seen_ids:
                report.error(f"Duplicate node ID: {nid}", node_id=nid_key, field="id")
            seen_ids.add(nid_key)
        name = node.get("name")
        if isinstance(name, str) and name:
            if name in seen_names:
                report.warn(f"Duplicate node name: {name}", node_id=nid_key, field="name")
            seen_names.add(name)

        _check_node(node, nid_key, report)


def _check_node(node: Dict[str, Any], nid: Optional[str], report: ValidationReport) -> None:
    if nid is None or (isinstance(node.get("id"), str) and not node["id"].strip()):
        report.error("Node ID is required", node_id=nid, field="id")
    if _blank(node.get("name")):
        report.error("Node name is required", node_id=nid, field="name")
    if _blank(node.get("type")):
        report.error("Node type is required", node_id=nid, field="type")

    tv = node.get("typeVersion")
    if not _is_number(tv) or tv < 1:
        report.error("Node typeVersion must be at least 1", node_id=nid, field="typeVersion")

    pos = node.get("position")
    if not isinstance(pos, (list, tuple)) or len(pos) != 2:
        report.error("Node position must be an array of two numbers [x, y]", node_id=nid, field="position")
    elif not all(_is_number(c) for c in pos):
        report.error("Node position coordinates must be valid numbers", node_id=nid, field="position")

    params = node.get("parameters")
    if params is None:
        report.warn(
            "Node has no parameters - this may be intentional for some node types",
            node_id=nid, field="parameters",
        )
    elif not isinstance(params, dict):
        report.error("Node parameters must be an object", node_id=nid, field="parameters")
        params = None

    creds = node.get("credentials")
    if creds is not None and not isinstance(creds, dict):
        report.error("Node credentials must be an object", node_id=nid, field="credentials")
        creds = None

    _check_node_rules(str(node.get("type") or ""), params or {}, creds or {}, nid, report)


# Known node families and what they cannot run without.
_PARAM_RULES = {
    "webhook": [("httpMethod", "Webhook node must have httpMethod parameter"),
                ("path", "Webhook node must have path parameter")],
    "httprequest": [("url", "HTTP Request node must have url parameter")],
}
_CREDENTIAL_RULES = {
    "slack": [("slackApi", "Slack node must have slackApi credentials")],
    "googlesheets": [("googleSheetsOAuth2Api", "Google Sheets node must have googleSheetsOAuth2Api credentials")],
}


def _has_value(v: Any) -> bool:
    if v is None:
        return False
    if isinstance(v, str):
        return bool(v.strip())
    return True


def _family(node_type: str) -> str:
    """'n8n-nodes-base.httpRequest' -> 'httprequest'."""
    return node_type.rsplit(".", 1)[-1].lower()


def _check_node_rules(node_type: str, params: Dict[str, Any], creds: Dict[str, Any],
                      nid: Optional[str], report: ValidationReport) -> None:
    fam = _family(node_type)
    for key, msg in _PARAM_RULES.get(fam, []):
        if not _has_value(params.get(key)):
            report.error(msg, node_id=nid, field=f"parameters.{key}")
    for key, msg in _CREDENTIAL_RULES.get(fam, []):
        if not _has_value(creds.get(key)):
            report.error(msg, node_id=nid, field=f"credentials.{key}")


# ---------- Connections ----------

def _check_connections(workflow: Dict[str, Any], nodes: List[Dict[str, Any]], report: ValidationReport) -> None:
    conns = workflow.get("connections")
    if not isinstance(conns, dict):
        return
    ids = {str(n["id"]) for n in nodes if n.get("id") is not None}

    for src, outputs in conns.items():
        if str(src) not in ids:
            report.error(f"Connection references non-existent source node: {src}",
                         node_id=str(src), field="connections")
            continue
        if not isinstance(outputs, dict):
            report.error(f"Connections for node {src} must be an object",
                         node_id=str(src), field="connections")
            continue
        for out_name, paths in outputs.items():
            where = f"connections.{src}.{out_name}"
            if not isinstance(paths, list):
                report.error(f"Output {out_name} for node {src} must be an array",
                             node_id=str(src), field=where)
                continue
            for group in paths:
                # Rare shape: a bare target dict instead of a list of targets
                if isinstance(group, dict):
                    group = [group]
                if not isinstance(group, list):
                    report.error(f"Connection group for {src} output {out_name} must be an array",
                                 node_id=str(src), field=where)
                    continue
                for hop in group:
                    _check_target(hop, str(src), ids, where, report)


def _check_target(hop: Any, src: str, ids: set, where: str, report: ValidationReport) -> None:
    if not isinstance(hop, dict):
        report.error(f"Connection from {src} must be an object", node_id=src, field=where)
        return
    target = hop.get("node")
    if target is None or str(target) not in ids:
        report.error(f"Connection references non-existent target node: {target}",
                     node_id=src, field=where)
    if _blank(hop.get("type")):
        report.error("Connection must have a type", node_id=src, field=where)
    idx = hop.get("index")
    if not _is_number(idx) or idx < 0 or (isinstance(idx, float) and not idx.is_integer()):
        report.error("Connection index must be a non-negative number", node_id=src, field=where)


# ---------- Graph ----------

def _check_graph(workflow: Dict[str, Any], report: ValidationReport) -> None:
    G = build_graph(workflow)
    if G.number_of_nodes() == 0:
        return
    # a single stray node already gets the "no connections" warning
    if G.number_of_edges() > 0:
        for nid in orphan_nodes(G):
            name = G.nodes[nid].get("name") or nid
            report.warn(f"Node '{name}' is not connected to any other node",
                        node_id=str(nid), field="connections")
    for cyc in cycles(G):
        path = " -> ".join(str(c) for c in cyc + cyc[:1])
        report.warn(f"Workflow contains a cycle: {path}", node_id=str(cyc[0]), field="connections")


# ---------- Suggestions ----------

def _suggest(nodes: List[Dict[str, Any]], report: ValidationReport) -> None:
    if not nodes:
        return
    if not has_trigger(nodes):
        report.suggestions.append(
            "Consider adding a trigger node (Webhook, Schedule, etc.) to start your workflow")
    if not any(n.get("onError") for n in nodes):
        report.suggestions.append(
            "Consider adding error handling to your nodes for better reliability")
    if not any(n.get("credentials") for n in nodes):
        report.suggestions.append(
            "Some nodes may require credentials to function properly")
    if any(_blank(n.get("name")) for n in nodes):
        report.suggestions.append(
            "All nodes should have descriptive names for better workflow readability")
