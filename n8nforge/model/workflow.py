# n8nforge/model/workflow.py

"""
n8n workflow documents as plain dicts, plus pure helpers to build and edit them.

Connections are keyed by source node id:

    connections[<source_id>][<output_name>][<output_index>] -> [
        {"node": <target_id>, "type": <input_name>, "index": <input_index>},
        ...
    ]

Every mutation helper returns a new workflow and leaves its input untouched.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence

Workflow = Dict[str, Any]
Node = Dict[str, Any]

MAIN = "main"
DEFAULT_POSITION = (100, 100)


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Connection:
    source: str
    output: str
    output_index: int
    target: str
    input: str
    input_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "output": self.output,
            "outputIndex": self.output_index,
            "target": self.target,
            "input": self.input,
            "inputIndex": self.input_index,
        }


# ---------- Factories ----------

def create_empty_workflow(name: str, description: Optional[str] = None) -> Workflow:
    now = utc_now()
    meta: Dict[str, Any] = {"instanceId": new_id()}
    if description:
        meta["description"] = description
    return {
        "id": new_id(),
        "name": name,
        "nodes": [],
        "connections": {},
        "active": False,
        "settings": {},
        "staticData": {},
        "pinData": {},
        "versionId": new_id(),
        "meta": meta,
        "tags": [],
        "triggerCount": 0,
        "createdAt": now,
        "updatedAt": now,
    }


def create_workflow_node(
    node_type: str,
    name: str,
    position: Sequence[float] = DEFAULT_POSITION,
    parameters: Optional[Dict[str, Any]] = None,
    type_version: float = 1,
    node_id: Optional[str] = None,
) -> Node:
    return {
        "id": node_id or new_id(),
        "name": name,
        "type": node_type,
        "typeVersion": type_version,
        "position": [position[0], position[1]],
        "parameters": dict(parameters or {}),
        "disabled": False,
        "continueOnFail": False,
        "alwaysOutputData": False,
        "executeOnce": False,
        "retryOnFail": False,
        "maxTries": 3,
        "waitBetweenTries": 1000,
        "onError": "stopWorkflow",
    }


# ---------- Lookups ----------

def find_node_by_id(workflow: Workflow, node_id: str) -> Optional[Node]:
    for n in workflow.get("nodes") or []:
        if isinstance(n, dict) and n.get("id") == node_id:
            return n
    return None


def find_node_by_name(workflow: Workflow, name: str) -> Optional[Node]:
    for n in workflow.get("nodes") or []:
        if isinstance(n, dict) and n.get("name") == name:
            return n
    return None


def _groups(paths: Any) -> List[Any]:
    """Output value -> list of target groups; a bare dict group is a one-element list."""
    if not isinstance(paths, list):
        return []
    out = []
    for g in paths:
        if isinstance(g, dict):
            out.append([g])
        elif isinstance(g, list):
            out.append(g)
        else:
            out.append([])
    return out


def iter_connections(workflow: Workflow) -> Iterator[Connection]:
    """Yield every well-formed connection; malformed entries are skipped silently."""
    conns = workflow.get("connections") or {}
    if not isinstance(conns, dict):
        return
    for src, outputs in conns.items():
        if not isinstance(outputs, dict):
            continue
        for out_name, paths in outputs.items():
            for out_idx, group in enumerate(_groups(paths)):
                for hop in group:
                    if not isinstance(hop, dict) or not hop.get("node"):
                        continue
                    idx = hop.get("index", 0)
                    yield Connection(
                        source=str(src),
                        output=str(out_name),
                        output_index=out_idx,
                        target=str(hop["node"]),
                        input=str(hop.get("type") or MAIN),
                        input_index=idx if isinstance(idx, int) else 0,
                    )


# ---------- Mutations ----------

def _touch(workflow: Workflow) -> Workflow:
    workflow["updatedAt"] = utc_now()
    return workflow


def _prune(connections: Dict[str, Any]) -> Dict[str, Any]:
    """Drop trailing empty groups, then empty outputs, then empty sources."""
    pruned: Dict[str, Any] = {}
    for src, outputs in connections.items():
        if not isinstance(outputs, dict):
            continue
        kept: Dict[str, Any] = {}
        for out_name, paths in outputs.items():
            groups = _groups(paths)
            while groups and not groups[-1]:
                groups.pop()
            if groups:
                kept[out_name] = groups
        if kept:
            pruned[src] = kept
    return pruned


def add_node(workflow: Workflow, node: Node) -> Workflow:
    wf = copy.deepcopy(workflow)
    wf.setdefault("nodes", []).append(copy.deepcopy(node))
    return _touch(wf)


def remove_node(workflow: Workflow, node_id: str) -> Workflow:
    """Remove a node and every connection from or to it."""
    wf = copy.deepcopy(workflow)
    wf["nodes"] = [n for n in wf.get("nodes") or [] if not (isinstance(n, dict) and n.get("id") == node_id)]
    conns = wf.get("connections") or {}
    cleaned: Dict[str, Any] = {}
    for src, outputs in conns.items():
        if src == node_id or not isinstance(outputs, dict):
            continue
        cleaned[src] = {
            out_name: [
                [hop for hop in group if not (isinstance(hop, dict) and hop.get("node") == node_id)]
                for group in _groups(paths)
            ]
            for out_name, paths in outputs.items()
        }
    wf["connections"] = _prune(cleaned)
    return _touch(wf)


def update_node(workflow: Workflow, node_id: str, updates: Dict[str, Any]) -> Workflow:
    """Shallow-merge `updates` into the node; `id` cannot be changed. Raises KeyError."""
    if find_node_by_id(workflow, node_id) is None:
        raise KeyError(f"Node with ID '{node_id}' not found in workflow")
    wf = copy.deepcopy(workflow)
    patch = {k: copy.deepcopy(v) for k, v in updates.items() if k != "id"}
    for n in wf["nodes"]:
        if isinstance(n, dict) and n.get("id") == node_id:
            n.update(patch)
    return _touch(wf)


def add_connection(
    workflow: Workflow,
    source_id: str,
    output_name: str,
    target_id: str,
    input_name: str = MAIN,
    input_index: int = 0,
    output_index: int = 0,
) -> Workflow:
    wf = copy.deepcopy(workflow)
    conns = wf.get("connections")
    if not isinstance(conns, dict):
        conns = wf["connections"] = {}
    outputs = conns.setdefault(source_id, {})
    groups = _groups(outputs.get(output_name))
    while len(groups) <= output_index:
        groups.append([])
    target = {"node": target_id, "type": input_name, "index": input_index}
    if target not in groups[output_index]:
        groups[output_index].append(target)
    outputs[output_name] = groups
    return _touch(wf)


def remove_connection(
    workflow: Workflow,
    source_id: str,
    output_name: str,
    target_id: str,
    input_name: str = MAIN,
    input_index: int = 0,
    output_index: Optional[int] = None,
) -> Workflow:
    """Remove matching targets; output_index=None removes from every output group."""
    wf = copy.deepcopy(workflow)
    conns = wf.get("connections") or {}
    outputs = conns.get(source_id)
    if isinstance(outputs, dict) and output_name in outputs:
        groups = _groups(outputs[output_name])
        for i, group in enumerate(groups):
            if output_index is not None and i != output_index:
                continue
            groups[i] = [
                hop for hop in group
                if not (
                    isinstance(hop, dict)
                    and hop.get("node") == target_id
                    and (hop.get("type") or MAIN) == input_name
                    and hop.get("index", 0) == input_index
                )
            ]
        outputs[output_name] = groups
    wf["connections"] = _prune(conns)
    return _touch(wf)


# ---------- Introspection ----------

def workflow_stats(workflow: Workflow) -> Dict[str, Any]:
    nodes = [n for n in workflow.get("nodes") or [] if isinstance(n, dict)]
    node_types: List[str] = []
    for n in nodes:
        t = n.get("type")
        if t and t not in node_types:
            node_types.append(t)
    return {
        "nodeCount": len(nodes),
        "nodeTypes": node_types,
        "connectionCount": sum(1 for _ in iter_connections(workflow)),
        "isActive": bool(workflow.get("active", False)),
        "lastUpdated": workflow.get("updatedAt"),
    }


def check_integrity(workflow: Any) -> List[str]:
    """
    Light structural check run before a workflow is persisted.
    Returns human-readable problems; empty list means OK.
    """
    if not isinstance(workflow, dict):
        return ["Workflow must be an object"]

    errors: List[str] = []
    if not workflow.get("id"):
        errors.append("Workflow ID is required")
    if not workflow.get("name"):
        errors.append("Workflow name is required")

    nodes = workflow.get("nodes")
    if not isinstance(nodes, list):
        errors.append("Workflow nodes must be an array")
        nodes = []
    conns = workflow.get("connections")
    if not isinstance(conns, dict):
        errors.append("Workflow connections must be an object")
        conns = {}

    ids = set()
    for i, n in enumerate(nodes):
        if not isinstance(n, dict):
            errors.append(f"Node {i}: must be an object")
            continue
        nid = n.get("id")
        if not nid:
            errors.append(f"Node {i}: ID is required")
        elif not isinstance(nid, str):
            errors.append(f"Node {i}: ID must be a string")
        else:
            ids.add(nid)
        if not n.get("name"):
            errors.append(f"Node {i}: Name is required")
        if not n.get("type"):
            errors.append(f"Node {i}: Type is required")
        pos = n.get("position")
        if not isinstance(pos, (list, tuple)) or len(pos) != 2:
            errors.append(f"Node {i}: Position must be an array of two numbers")

    for src, outputs in conns.items():
        if src not in ids:
            errors.append(f"Connection source node {src} not found")
        if not isinstance(outputs, dict):
            errors.append(f"Connections for {src} must be an object")
            continue
        for out_name, paths in outputs.items():
            if not isinstance(paths, list):
                errors.append(f"Connections for {src}.{out_name} must be an array")
                continue
            for gi, group in enumerate(_groups(paths)):
                for hi, hop in enumerate(group):
                    where = f"Connection {src}.{out_name}[{gi}][{hi}]"
                    if not isinstance(hop, dict):
                        errors.append(f"{where}: must be an object")
                        continue
                    target = hop.get("node")
                    if not target:
                        errors.append(f"{where}: Target node is required")
                    elif not isinstance(target, str):
                        errors.append(f"{where}: Target node must be a string")
                    elif target not in ids:
                        errors.append(f"{where}: Target node {target} not found")
                    if not hop.get("type"):
                        errors.append(f"{where}: Connection type is required")
                    idx = hop.get("index")
                    if not isinstance(idx, int) or isinstance(idx, bool):
                        errors.append(f"{where}: Connection index must be a number")
    return errors
