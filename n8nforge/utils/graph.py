# n8nforge/utils/graph.py
from typing import Dict, Any, List
import networkx as nx

from n8nforge.model.workflow import iter_connections

TRIGGER_KEYS = ("trigger", "webhook", "cron", "schedule", "interval")


def build_graph(workflow: Dict[str, Any]) -> nx.MultiDiGraph:
    """
    Directed graph of a workflow keyed by node id.
    Edges whose endpoints are not declared nodes are left out; the validator
    reports those separately.
    """
    G = nx.MultiDiGraph()
    nodes = workflow.get("nodes")
    for n in (nodes if isinstance(nodes, list) else []):
        if not isinstance(n, dict):
            continue
        nid = n.get("id")
        if nid is None:
            continue
        G.add_node(str(nid), name=n.get("name"), type=n.get("type"))

    for c in iter_connections(workflow):
        if c.source in G and c.target in G:
            G.add_edge(c.source, c.target, output=c.output, input=c.input)
    return G


def is_trigger(node: Dict[str, Any]) -> bool:
    t = (str(node.get("type", "")) + " " + str(node.get("name", ""))).lower()
    return any(k in t for k in TRIGGER_KEYS)


def has_trigger(nodes: List[dict]) -> bool:
    return any(is_trigger(n) for n in nodes if isinstance(n, dict))


def orphan_nodes(G: nx.MultiDiGraph) -> List[str]:
    """Nodes with no incoming and no outgoing edges (only meaningful when n >= 2)."""
    if G.number_of_nodes() < 2:
        return []
    return [n for n in G.nodes if G.in_degree(n) + G.out_degree(n) == 0]


def cycles(G: nx.MultiDiGraph) -> List[List[str]]:
    simple = nx.DiGraph(G)
    return [list(c) for c in nx.simple_cycles(simple)]
