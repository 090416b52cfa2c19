# n8nforge/tools/nodes.py

from typing import Any, Dict, Optional

from n8nforge.discovery.node_discovery import NodeDiscoveryService
from n8nforge.tools.base import ToolError, ok, tool

# Always-available short list, independent of any node catalog on disk
COMMON_NODE_TYPES = [
    {"name": "Webhook", "type": "n8n-nodes-base.webhook",
     "description": "Trigger workflow via HTTP webhook", "category": "trigger"},
    {"name": "Schedule Trigger", "type": "n8n-nodes-base.scheduleTrigger",
     "description": "Trigger workflow on a schedule", "category": "trigger"},
    {"name": "Manual Trigger", "type": "n8n-nodes-base.manualTrigger",
     "description": "Manual trigger for testing", "category": "trigger"},
    {"name": "HTTP Request", "type": "n8n-nodes-base.httpRequest",
     "description": "Make HTTP requests to APIs", "category": "action"},
    {"name": "Set", "type": "n8n-nodes-base.set",
     "description": "Set data values", "category": "transform"},
    {"name": "Code", "type": "n8n-nodes-base.code",
     "description": "Execute JavaScript code", "category": "transform"},
    {"name": "IF", "type": "n8n-nodes-base.if",
     "description": "Conditional logic", "category": "transform"},
    {"name": "Respond to Webhook", "type": "n8n-nodes-base.respondToWebhook",
     "description": "Send response back to webhook", "category": "action"},
]


def _brief(node: Dict[str, Any]) -> Dict[str, Any]:
    codex = node.get("codex") or {}
    return {
        "name": node.get("name"),
        "displayName": node.get("displayName"),
        "description": node.get("description"),
        "version": node.get("version"),
        "categories": list(codex.get("categories") or []),
    }


class NodeTools:
    def __init__(self, discovery: NodeDiscoveryService):
        self.discovery = discovery

    @tool("Search the node catalog of an n8n version (token search with or/and logic, paginated)",
          action="list nodes")
    def list_available_nodes(
        self,
        search_term: str = "",
        n8n_version: Optional[str] = None,
        limit: int = 50,
        cursor: Optional[str] = None,
        tags: bool = True,
        token_logic: str = "or",
    ) -> Dict[str, Any]:
        try:
            result = self.discovery.search_nodes(
                search_term=search_term, n8n_version=n8n_version, limit=limit,
                cursor=cursor, tags=tags, token_logic=token_logic,
            )
        except ValueError as e:
            raise ToolError(str(e)) from e
        if result.version is None:
            raise ToolError(f"No node catalogs found under {self.discovery.nodes_dir}")
        payload = result.to_dict()
        payload["nodes"] = [_brief(n) for n in result.nodes]
        return ok(f"Found {result.total} nodes", **payload)

    @tool("Get the full definition of one node type", action="get node definition")
    def get_node_definition(self, node_type: str, n8n_version: Optional[str] = None) -> Dict[str, Any]:
        definition = self.discovery.get_node_definition(node_type, n8n_version)
        if definition is None:
            raise ToolError(f"Node type '{node_type}' not found")
        return ok(f"Definition for {node_type}", node=definition)

    @tool("List available n8n catalog versions and the node categories of the newest one",
          action="get n8n version info")
    def get_n8n_version_info(self) -> Dict[str, Any]:
        versions = self.discovery.available_versions()
        categories = self.discovery.node_categories() if versions else {"categories": [], "subcategories": {}}
        return ok(
            f"{len(versions)} n8n versions available",
            availableVersions=versions,
            latestVersion=versions[0] if versions else None,
            **categories,
        )

    @tool("List common n8n node types, optionally filtered by category or search text",
          action="get node types")
    def get_node_types(self, category: Optional[str] = None, search: Optional[str] = None) -> Dict[str, Any]:
        nodes = COMMON_NODE_TYPES
        if category:
            nodes = [n for n in nodes if category.lower() in n["category"]]
        if search:
            s = search.lower()
            nodes = [n for n in nodes if s in n["name"].lower() or s in n["description"].lower()]
        return ok(f"Found {len(nodes)} node types", nodes=[dict(n) for n in nodes])
