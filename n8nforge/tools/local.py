# n8nforge/tools/local.py

import uuid
from typing import Any, Dict, List, Optional

from n8nforge.discovery.node_discovery import NodeDiscoveryService, parse_cursor
from n8nforge.model.workflow import (
    MAIN,
    Node,
    Workflow,
    add_connection as connect,
    add_node as append_node,
    check_integrity,
    create_empty_workflow,
    create_workflow_node,
    find_node_by_id,
    remove_connection as disconnect,
    remove_node,
    update_node,
    workflow_stats,
)
from n8nforge.storage.workflow_store import WorkflowExistsError, WorkflowStore
from n8nforge.structural.schema import ADD_CONNECTION_PARAMS, ADD_NODE_PARAMS, check_params
from n8nforge.structural.validator import validate_workflow
from n8nforge.tools.base import ToolError, ok, require_params, tool

# Agent input that each AI component plugs into
AI_INPUTS = (
    ("model_node_id", "model", "Model"),
    ("memory_node_id", "memory", "Memory"),
    ("embeddings_node_id", "embeddings", "Embeddings"),
    ("vector_store_node_id", "vectorStore", "Vector Store"),
)


def _default_type_version(definition: Dict[str, Any]) -> float:
    v = definition.get("version", 1)
    if isinstance(v, list):
        nums = [x for x in v if isinstance(x, (int, float)) and not isinstance(x, bool)]
        return max(nums) if nums else 1
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return v
    return 1


def _unique_name(workflow: Workflow, base: str) -> str:
    """n8n style: 'HTTP Request', 'HTTP Request1', 'HTTP Request2', ..."""
    taken = {n.get("name") for n in workflow.get("nodes") or [] if isinstance(n, dict)}
    if base not in taken:
        return base
    i = 1
    while f"{base}{i}" in taken:
        i += 1
    return f"{base}{i}"


class LocalWorkflowTools:
    """Tools that edit workflow JSON files in the local store."""

    def __init__(self, store: WorkflowStore, discovery: NodeDiscoveryService):
        self.store = store
        self.discovery = discovery

    # ---------- helpers ----------

    def _load(self, workflow_name: str) -> Workflow:
        wf = self.store.load(workflow_name)
        if wf is None:
            raise ToolError(f"Workflow '{workflow_name}' not found")
        return wf

    def _node(self, workflow: Workflow, node_id: str, role: str = "Node") -> Node:
        node = find_node_by_id(workflow, node_id)
        if node is None:
            raise ToolError(f"{role} '{node_id}' not found in workflow")
        return node

    def _definition(self, node_type: str, n8n_version: Optional[str] = None) -> Dict[str, Any]:
        definition = self.discovery.get_node_definition(node_type, n8n_version)
        if definition is None:
            raise ToolError(f"Node type '{node_type}' not found or not supported")
        return definition

    # ---------- workflows ----------

    @tool("Create a new, empty workflow file in the local workspace")
    def create_local_workflow(
        self,
        workflow_name: str,
        description: Optional[str] = None,
        active: bool = False,
    ) -> Dict[str, Any]:
        try:
            wf = self.store.create(workflow_name, description=description, active=active)
        except WorkflowExistsError as e:
            raise ToolError(str(e)) from e
        return ok(f"Workflow '{workflow_name}' created successfully",
                  workflowId=wf["id"], workflow=wf)

    @tool("List workflow files in the local workspace (offset cursor pagination)")
    def list_local_workflows(self, limit: int = 50, cursor: Optional[str] = None) -> Dict[str, Any]:
        if limit < 1:
            raise ToolError("limit must be at least 1")
        try:
            start = parse_cursor(cursor)
        except ValueError as e:
            raise ToolError(str(e)) from e
        names = self.store.list_names()
        end = start + limit
        has_more = end < len(names)
        return ok(
            f"Found {len(names)} workflows",
            workflows=names[start:end],
            total=len(names),
            hasMore=has_more,
            nextCursor=str(end) if has_more else None,
        )

    @tool("Get a local workflow with its statistics")
    def get_local_workflow(self, workflow_name: str) -> Dict[str, Any]:
        details = self.store.details(workflow_name)
        if not details["exists"]:
            raise ToolError(f"Workflow '{workflow_name}' not found")
        return ok(f"Workflow details for '{workflow_name}'",
                  workflow=details["workflow"], stats=details["stats"])

    @tool("Delete a local workflow file")
    def delete_local_workflow(self, workflow_name: str) -> Dict[str, Any]:
        if not self.store.delete(workflow_name):
            raise ToolError(f"Workflow '{workflow_name}' not found or could not be deleted")
        return ok(f"Workflow '{workflow_name}' deleted successfully")

    @tool("Validate a local workflow file: structure, nodes, connections and settings")
    def validate_local_workflow(self, workflow_name: str) -> Dict[str, Any]:
        wf = self._load(workflow_name)
        report = validate_workflow(wf)
        status = "is valid" if report.valid else "validation failed"
        return ok(f"Workflow '{workflow_name}' {status}",
                  integrityErrors=check_integrity(wf), **report.to_dict())

    # ---------- nodes ----------

    @tool("Add a node to a local workflow; the node type must exist in the node catalog")
    def add_node(
        self,
        workflow_name: str,
        node_type: str,
        position: Optional[List[float]] = None,
        parameters: Optional[Dict[str, Any]] = None,
        node_name: Optional[str] = None,
        type_version: Optional[float] = None,
        webhook_id: Optional[str] = None,
        n8n_version: Optional[str] = None,
        connect_from: Optional[str] = None,
        connect_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        args = {"workflow_name": workflow_name, "node_type": node_type, "position": position,
                "parameters": parameters, "node_name": node_name, "type_version": type_version}
        require_params(check_params({k: v for k, v in args.items() if v is not None}, ADD_NODE_PARAMS))

        wf = self._load(workflow_name)
        definition = self._definition(node_type, n8n_version)
        for ref in (connect_from, connect_to):
            if ref:
                self._node(wf, ref)

        node = create_workflow_node(
            node_type,
            _unique_name(wf, node_name or definition.get("displayName") or node_type.split(".")[-1]),
            position or (100, 100),
            parameters,
            type_version if type_version is not None else _default_type_version(definition),
        )
        if webhook_id:
            node["webhookId"] = webhook_id
        elif node_type.lower().endswith(".webhook"):
            node["webhookId"] = str(uuid.uuid4())

        wf = append_node(wf, node)
        if connect_from:
            wf = connect(wf, connect_from, MAIN, node["id"], MAIN, 0)
        if connect_to:
            wf = connect(wf, node["id"], MAIN, connect_to, MAIN, 0)
        self.store.save(wf, workflow_name)
        return ok(f"Node '{node['name']}' ({node_type}) added to workflow '{workflow_name}'",
                  nodeId=node["id"], node=node)

    @tool("Edit a node of a local workflow (type, name, position, parameters, type version)")
    def edit_node(
        self,
        workflow_name: str,
        node_id: str,
        node_type: Optional[str] = None,
        node_name: Optional[str] = None,
        position: Optional[List[float]] = None,
        parameters: Optional[Dict[str, Any]] = None,
        type_version: Optional[float] = None,
        n8n_version: Optional[str] = None,
    ) -> Dict[str, Any]:
        wf = self._load(workflow_name)
        self._node(wf, node_id)

        updates: Dict[str, Any] = {}
        if node_type is not None:
            definition = self._definition(node_type, n8n_version)
            updates["type"] = node_type
            if type_version is None:
                updates["typeVersion"] = _default_type_version(definition)
        if node_name is not None:
            updates["name"] = node_name
        if position is not None:
            if len(position) != 2:
                raise ToolError("position must be [x, y]")
            updates["position"] = [position[0], position[1]]
        if parameters is not None:
            updates["parameters"] = parameters
        if type_version is not None:
            updates["typeVersion"] = type_version
        if not updates:
            raise ToolError("Nothing to update")

        wf = update_node(wf, node_id, updates)
        self.store.save(wf, workflow_name)
        return ok(f"Node '{node_id}' updated in workflow '{workflow_name}'",
                  nodeId=node_id, node=find_node_by_id(wf, node_id), updatedFields=sorted(updates))

    @tool("Delete a node (and every connection touching it) from a local workflow")
    def delete_node(self, workflow_name: str, node_id: str) -> Dict[str, Any]:
        wf = self._load(workflow_name)
        node = self._node(wf, node_id)
        self.store.save(remove_node(wf, node_id), workflow_name)
        return ok(f"Node '{node_id}' ({node.get('name')}) deleted from workflow '{workflow_name}'",
                  nodeId=node_id)

    # ---------- connections ----------

    def _connection_args(self, **kwargs: Any) -> None:
        require_params(check_params({k: v for k, v in kwargs.items() if v is not None}, ADD_CONNECTION_PARAMS))

    @tool("Connect an output of one node to an input of another in a local workflow")
    def add_connection(
        self,
        workflow_name: str,
        source_node_id: str,
        source_node_output_name: str,
        target_node_id: str,
        target_node_input_name: str,
        target_node_input_index: int = 0,
    ) -> Dict[str, Any]:
        self._connection_args(
            workflow_name=workflow_name, source_node_id=source_node_id,
            source_node_output_name=source_node_output_name, target_node_id=target_node_id,
            target_node_input_name=target_node_input_name, target_node_input_index=target_node_input_index,
        )
        wf = self._load(workflow_name)
        src = self._node(wf, source_node_id, "Source node")
        dst = self._node(wf, target_node_id, "Target node")
        wf = connect(wf, source_node_id, source_node_output_name, target_node_id,
                     target_node_input_name, target_node_input_index)
        self.store.save(wf, workflow_name)
        return ok(
            f"Connection added from '{src.get('name')}' ({source_node_output_name}) "
            f"to '{dst.get('name')}' ({target_node_input_name})",
            stats=workflow_stats(wf),
        )

    @tool("Remove a connection between two nodes of a local workflow")
    def remove_connection(
        self,
        workflow_name: str,
        source_node_id: str,
        source_node_output_name: str,
        target_node_id: str,
        target_node_input_name: str,
        target_node_input_index: int = 0,
    ) -> Dict[str, Any]:
        self._connection_args(
            workflow_name=workflow_name, source_node_id=source_node_id,
            source_node_output_name=source_node_output_name, target_node_id=target_node_id,
            target_node_input_name=target_node_input_name, target_node_input_index=target_node_input_index,
        )
        wf = self._load(workflow_name)
        src = self._node(wf, source_node_id, "Source node")
        dst = self._node(wf, target_node_id, "Target node")
        wf = disconnect(wf, source_node_id, source_node_output_name, target_node_id,
                        target_node_input_name, target_node_input_index)
        self.store.save(wf, workflow_name)
        return ok(
            f"Connection removed from '{src.get('name')}' ({source_node_output_name}) "
            f"to '{dst.get('name')}' ({target_node_input_name})",
            stats=workflow_stats(wf),
        )

    @tool("Wire model, tools, memory, embeddings and vector store nodes into an AI agent node")
    def add_ai_connections(
        self,
        workflow_name: str,
        agent_node_id: str,
        model_node_id: Optional[str] = None,
        tool_node_ids: Optional[List[str]] = None,
        memory_node_id: Optional[str] = None,
        embeddings_node_id: Optional[str] = None,
        vector_store_node_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        wf = self._load(workflow_name)
        agent = self._node(wf, agent_node_id, "Agent node")
        given = {
            "model_node_id": model_node_id,
            "memory_node_id": memory_node_id,
            "embeddings_node_id": embeddings_node_id,
            "vector_store_node_id": vector_store_node_id,
        }

        wired: List[str] = []
        skipped: List[str] = []
        plan = [(given[key], input_name, label) for key, input_name, label in AI_INPUTS]
        plan[1:1] = [(tid, "tools", "Tool") for tid in tool_node_ids or []]
        for node_id, input_name, label in plan:
            if not node_id:
                continue
            node = find_node_by_id(wf, node_id)
            if node is None:
                skipped.append(node_id)
                continue
            wf = connect(wf, node_id, MAIN, agent_node_id, input_name, 0)
            wired.append(f"{label}: {node.get('name')} -> Agent")

        if not wired:
            raise ToolError("No AI components to connect", skipped=skipped)
        self.store.save(wf, workflow_name)
        return ok(f"AI connections added to agent '{agent.get('name')}'",
                  connections=wired, skipped=skipped)

    @tool("Compose a complete AI workflow (webhook, agent, model, memory, embeddings, "
          "vector store, HTTP tool, response) in one call")
    def compose_ai_workflow(self, workflow_name: str, plan: str, n8n_version: Optional[str] = None) -> Dict[str, Any]:
        if self.store.exists(workflow_name):
            raise ToolError(f"Workflow '{workflow_name}' already exists")

        wf = create_empty_workflow(workflow_name, f"AI Workflow: {plan}")
        version = self.discovery.resolve_version(n8n_version)
        if version:
            wf["meta"]["n8nVersion"] = version

        webhook = create_workflow_node("n8n-nodes-base.webhook", "Webhook Trigger", (100, 100), {
            "httpMethod": "POST", "path": "ai-workflow", "responseMode": "responseNode"})
        webhook["webhookId"] = str(uuid.uuid4())
        agent = create_workflow_node("n8n-nodes-base.openAiAgent", "AI Agent", (400, 100), {
            "model": "gpt-4", "systemMessage": "You are a helpful AI assistant.", "options": {}})
        model = create_workflow_node("n8n-nodes-base.openAi", "OpenAI Model", (400, 300), {
            "resource": "chat", "operation": "create", "model": "gpt-4",
            "messages": "={{ $json.messages }}"})
        memory = create_workflow_node("n8n-nodes-base.memory", "Memory", (700, 100), {
            "operation": "get", "key": "conversation"})
        embeddings = create_workflow_node("n8n-nodes-base.openAiEmbeddings", "Embeddings", (700, 300), {
            "resource": "embeddings", "operation": "create", "model": "text-embedding-ada-002",
            "input": "={{ $json.text }}"})
        vector_store = create_workflow_node("n8n-nodes-base.pinecone", "Vector Store", (1000, 100), {
            "resource": "vector", "operation": "upsert", "index": "ai-workflow",
            "vectors": "={{ $json.vectors }}"})
        http_tool = create_workflow_node("n8n-nodes-base.httpRequest", "HTTP Tool", (1000, 300), {
            "method": "GET", "url": "https://api.example.com/data", "options": {}})
        response = create_workflow_node("n8n-nodes-base.respondToWebhook", "Response", (1300, 100), {
            "respondWith": "json", "responseBody": "={{ $json.response }}"})

        nodes = [webhook, agent, model, memory, embeddings, vector_store, http_tool, response]
        for node in nodes:
            wf = append_node(wf, node)

        links = [
            (webhook, MAIN, agent, "Webhook -> Agent"),
            (agent, MAIN, model, "Agent -> Model"),
            (agent, "memory", memory, "Agent -> Memory"),
            (agent, "embeddings", embeddings, "Agent -> Embeddings"),
            (agent, "vectorStore", vector_store, "Agent -> Vector Store"),
            (agent, "tools", http_tool, "Agent -> Tool"),
            (agent, MAIN, response, "Agent -> Response"),
        ]
        for src, output, dst, _ in links:
            wf = connect(wf, src["id"], output, dst["id"], MAIN, 0)

        self.store.save(wf, workflow_name)
        return ok(
            f"AI workflow '{workflow_name}' created successfully",
            workflowId=wf["id"],
            nodes=[f"{n['name']} ({n['type']})" for n in nodes],
            connections=[label for *_, label in links],
            plan=plan,
            stats=workflow_stats(wf),
        )
