# n8nforge/tools/remote.py

import re
from typing import Any, Callable, Dict, List, Optional

from n8nforge.api.client import N8nApiClient
from n8nforge.config import Settings
from n8nforge.model.workflow import MAIN, Workflow, add_connection, create_workflow_node
from n8nforge.structural.schema import CREATE_WORKFLOW_PARAMS, UPDATE_WORKFLOW_PARAMS, check_params
from n8nforge.tools.base import ToolError, ok, require_params, tool

TRIGGER_TYPES = ("manual", "webhook", "schedule")


def _slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower()) or "workflow"


def _summary(wf: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": wf.get("id"),
        "name": wf.get("name"),
        "active": wf.get("active", False),
        "createdAt": wf.get("createdAt"),
        "updatedAt": wf.get("updatedAt"),
        "nodeCount": len(wf.get("nodes") or []),
    }


def _items(resp: Any) -> List[Dict[str, Any]]:
    """n8n list endpoints answer {"data": [...], "nextCursor": ...}."""
    if isinstance(resp, dict):
        return list(resp.get("data") or [])
    if isinstance(resp, list):
        return resp
    return []


def _next_cursor(resp: Any) -> Optional[str]:
    return resp.get("nextCursor") if isinstance(resp, dict) else None


def build_simple_workflow(
    name: str,
    trigger_type: str = "manual",
    http_url: str = "https://api.example.com/data",
    http_method: str = "GET",
) -> Workflow:
    """
    Trigger -> HTTP Request (-> Respond to Webhook for webhook triggers).
    Node ids are fixed and readable so the result is easy to edit afterwards.
    """
    kind = (trigger_type or "manual").lower()
    if kind not in TRIGGER_TYPES:
        raise ToolError(f"Unsupported trigger type '{trigger_type}' (expected one of: {', '.join(TRIGGER_TYPES)})")

    if kind == "webhook":
        trigger = create_workflow_node(
            "n8n-nodes-base.webhook", "Webhook Trigger", (100, 100),
            {"httpMethod": "POST", "path": _slug(name), "responseMode": "responseNode"},
            node_id="trigger-webhook",
        )
    elif kind == "schedule":
        trigger = create_workflow_node(
            "n8n-nodes-base.scheduleTrigger", "Schedule Trigger", (100, 100),
            {"rule": {"interval": [{"field": "cronExpression", "expression": "0 0 * * *"}]}},
            node_id="trigger-schedule",
        )
    else:
        trigger = create_workflow_node(
            "n8n-nodes-base.manualTrigger", "Manual Trigger", (100, 100), {},
            node_id="trigger-manual",
        )

    http = create_workflow_node(
        "n8n-nodes-base.httpRequest", "HTTP Request", (300, 100),
        {"method": http_method.upper(), "url": http_url, "options": {}},
        type_version=4.1, node_id="http-request",
    )
    wf: Workflow = {"name": name, "nodes": [trigger, http], "connections": {}, "settings": {}}
    wf = add_connection(wf, trigger["id"], MAIN, http["id"], MAIN, 0)

    if kind == "webhook":
        respond = create_workflow_node(
            "n8n-nodes-base.respondToWebhook", "Respond to Webhook", (500, 100),
            {"respondWith": "json", "responseBody": "={{ $json }}"},
            node_id="respond-to-webhook",
        )
        wf["nodes"].append(respond)
        wf = add_connection(wf, http["id"], MAIN, respond["id"], MAIN, 0)

    wf.pop("updatedAt", None)
    return wf


class RemoteWorkflowTools:
    """Tools backed by the n8n REST API."""

    def __init__(self, settings: Settings, client_factory: Optional[Callable[[], N8nApiClient]] = None):
        self.settings = settings
        self._client_factory = client_factory
        self._client: Optional[N8nApiClient] = None

    def client(self) -> N8nApiClient:
        if self._client is None:
            if self._client_factory is not None:
                self._client = self._client_factory()
            elif not self.settings.is_api_configured:
                raise ToolError("n8n API is not configured: set N8N_API_KEY (and N8N_API_URL)")
            else:
                self._client = N8nApiClient(
                    self.settings.api_url, self.settings.api_key, self.settings.api_timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ---------- connection ----------

    @tool("Check that the configured n8n instance is reachable and the API key is accepted",
          action="connect to n8n")
    def check_connection(self) -> Dict[str, Any]:
        client = self.client()
        client.list_workflows(limit=1)
        return ok(f"Connected to n8n at {client.base_url}", apiUrl=client.base_url)

    # ---------- workflows ----------

    @tool("Create a new workflow on the n8n instance")
    def create_workflow(
        self,
        name: str,
        nodes: Optional[List[Dict[str, Any]]] = None,
        connections: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        require_params(check_params(
            {k: v for k, v in {"name": name, "nodes": nodes, "connections": connections,
                               "settings": settings}.items() if v is not None},
            CREATE_WORKFLOW_PARAMS,
        ))
        body = {
            "name": name,
            "nodes": nodes or [],
            "connections": connections or {},
            "settings": settings or {},
            "staticData": {},
        }
        created = self.client().create_workflow(body)
        return ok(f"Workflow '{name}' created successfully",
                  workflowId=created.get("id"), workflow=created)

    @tool("List workflows on the n8n instance")
    def list_workflows(
        self,
        limit: int = 100,
        active: Optional[bool] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        resp = self.client().list_workflows(active=active, limit=limit, cursor=cursor)
        workflows = [_summary(w) for w in _items(resp)]
        return ok(f"Found {len(workflows)} workflows",
                  workflows=workflows, count=len(workflows), nextCursor=_next_cursor(resp))

    @tool("Get a workflow by id")
    def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        wf = self.client().get_workflow(workflow_id)
        return ok(f"Retrieved workflow '{wf.get('name', workflow_id)}'",
                  workflowId=workflow_id, workflow=wf)

    @tool("Update a workflow: fetches it, merges the provided fields and saves it back")
    def update_workflow(
        self,
        workflow_id: str,
        name: Optional[str] = None,
        nodes: Optional[List[Dict[str, Any]]] = None,
        connections: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        changes = {k: v for k, v in {"name": name, "nodes": nodes, "connections": connections,
                                     "settings": settings}.items() if v is not None}
        require_params(check_params(dict(changes, id=workflow_id), UPDATE_WORKFLOW_PARAMS))
        client = self.client()
        merged = dict(client.get_workflow(workflow_id), **changes)
        updated = client.update_workflow(workflow_id, merged)
        return ok(f"Workflow '{updated.get('name', workflow_id)}' updated successfully",
                  workflowId=workflow_id, workflow=updated, updatedFields=sorted(changes))

    @tool("Delete a workflow by id")
    def delete_workflow(self, workflow_id: str) -> Dict[str, Any]:
        self.client().delete_workflow(workflow_id)
        return ok(f"Workflow {workflow_id} deleted successfully", workflowId=workflow_id)

    @tool("Activate a workflow so its triggers start firing")
    def activate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        wf = self.client().activate_workflow(workflow_id)
        return ok(f"Workflow {workflow_id} activated", workflowId=workflow_id, active=wf.get("active", True))

    @tool("Deactivate a workflow")
    def deactivate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        wf = self.client().deactivate_workflow(workflow_id)
        return ok(f"Workflow {workflow_id} deactivated", workflowId=workflow_id, active=wf.get("active", False))

    @tool("Create a trigger + HTTP request workflow (webhook, schedule or manual trigger) on the n8n instance")
    def create_simple_workflow(
        self,
        name: str,
        trigger_type: str = "manual",
        http_url: str = "https://api.example.com/data",
        http_method: str = "GET",
    ) -> Dict[str, Any]:
        wf = build_simple_workflow(name, trigger_type, http_url, http_method)
        created = self.client().create_workflow(wf)
        return ok(
            f"Simple workflow '{name}' created with {len(wf['nodes'])} nodes",
            workflowId=created.get("id"), workflow=created, triggerType=trigger_type.lower(),
        )

    # ---------- executions ----------

    @tool("List workflow executions, optionally filtered by workflow and status")
    def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        resp = self.client().list_executions(workflow_id=workflow_id, status=status, limit=limit, cursor=cursor)
        executions = [
            {
                "id": e.get("id"),
                "workflowId": e.get("workflowId"),
                "status": e.get("status"),
                "mode": e.get("mode"),
                "startedAt": e.get("startedAt"),
                "stoppedAt": e.get("stoppedAt"),
                "finished": e.get("finished"),
            }
            for e in _items(resp)
        ]
        return ok(f"Found {len(executions)} executions",
                  executions=executions, count=len(executions), nextCursor=_next_cursor(resp))

    @tool("Get one execution, optionally with its run data")
    def get_execution(self, execution_id: str, include_data: bool = False) -> Dict[str, Any]:
        execution = self.client().get_execution(execution_id, include_data=include_data)
        return ok(f"Retrieved execution {execution_id}", execution=execution)

    # ---------- credentials / tags / variables ----------

    @tool("List credentials (metadata only, secrets are never returned by n8n)")
    def list_credentials(self, limit: int = 100) -> Dict[str, Any]:
        items = _items(self.client().list_credentials(limit=limit))
        creds = [{"id": c.get("id"), "name": c.get("name"), "type": c.get("type")} for c in items]
        return ok(f"Found {len(creds)} credentials", credentials=creds, count=len(creds))

    @tool("List workflow tags")
    def list_tags(self, limit: int = 100) -> Dict[str, Any]:
        tags = _items(self.client().list_tags(limit=limit))
        return ok(f"Found {len(tags)} tags", tags=tags, count=len(tags))

    @tool("List instance variables")
    def list_variables(self, limit: int = 100) -> Dict[str, Any]:
        variables = _items(self.client().list_variables(limit=limit))
        return ok(f"Found {len(variables)} variables", variables=variables, count=len(variables))
