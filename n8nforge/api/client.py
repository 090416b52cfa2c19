# n8nforge/api/client.py

"""
Synchronous client for the n8n public REST API (/api/v1).

Every method performs exactly one HTTP call. Transport failures and non-2xx
responses raise N8nApiError; there are no retries.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from n8nforge.utils.logger import get_logger

log = get_logger("api")

API_PREFIX = "/api/v1"

# The public API rejects bodies with properties it does not own (id, active, tags, ...)
WRITABLE_WORKFLOW_FIELDS = ("name", "nodes", "connections", "settings", "staticData")


class N8nApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


def normalize_base_url(base_url: str) -> str:
    """'http://host:5678/' -> 'http://host:5678/api/v1'."""
    url = (base_url or "").strip().rstrip("/")
    if not url:
        raise ValueError("n8n base URL is required")
    if not url.endswith(API_PREFIX):
        url += API_PREFIX
    return url


def writable_workflow(workflow: Dict[str, Any]) -> Dict[str, Any]:
    body = {k: workflow[k] for k in WRITABLE_WORKFLOW_FIELDS if k in workflow}
    body.setdefault("settings", {})
    return body


def _clean(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    out = {}
    for k, v in (params or {}).items():
        if v is None:
            continue
        out[k] = str(v).lower() if isinstance(v, bool) else v
    return out


class N8nApiClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("n8n API key is required")
        self.base_url = normalize_base_url(base_url)
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "X-N8N-API-KEY": api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
            event_hooks={"request": [self._log_request], "response": [self._log_response]},
        )

    # ---------- plumbing ----------

    @staticmethod
    def _log_request(request: httpx.Request) -> None:
        log.debug("n8n API request: %s %s", request.method, request.url)

    @staticmethod
    def _log_response(response: httpx.Response) -> None:
        req = response.request
        if response.is_error:
            log.error("n8n API error: %s %s -> %d", req.method, req.url, response.status_code)
        else:
            log.debug("n8n API response: %s %s -> %d", req.method, req.url, response.status_code)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        try:
            resp = self._client.request(method, path, params=_clean(params), json=json)
        except httpx.HTTPError as e:
            raise N8nApiError(f"{method} {path} failed: {e}") from e

        payload: Any = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                payload = resp.text

        if resp.is_error:
            msg = None
            if isinstance(payload, dict):
                msg = payload.get("message")
            if not msg:
                msg = f"HTTP {resp.status_code} {resp.reason_phrase}".strip()
            raise N8nApiError(str(msg), resp.status_code, payload)
        return payload if payload is not None else {}

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "N8nApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- health ----------

    def health_check(self) -> Dict[str, Any]:
        """GET /healthz on the instance root (outside /api/v1)."""
        root = self.base_url[: -len(API_PREFIX)]
        return self._request("GET", f"{root}/healthz")

    # ---------- workflows ----------

    def list_workflows(
        self,
        active: Optional[bool] = None,
        tags: Optional[str] = None,
        name: Optional[str] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._request("GET", "/workflows", params={
            "active": active, "tags": tags, "name": name, "limit": limit, "cursor": cursor,
        })

    def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/workflows/{workflow_id}")

    def create_workflow(self, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/workflows", json=writable_workflow(workflow))

    def update_workflow(self, workflow_id: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/workflows/{workflow_id}", json=writable_workflow(workflow))

    def delete_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/workflows/{workflow_id}")

    def activate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/workflows/{workflow_id}/activate")

    def deactivate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/workflows/{workflow_id}/deactivate")

    # ---------- executions ----------

    def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        include_data: Optional[bool] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._request("GET", "/executions", params={
            "workflowId": workflow_id, "status": status, "includeData": include_data,
            "limit": limit, "cursor": cursor,
        })

    def get_execution(self, execution_id: str, include_data: bool = False) -> Dict[str, Any]:
        return self._request("GET", f"/executions/{execution_id}", params={"includeData": include_data})

    def delete_execution(self, execution_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/executions/{execution_id}")

    # ---------- credentials / tags / variables ----------

    def list_credentials(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/credentials", params={"limit": limit, "cursor": cursor})

    def get_credential(self, credential_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/credentials/{credential_id}")

    def list_tags(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/tags", params={"limit": limit, "cursor": cursor})

    def list_variables(self, limit: Optional[int] = None, cursor: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/variables", params={"limit": limit, "cursor": cursor})

    # ---------- source control ----------

    def source_control_status(self) -> Dict[str, Any]:
        return self._request("GET", "/source-control/status")

    def source_control_pull(self, force: bool = False) -> Dict[str, Any]:
        return self._request("POST", "/source-control/pull", json={"force": force})

    def source_control_push(self, message: str, file_names: Optional[list] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": message}
        if file_names:
            body["fileNames"] = file_names
        return self._request("POST", "/source-control/push", json=body)
