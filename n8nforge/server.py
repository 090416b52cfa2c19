# n8nforge/server.py

import functools
import inspect
from typing import Any, Callable, Dict, List, Optional, Tuple

from mcp.server.fastmcp import FastMCP

from n8nforge.config import Settings
from n8nforge.discovery.node_discovery import NodeDiscoveryService
from n8nforge.storage.workflow_store import WorkflowStore
from n8nforge.tools.advisory import AdvisoryTools
from n8nforge.tools.base import collect_tools
from n8nforge.tools.local import LocalWorkflowTools
from n8nforge.tools.nodes import NodeTools
from n8nforge.tools.remote import RemoteWorkflowTools
from n8nforge.utils.io import dump_json
from n8nforge.utils.logger import get_logger

log = get_logger("server")

SERVER_NAME = "n8nforge"


def as_text_tool(method: Callable[..., Dict[str, Any]]) -> Callable[..., str]:
    """Wrap a tool method so it returns JSON text; keeps the parameter schema."""

    @functools.wraps(method)
    def run(*args: Any, **kwargs: Any) -> str:
        return dump_json(method(*args, **kwargs))

    run.__signature__ = inspect.signature(method).replace(return_annotation=str)
    return run


def build_providers(settings: Settings) -> List[Any]:
    store = WorkflowStore(settings.workflows_dir)
    discovery = NodeDiscoveryService(settings.nodes_dir, cache_ttl=settings.node_cache_ttl)
    return [
        RemoteWorkflowTools(settings),
        LocalWorkflowTools(store, discovery),
        NodeTools(discovery),
        AdvisoryTools(settings, discovery),
    ]


def tool_table(settings: Settings) -> List[Tuple[str, str, Callable[..., Dict[str, Any]]]]:
    return collect_tools(*build_providers(settings))


def create_server(settings: Optional[Settings] = None) -> FastMCP:
    settings = settings or Settings.from_env()
    mcp = FastMCP(SERVER_NAME)
    names = []
    for name, description, method in tool_table(settings):
        mcp.add_tool(as_text_tool(method), name=name, description=description)
        names.append(name)
    log.info("registered %d tools: %s", len(names), ", ".join(names))
    return mcp


def serve(settings: Optional[Settings] = None, transport: str = "stdio") -> None:
    create_server(settings).run(transport=transport)
