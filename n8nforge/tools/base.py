# n8nforge/tools/base.py

import functools
import inspect
from typing import Any, Callable, Dict, List, Optional, Tuple

from n8nforge.api.client import N8nApiError
from n8nforge.utils.logger import get_logger

log = get_logger("tools")

ToolFn = Callable[..., Dict[str, Any]]


class ToolError(Exception):
    """Expected failure inside a tool (missing workflow, unknown node, ...)."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.details = details


class ToolValidationError(ToolError):
    def __init__(self, errors: List[Dict[str, Any]]):
        summary = "; ".join(e["message"] for e in errors)
        super().__init__(f"Invalid parameters: {summary}", validationErrors=errors)
        self.errors = errors


def ok(message: str, **data: Any) -> Dict[str, Any]:
    return {"success": True, "message": message, **data}


def fail(action: str, error: str, **data: Any) -> Dict[str, Any]:
    return {"success": False, "error": error, "message": f"Failed to {action}: {error}", **data}


def require_params(errors: List[Dict[str, Any]]) -> None:
    if errors:
        raise ToolValidationError(errors)


def tool(description: str, name: Optional[str] = None, action: Optional[str] = None):
    """
    Mark a method as an MCP tool.

    The wrapped method never raises: every exception becomes a
    `{"success": False, "error", "message"}` payload. `action` completes the
    sentence "Failed to ..." (defaults to the tool name with spaces).
    """

    def deco(fn: ToolFn) -> ToolFn:
        tool_name = name or fn.__name__
        verb = action or tool_name.replace("_", " ")

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Dict[str, Any]:
            try:
                return fn(*args, **kwargs)
            except ToolError as e:
                log.info("%s: %s", tool_name, e)
                return fail(verb, str(e), **e.details)
            except N8nApiError as e:
                log.error("%s: n8n API error (status=%s): %s", tool_name, e.status_code, e.message)
                return fail(verb, e.message, statusCode=e.status_code)
            except Exception as e:  # tool boundary: report, never crash the server
                log.exception("%s failed", tool_name)
                return fail(verb, str(e) or e.__class__.__name__)

        wrapper._tool_name = tool_name
        wrapper._tool_description = description
        return wrapper

    return deco


def collect_tools(*providers: Any) -> List[Tuple[str, str, Callable[..., Dict[str, Any]]]]:
    """(name, description, bound method) for every @tool method of the providers."""
    found = []
    for provider in providers:
        for _, member in inspect.getmembers(provider, predicate=inspect.ismethod):
            tool_name = getattr(member, "_tool_name", None)
            if tool_name:
                found.append((tool_name, member._tool_description, member))
    return sorted(found, key=lambda t: t[0])
