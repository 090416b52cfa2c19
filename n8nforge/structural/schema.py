#n8nforge/structural/schema.py
from typing import Any, Dict, List

from jsonschema import Draft7Validator, ValidationError

# Workflow-level `settings` block. Unknown keys are allowed (n8n adds new ones often).
WORKFLOW_SETTINGS_SCHEMA = {
    "type": "object",
    "properties": {
        "executionOrder": {"enum": ["v0", "v1"]},
        "timezone": {"type": "string"},
        "executionTimeout": {
            "type": "number",
            "exclusiveMinimum": 0
        },
        "saveDataErrorExecution": {"enum": ["all", "none"]},
        "saveDataSuccessExecution": {"enum": ["all", "none"]},
        "saveManualExecutions": {"type": "boolean"},
        "saveExecutionProgress": {"type": "boolean"},
        "errorWorkflow": {"type": "string"}
    },
    "additionalProperties": True
}

# Friendly messages for settings keys, used instead of raw jsonschema text
SETTINGS_MESSAGES = {
    "executionOrder": 'executionOrder must be either "v0" or "v1"',
    "timezone": "timezone must be a string",
    "executionTimeout": "executionTimeout must be a positive number",
    "saveDataErrorExecution": 'saveDataErrorExecution must be either "all" or "none"',
    "saveDataSuccessExecution": 'saveDataSuccessExecution must be either "all" or "none"',
    "saveManualExecutions": "saveManualExecutions must be a boolean",
    "saveExecutionProgress": "saveExecutionProgress must be a boolean",
    "errorWorkflow": "errorWorkflow must be a string",
}

_NON_EMPTY_STRING = {"type": "string", "minLength": 1, "pattern": "\\S"}

_POSITION = {
    "type": "array",
    "items": {"type": "number"},
    "minItems": 2,
    "maxItems": 2
}

# ---------- Tool parameter schemas ----------

CREATE_WORKFLOW_PARAMS = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": _NON_EMPTY_STRING,
        "nodes": {"type": "array", "items": {"type": "object"}},
        "connections": {"type": "object"},
        "active": {"type": "boolean"},
        "settings": {"type": "object"}
    }
}

UPDATE_WORKFLOW_PARAMS = {
    "type": "object",
    "required": ["id"],
    "properties": {
        "id": _NON_EMPTY_STRING,
        "name": _NON_EMPTY_STRING,
        "nodes": {"type": "array", "items": {"type": "object"}},
        "connections": {"type": "object"},
        "active": {"type": "boolean"},
        "settings": {"type": "object"}
    }
}

ADD_NODE_PARAMS = {
    "type": "object",
    "required": ["workflow_name", "node_type"],
    "properties": {
        "workflow_name": _NON_EMPTY_STRING,
        "node_type": {
            "type": "string",
            # package.nodeName, e.g. n8n-nodes-base.webhook
            "pattern": "^[A-Za-z0-9_@/-]+\\.[A-Za-z0-9_.-]+$"
        },
        "position": _POSITION,
        "parameters": {"type": "object"},
        "node_name": {"type": "string"},
        "type_version": {"type": "number", "minimum": 1}
    }
}

ADD_CONNECTION_PARAMS = {
    "type": "object",
    "required": [
        "workflow_name",
        "source_node_id",
        "source_node_output_name",
        "target_node_id",
        "target_node_input_name"
    ],
    "properties": {
        "workflow_name": _NON_EMPTY_STRING,
        "source_node_id": _NON_EMPTY_STRING,
        "source_node_output_name": _NON_EMPTY_STRING,
        "target_node_id": _NON_EMPTY_STRING,
        "target_node_input_name": _NON_EMPTY_STRING,
        "target_node_input_index": {"type": "integer", "minimum": 0}
    }
}

_JSON_TYPE_NAMES = {
    dict: "object", list: "array", str: "string", bool: "boolean",
    int: "integer", float: "number", type(None): "null",
}


def _json_type(value: Any) -> str:
    return _JSON_TYPE_NAMES.get(type(value), type(value).__name__)


def _field_of(err: ValidationError) -> str:
    return ".".join(str(p) for p in err.absolute_path)


def _messages_for(err: ValidationError) -> List[Dict[str, Any]]:
    field = _field_of(err)
    label = field or "value"
    kind = err.validator

    if kind == "required":
        inst = err.instance if isinstance(err.instance, dict) else {}
        missing = [p for p in err.validator_value if p not in inst]
        prefix = f"{field}." if field else ""
        return [{"field": prefix + m, "message": f"{prefix + m} is required", "value": None} for m in missing]
    if kind == "type":
        expected = err.validator_value
        if isinstance(expected, list):
            expected = " or ".join(expected)
        msg = f"{label} must be a {expected}, got {_json_type(err.instance)}"
    elif kind in ("minLength", "pattern") and isinstance(err.instance, str) and not err.instance.strip():
        msg = f"{label} cannot be empty"
    elif kind == "pattern":
        msg = f"{label} has an invalid format"
    elif kind in ("minimum", "exclusiveMinimum"):
        msg = f"{label} must be at least {err.validator_value}"
    elif kind == "maximum":
        msg = f"{label} must be at most {err.validator_value}"
    elif kind in ("minItems", "maxItems"):
        msg = f"{label} has the wrong number of items"
    elif kind == "enum":
        allowed = ", ".join(str(v) for v in err.validator_value)
        msg = f"{label} must be one of: {allowed}"
    else:
        msg = f"{label}: {err.message}"
    return [{"field": field, "message": msg, "value": err.instance}]


def check_params(params: Dict[str, Any], schema: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Validate tool arguments against a JSON schema.
    Returns a list of {"field", "message", "value"} dicts; empty means valid.
    """
    validator = Draft7Validator(schema)
    out: List[Dict[str, Any]] = []
    for err in sorted(validator.iter_errors(params), key=lambda e: [str(p) for p in e.absolute_path]):
        out.extend(_messages_for(err))
    return out


def settings_errors(settings: Any) -> List[Dict[str, Any]]:
    """
    Validate a workflow `settings` block.
    Returns {"field", "message"} dicts with the friendly n8n messages.
    """
    if not isinstance(settings, dict):
        return [{"field": "settings", "message": "Workflow settings must be an object"}]
    out = []
    seen = set()
    for err in Draft7Validator(WORKFLOW_SETTINGS_SCHEMA).iter_errors(settings):
        key = str(err.absolute_path[0]) if err.absolute_path else ""
        if key in seen:
            continue
        seen.add(key)
        out.append({
            "field": f"settings.{key}" if key else "settings",
            "message": SETTINGS_MESSAGES.get(key, err.message),
        })
    return sorted(out, key=lambda e: e["field"])
