import pytest

from n8nforge.structural.schema import (
    ADD_CONNECTION_PARAMS,
    ADD_NODE_PARAMS,
    CREATE_WORKFLOW_PARAMS,
    UPDATE_WORKFLOW_PARAMS,
    check_params,
    settings_errors,
)


def _messages(errors):
    return [e["message"] for e in errors]


def test_valid_params_have_no_errors():
    assert check_params({"name": "Flow", "nodes": [], "connections": {}}, CREATE_WORKFLOW_PARAMS) == []


def test_missing_required_param():
    assert check_params({}, CREATE_WORKFLOW_PARAMS) == [
        {"field": "name", "message": "name is required", "value": None},
    ]
    assert _messages(check_params({"name": "x"}, UPDATE_WORKFLOW_PARAMS)) == ["id is required"]


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_name_cannot_be_empty(name):
    errors = check_params({"name": name}, CREATE_WORKFLOW_PARAMS)
    assert errors
    assert set(_messages(errors)) == {"name cannot be empty"}


def test_wrong_type_message():
    errors = check_params({"name": 5, "nodes": {}}, CREATE_WORKFLOW_PARAMS)
    assert _messages(errors) == ["name must be a string, got integer", "nodes must be a array, got object"]


def test_node_type_format():
    errors = check_params({"workflow_name": "w", "node_type": "webhook"}, ADD_NODE_PARAMS)
    assert _messages(errors) == ["node_type has an invalid format"]
    assert check_params({"workflow_name": "w", "node_type": "@n8n/n8n-nodes-langchain.agent"}, ADD_NODE_PARAMS) == []


def test_position_and_version_bounds():
    errors = check_params(
        {"workflow_name": "w", "node_type": "n8n-nodes-base.set", "position": [1], "type_version": 0},
        ADD_NODE_PARAMS,
    )
    assert _messages(errors) == ["position has the wrong number of items", "type_version must be at least 1"]


def test_nested_field_path():
    errors = check_params(
        {"workflow_name": "w", "node_type": "n8n-nodes-base.set", "position": ["a", 2]},
        ADD_NODE_PARAMS,
    )
    assert errors == [{"field": "position.0", "message": "position.0 must be a number, got string", "value": "a"}]


def test_connection_params_all_required():
    errors = check_params({"workflow_name": "w"}, ADD_CONNECTION_PARAMS)
    assert {e["field"] for e in errors} == {
        "source_node_id", "source_node_output_name", "target_node_id", "target_node_input_name",
    }


def test_settings_errors_use_friendly_messages():
    errors = settings_errors({
        "executionOrder": "v2",
        "executionTimeout": 0,
        "saveManualExecutions": "yes",
        "somethingNew": {"kept": True},
    })
    assert errors == [
        {"field": "settings.executionOrder", "message": 'executionOrder must be either "v0" or "v1"'},
        {"field": "settings.executionTimeout", "message": "executionTimeout must be a positive number"},
        {"field": "settings.saveManualExecutions", "message": "saveManualExecutions must be a boolean"},
    ]


def test_settings_must_be_object():
    assert settings_errors([]) == [{"field": "settings", "message": "Workflow settings must be an object"}]
    assert settings_errors({}) == []
