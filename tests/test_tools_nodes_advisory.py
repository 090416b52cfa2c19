import json

import pytest

from n8nforge.config import Settings
from n8nforge.discovery.node_discovery import NodeDiscoveryService
from n8nforge.tools.advisory import AdvisoryTools
from n8nforge.tools.nodes import NodeTools

SLACK_PROPS = [
    {"name": "resource", "displayName": "Resource"},
    {"name": "channel", "displayName": "Channel", "displayOptions": {"show": {"resource": ["message"]}}},
]

VALID_FLOW = {
    "name": "Ping",
    "nodes": [
        {"id": "t", "name": "Webhook", "type": "n8n-nodes-base.webhook", "typeVersion": 2,
         "position": [0, 0], "parameters": {"httpMethod": "GET", "path": "ping"}},
        {"id": "r", "name": "Reply", "type": "n8n-nodes-base.respondToWebhook", "typeVersion": 1,
         "position": [200, 0], "parameters": {}},
    ],
    "connections": {"t": {"main": [[{"node": "r", "type": "main", "index": 0}]]}},
}


@pytest.fixture()
def discovery(tmp_path):
    root = tmp_path / "workflow_nodes"
    for version, nodes in {
        "1.0.0": [{"name": "n8n-nodes-base.slack", "displayName": "Slack", "version": 2,
                   "description": "Consume Slack API", "codex": {"categories": ["Communication"]},
                   "properties": SLACK_PROPS}],
        "1.1.0": [{"name": "n8n-nodes-base.slack", "displayName": "Slack", "version": [2, 2.1],
                   "description": "Consume Slack API", "codex": {"categories": ["Communication"],
                                                                 "subcategories": {"Communication": ["Chat"]}}},
                  {"name": "n8n-nodes-base.code", "displayName": "Code", "description": "Run custom code",
                   "codex": {"categories": ["Development"]}}],
    }.items():
        d = root / version
        d.mkdir(parents=True)
        for n in nodes:
            (d / (n["name"].split(".")[-1] + ".json")).write_text(json.dumps(n), encoding="utf-8")
    return NodeDiscoveryService(root)


# ---------- node tools ----------

def test_list_available_nodes(discovery):
    res = NodeTools(discovery).list_available_nodes("slack")
    assert res["success"] is True
    assert res["version"] == "1.1.0"
    assert res["total"] == 1
    assert res["nodes"] == [{"name": "n8n-nodes-base.slack", "displayName": "Slack",
                             "description": "Consume Slack API", "version": [2, 2.1],
                             "categories": ["Communication"]}]


def test_list_available_nodes_errors(discovery, tmp_path):
    assert NodeTools(discovery).list_available_nodes(limit=0)["error"] == "limit must be at least 1"
    empty = NodeTools(NodeDiscoveryService(tmp_path / "none")).list_available_nodes()
    assert empty["success"] is False
    assert empty["error"].startswith("No node catalogs found")


def test_get_node_definition(discovery):
    tools = NodeTools(discovery)
    res = tools.get_node_definition("n8n-nodes-base.slack", "1.0.0")
    assert res["node"]["properties"] == SLACK_PROPS
    assert tools.get_node_definition("n8n-nodes-base.nope")["error"] == "Node type 'n8n-nodes-base.nope' not found"


def test_version_info(discovery):
    res = NodeTools(discovery).get_n8n_version_info()
    assert res["availableVersions"] == ["1.1.0", "1.0.0"]
    assert res["latestVersion"] == "1.1.0"
    assert res["categories"] == ["Communication", "Development"]
    assert res["subcategories"] == {"Communication": ["Chat"]}


def test_get_node_types_filters(discovery):
    tools = NodeTools(discovery)
    assert len(tools.get_node_types()["nodes"]) == 8
    triggers = tools.get_node_types(category="trigger")["nodes"]
    assert {n["type"] for n in triggers} == {
        "n8n-nodes-base.webhook", "n8n-nodes-base.scheduleTrigger", "n8n-nodes-base.manualTrigger",
    }
    assert [n["name"] for n in tools.get_node_types(search="javascript")["nodes"]] == ["Code"]


# ---------- advisory tools ----------

@pytest.fixture()
def advisory(discovery):
    return AdvisoryTools(Settings(api_key="hidden-key"), discovery)


def test_validate_workflow_accepts_dict_and_string(advisory):
    as_dict = advisory.validate_workflow(VALID_FLOW)
    as_text = advisory.validate_workflow(json.dumps(VALID_FLOW))
    assert as_dict["isValid"] is True and as_text["isValid"] is True
    assert as_dict["message"] == "Workflow is valid"


def test_validate_workflow_reports_errors(advisory):
    res = advisory.validate_workflow({"nodes": []})
    assert res["success"] is True
    assert res["isValid"] is False
    assert res["message"] == "Workflow has 2 errors"


@pytest.mark.parametrize("payload,error", [
    ("{not json", "Workflow is not valid JSON"),
    ("[1, 2]", "Workflow must be a JSON object"),
])
def test_validate_workflow_bad_input(advisory, payload, error):
    res = advisory.validate_workflow(payload)
    assert res["success"] is False
    assert res["error"].startswith(error)


def test_scores(advisory):
    locator = advisory.score_resource_locator("url", "n8n-nodes-base.httpRequest", "https://a.b")
    assert locator["score"]["value"] == 1.0
    assert locator["message"] == locator["score"]["reason"]
    suggestion = advisory.score_node_type_suggestion("slack", "n8n-nodes-base.slack")
    assert suggestion["score"]["value"] == 0.8
    assert suggestion["score"]["level"] == "High"
    ready = advisory.score_workflow_validation(VALID_FLOW)
    assert ready["score"]["value"] == 1.0
    assert ready["validation"]["isValid"] is True


def test_property_tools(advisory):
    analysis = advisory.analyze_property_dependencies(SLACK_PROPS)["analysis"]
    assert analysis["dependencyGraph"] == {"resource": ["channel"]}
    assert advisory.get_property_groups(SLACK_PROPS)["groups"][0]["properties"] == ["channel", "resource"]
    assert advisory.get_dependency_chain("resource", SLACK_PROPS)["chain"] == ["resource", "channel"]
    checked = advisory.validate_property_configuration("channel", "#ops", SLACK_PROPS, {"resource": "file"})
    assert checked["success"] is True
    assert checked["warnings"] == ["Property 'channel' may not be visible due to unmet show conditions"]


def test_system_info_masks_key(advisory):
    res = advisory.get_system_info()
    assert res["config"]["apiKeyConfigured"] is True
    assert res["nodeCatalogVersions"] == ["1.1.0", "1.0.0"]
    assert "hidden-key" not in json.dumps(res)
