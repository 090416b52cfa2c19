import pytest

from n8nforge.advisory.property_dependencies import (
    analyze,
    get_dependency_chain,
    get_property_dependencies,
    get_property_groups,
    recommended_order,
    validate_property_configuration,
)

PROPS = [
    {"name": "resource", "displayName": "Resource", "type": "options"},
    {"name": "operation", "displayName": "Operation",
     "displayOptions": {"show": {"resource": ["message"]}}},
    {"name": "channel", "displayName": "Channel",
     "displayOptions": {"show": {"resource": ["message"], "operation": ["post"]}}},
    {"name": "text", "displayName": "Text",
     "displayOptions": {"show": {"operation": ["post"]}}},
    {"name": "attachments", "displayName": "Attachments",
     "displayOptions": {"show": {"resource": ["message"]}, "hide": {"operation": ["delete"]}}},
]


def test_dependency_graph_maps_controllers_to_dependents():
    a = analyze(PROPS)
    assert a.total_properties == 5
    assert a.dependency_graph == {
        "resource": ["operation", "channel", "attachments"],
        "operation": ["channel", "text", "attachments"],
    }


def test_high_impact_properties_are_flagged():
    a = analyze(PROPS)
    notes = {d.property: d.notes for d in a.dependencies if d.notes}
    assert notes == {
        "resource": ["This property affects 3 other properties"],
        "operation": ["This property affects 3 other properties"],
    }
    assert a.suggestions[0] == "Consider grouping these high-impact properties: resource, operation"


def test_suggestions_include_order_and_validation_list():
    a = analyze(PROPS)
    assert a.suggestions[1].startswith("Recommended property order: resource → operation")
    assert a.suggestions[2] == (
        "These properties have dependencies and should be validated: operation, channel, text, attachments"
    )


def test_conditions_are_parsed():
    dep = get_property_dependencies("attachments", PROPS)
    assert dep.show_when == {"resource": "message"}
    assert dep.hide_when == {"operation": "delete"}
    assert [c.to_dict()["condition"] for c in dep.depends_on] == ["includes", "includes"]
    assert dep.depends_on[0].description == "Property 'resource' must include one of: message"


def test_scalar_condition_is_equals():
    props = [{"name": "mode"}, {"name": "url", "displayOptions": {"show": {"mode": "custom"}}}]
    dep = get_property_dependencies("url", props)
    assert dep.depends_on[0].condition == "equals"
    assert dep.depends_on[0].description == "Property 'mode' must equal: custom"


def test_analysis_to_dict_is_camel_case():
    d = analyze(PROPS).to_dict()
    assert set(d) == {"totalProperties", "propertiesWithDependencies", "dependencies",
                      "dependencyGraph", "suggestions"}
    assert "enablesProperties" in d["dependencies"][0]


def test_no_display_options_means_no_dependencies():
    a = analyze([{"name": "a"}, {"name": "b"}, {"displayName": "unnamed"}])
    assert a.dependencies == []
    assert a.dependency_graph == {}
    assert a.suggestions == []


def test_validate_visible_property():
    result = validate_property_configuration("channel", "#general", PROPS, {"resource": "message", "operation": "post"})
    assert result == {"isValid": True, "errors": [], "warnings": [], "suggestions": []}


def test_validate_unmet_show_condition_warns():
    result = validate_property_configuration("channel", "#general", PROPS, {"resource": "user"})
    assert result["isValid"] is True
    assert result["warnings"] == ["Property 'channel' may not be visible due to unmet show conditions"]


def test_validate_hide_condition_warns():
    result = validate_property_configuration("attachments", [], PROPS, {"resource": "message", "operation": "delete"})
    assert result["warnings"] == ["Property 'attachments' may be hidden due to hide conditions"]


def test_validate_without_hide_conditions_does_not_warn():
    result = validate_property_configuration("text", "hi", PROPS, {"operation": "post"})
    assert result["warnings"] == []


def test_validate_reports_enabled_and_disabled():
    result = validate_property_configuration("operation", "post", PROPS, {"resource": "message"})
    assert result["suggestions"] == [
        "Setting 'operation' will enable these properties: channel, text",
        "Setting 'operation' will disable these properties: attachments",
    ]


def test_validate_unknown_property_is_valid():
    assert validate_property_configuration("nope", 1, PROPS)["isValid"] is True


def test_dependency_chain():
    chain = get_dependency_chain("resource", PROPS)
    assert chain[0] == "resource"
    assert set(chain) == {"resource", "operation", "channel", "text", "attachments"}
    assert get_dependency_chain("text", PROPS) == ["text"]
    assert get_dependency_chain("missing", PROPS) == ["missing"]


def test_property_groups():
    groups = get_property_groups(PROPS)
    assert len(groups) == 1
    assert groups[0]["name"] == "Operation Group"
    assert set(groups[0]["properties"]) == {"resource", "operation", "channel", "text", "attachments"}


@pytest.mark.parametrize("graph,expected", [
    ({"a": ["b"], "b": ["c"]}, ["a", "b", "c"]),
    ({"a": ["b"], "b": ["a"], "c": ["a"]}, ["c", "a", "b"]),
])
def test_recommended_order(graph, expected):
    assert recommended_order(graph) == expected


def test_validate_uses_proposed_value_over_current():
    props = [{"name": "mode", "displayOptions": {"hide": {"mode": ["legacy"]}}}]
    result = validate_property_configuration("mode", "legacy", props, {"mode": "modern"})
    assert result["warnings"] == ["Property 'mode' may be hidden due to hide conditions"]
