# n8nforge/tools/advisory.py

import json
import platform
from typing import Any, Dict, List, Optional, Union

from n8nforge.advisory import confidence, property_dependencies as deps
from n8nforge.config import Settings
from n8nforge.discovery.node_discovery import NodeDiscoveryService
from n8nforge.structural.validator import validate_workflow
from n8nforge.tools.base import ToolError, ok, tool


def _parse_workflow(workflow: Union[Dict[str, Any], str]) -> Dict[str, Any]:
    if isinstance(workflow, str):
        try:
            workflow = json.loads(workflow)
        except json.JSONDecodeError as e:
            raise ToolError(f"Workflow is not valid JSON: {e.msg} (line {e.lineno})") from e
    if not isinstance(workflow, dict):
        raise ToolError("Workflow must be a JSON object")
    return workflow


class AdvisoryTools:
    def __init__(self, settings: Settings, discovery: NodeDiscoveryService):
        self.settings = settings
        self.discovery = discovery

    @tool("Validate a workflow JSON document (object or JSON string)")
    def validate_workflow(self, workflow: Union[Dict[str, Any], str]) -> Dict[str, Any]:
        report = validate_workflow(_parse_workflow(workflow))
        msg = "Workflow is valid" if report.valid else f"Workflow has {len(report.errors)} errors"
        return ok(msg, **report.to_dict())

    @tool("Score how likely a node field should use a resource locator", action="score resource locator")
    def score_resource_locator(self, field_name: str, node_type: str, value: str) -> Dict[str, Any]:
        score = confidence.score_resource_locator(field_name, node_type, value)
        return ok(score.reason, score=score.to_dict())

    @tool("Score how well a node type matches a search term and context", action="score node type suggestion")
    def score_node_type_suggestion(self, search_term: str, node_type: str, context: str = "") -> Dict[str, Any]:
        score = confidence.score_node_type_suggestion(search_term, node_type, context)
        return ok(score.reason, score=score.to_dict())

    @tool("Validate a workflow and score confidence that it is ready to run",
          action="score workflow validation")
    def score_workflow_validation(self, workflow: Union[Dict[str, Any], str]) -> Dict[str, Any]:
        wf = _parse_workflow(workflow)
        report = validate_workflow(wf)
        score = confidence.score_workflow_validation(wf, report.issues)
        return ok(score.reason, score=score.to_dict(), validation=report.to_dict())

    @tool("Analyze displayOptions dependencies between the properties of a node definition",
          action="analyze property dependencies")
    def analyze_property_dependencies(self, properties: List[Dict[str, Any]]) -> Dict[str, Any]:
        analysis = deps.analyze(properties)
        return ok(
            f"{analysis.properties_with_dependencies} of {analysis.total_properties} properties have dependencies",
            analysis=analysis.to_dict(),
        )

    @tool("Group node properties that should be configured together", action="get property groups")
    def get_property_groups(self, properties: List[Dict[str, Any]]) -> Dict[str, Any]:
        groups = deps.get_property_groups(properties)
        return ok(f"Found {len(groups)} property groups", groups=groups)

    @tool("List a property followed by every property it transitively controls",
          action="get dependency chain")
    def get_dependency_chain(self, property_name: str, properties: List[Dict[str, Any]]) -> Dict[str, Any]:
        chain = deps.get_dependency_chain(property_name, properties)
        return ok(f"Dependency chain for '{property_name}'", chain=chain)

    @tool("Check a property value against the visibility conditions of the other properties",
          action="validate property configuration")
    def validate_property_configuration(
        self,
        property_name: str,
        value: Any,
        properties: List[Dict[str, Any]],
        current_values: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        result = deps.validate_property_configuration(property_name, value, properties, current_values)
        return ok(f"Property '{property_name}' checked", **result)

    @tool("Report server configuration and node catalog status", action="get system info")
    def get_system_info(self) -> Dict[str, Any]:
        versions = self.discovery.available_versions()
        return ok(
            "System information",
            python=platform.python_version(),
            platform=platform.platform(),
            config=self.settings.public_dict(),
            nodeCatalogVersions=versions,
        )
