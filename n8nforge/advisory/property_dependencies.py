# n8nforge/advisory/property_dependencies.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import networkx as nx

# A property that controls more than this many others is "high impact"
COMPLEX_THRESHOLD = 2


@dataclass
class DependencyCondition:
    property: str
    values: List[Any]
    condition: str               # "equals" | "includes"
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property": self.property,
            "values": self.values,
            "condition": self.condition,
            "description": self.description,
        }


@dataclass
class PropertyDependency:
    property: str
    display_name: str
    depends_on: List[DependencyCondition] = field(default_factory=list)
    show_when: Dict[str, Any] = field(default_factory=dict)
    hide_when: Dict[str, Any] = field(default_factory=dict)
    enables: List[str] = field(default_factory=list)
    disables: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property": self.property,
            "displayName": self.display_name,
            "dependsOn": [c.to_dict() for c in self.depends_on],
            "showWhen": self.show_when,
            "hideWhen": self.hide_when,
            "enablesProperties": self.enables,
            "disablesProperties": self.disables,
            "notes": self.notes,
        }


@dataclass
class DependencyAnalysis:
    total_properties: int
    dependencies: List[PropertyDependency]
    dependency_graph: Dict[str, List[str]]
    suggestions: List[str]

    @property
    def properties_with_dependencies(self) -> int:
        return len(self.dependencies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProperties": self.total_properties,
            "propertiesWithDependencies": self.properties_with_dependencies,
            "dependencies": [d.to_dict() for d in self.dependencies],
            "dependencyGraph": self.dependency_graph,
            "suggestions": self.suggestions,
        }


# ---------- condition parsing ----------

def _display(prop: Dict[str, Any], kind: str) -> Dict[str, Any]:
    opts = prop.get("displayOptions") or {}
    cond = opts.get(kind) if isinstance(opts, dict) else None
    return cond if isinstance(cond, dict) else {}


def _parse_conditions(conditions: Dict[str, Any]) -> List[DependencyCondition]:
    out = []
    for name, value in conditions.items():
        if isinstance(value, list):
            out.append(DependencyCondition(
                name, list(value), "includes",
                f"Property '{name}' must include one of: {', '.join(str(v) for v in value)}",
            ))
        else:
            out.append(DependencyCondition(name, [value], "equals", f"Property '{name}' must equal: {value}"))
    return out


def _as_object(conditions: List[DependencyCondition]) -> Dict[str, Any]:
    return {c.property: (c.values[0] if len(c.values) == 1 else c.values) for c in conditions}


def _conditions_met(conditions: Dict[str, Any], values: Dict[str, Any]) -> bool:
    for name, expected in conditions.items():
        actual = values.get(name)
        if isinstance(expected, list):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def _named(properties: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [p for p in properties if isinstance(p, dict) and p.get("name")]


def _extract(prop: Dict[str, Any], properties: List[Dict[str, Any]]) -> PropertyDependency:
    name = prop["name"]
    dep = PropertyDependency(property=name, display_name=prop.get("displayName") or name)

    show = _parse_conditions(_display(prop, "show"))
    hide = _parse_conditions(_display(prop, "hide"))
    dep.depends_on = show + hide
    dep.show_when = _as_object(show)
    dep.hide_when = _as_object(hide)

    for other in properties:
        if other["name"] == name:
            continue
        if name in _display(other, "show"):
            dep.enables.append(other["name"])
        if name in _display(other, "hide"):
            dep.disables.append(other["name"])
    return dep


def _dependents(name: str, properties: List[Dict[str, Any]]) -> List[str]:
    return [
        p["name"] for p in properties
        if p["name"] != name and (name in _display(p, "show") or name in _display(p, "hide"))
    ]


def _graph(dependency_graph: Dict[str, List[str]]) -> nx.DiGraph:
    G = nx.DiGraph()
    for controller, dependents in dependency_graph.items():
        G.add_node(controller)
        for d in dependents:
            G.add_edge(controller, d)
    return G


def recommended_order(dependency_graph: Dict[str, List[str]]) -> List[str]:
    """Controlling properties before the properties they control."""
    G = _graph(dependency_graph)
    try:
        return list(nx.topological_sort(G))
    except nx.NetworkXUnfeasible:
        # cyclic display conditions: condense each cycle and keep its members together
        C = nx.condensation(G)
        order: List[str] = []
        for comp in nx.topological_sort(C):
            order.extend(sorted(C.nodes[comp]["members"]))
        return order


def _suggestions(dependencies: List[PropertyDependency], dependency_graph: Dict[str, List[str]]) -> List[str]:
    out = []
    high = [p for p, deps in dependency_graph.items() if len(deps) > COMPLEX_THRESHOLD]
    if high:
        out.append(f"Consider grouping these high-impact properties: {', '.join(high)}")
    order = recommended_order(dependency_graph)
    if order:
        out.append(f"Recommended property order: {' → '.join(order)}")
    needs_check = [d.property for d in dependencies if d.depends_on]
    if needs_check:
        out.append(f"These properties have dependencies and should be validated: {', '.join(needs_check)}")
    return out


# ---------- Public API ----------

def analyze(properties: List[Dict[str, Any]]) -> DependencyAnalysis:
    """
    Analyze `displayOptions.show/hide` across a node's property list.

    dependency_graph maps a controlling property to the properties whose
    visibility depends on it. Properties controlling more than two others are
    additionally reported as complex dependencies.
    """
    props = _named(properties or [])
    dependencies: List[PropertyDependency] = []
    graph: Dict[str, List[str]] = {}

    for prop in props:
        if not (_display(prop, "show") or _display(prop, "hide")):
            continue
        dep = _extract(prop, props)
        dependencies.append(dep)
        for cond in dep.depends_on:
            graph.setdefault(cond.property, [])
            if prop["name"] not in graph[cond.property]:
                graph[cond.property].append(prop["name"])

    for prop in props:
        dependents = _dependents(prop["name"], props)
        if len(dependents) > COMPLEX_THRESHOLD:
            dependencies.append(PropertyDependency(
                property=prop["name"],
                display_name=prop.get("displayName") or prop["name"],
                enables=dependents,
                notes=[f"This property affects {len(dependents)} other properties"],
            ))

    return DependencyAnalysis(
        total_properties=len(properties or []),
        dependencies=dependencies,
        dependency_graph=graph,
        suggestions=_suggestions(dependencies, graph),
    )


def get_property_dependencies(name: str, properties: List[Dict[str, Any]]) -> Optional[PropertyDependency]:
    for dep in analyze(properties).dependencies:
        if dep.property == name:
            return dep
    return None


def validate_property_configuration(
    name: str,
    value: Any,
    properties: List[Dict[str, Any]],
    current_values: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Check whether setting `name` makes sense given the other current values.
    Visibility problems are warnings, never errors.
    """
    result: Dict[str, Any] = {"isValid": True, "errors": [], "warnings": [], "suggestions": []}
    dep = get_property_dependencies(name, properties)
    if dep is None:
        return result

    values = dict(current_values or {})
    values[name] = value

    if dep.show_when and not _conditions_met(dep.show_when, values):
        result["warnings"].append(f"Property '{name}' may not be visible due to unmet show conditions")
    if dep.hide_when and _conditions_met(dep.hide_when, values):
        result["warnings"].append(f"Property '{name}' may be hidden due to hide conditions")
    if dep.enables:
        result["suggestions"].append(
            f"Setting '{name}' will enable these properties: {', '.join(dep.enables)}")
    if dep.disables:
        result["suggestions"].append(
            f"Setting '{name}' will disable these properties: {', '.join(dep.disables)}")
    result["isValid"] = not result["errors"]
    return result


def get_dependency_chain(name: str, properties: List[Dict[str, Any]]) -> List[str]:
    """`name` followed by every property it transitively controls."""
    G = _graph(analyze(properties).dependency_graph)
    if name not in G:
        return [name]
    return list(nx.dfs_preorder_nodes(G, name))


def get_property_groups(properties: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Properties that should be configured together, one group per controller."""
    analysis = analyze(properties)
    graph = analysis.dependency_graph
    groups = []
    processed = set()

    for dep in analysis.dependencies:
        if dep.property in processed:
            continue
        members = [dep.property] + list(graph.get(dep.property, []))
        members += [ctrl for ctrl, deps in graph.items() if dep.property in deps]
        unique = list(dict.fromkeys(members))
        if len(unique) > 1:
            groups.append({
                "name": f"{dep.display_name} Group",
                "properties": unique,
                "description": f"Properties that work together: {', '.join(unique)}",
            })
            processed.update(unique)
    return groups
