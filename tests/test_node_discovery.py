import json

import pytest

from n8nforge.discovery.node_discovery import (
    NodeDiscoveryService,
    compare_versions,
    find_best_matching_version,
    parse_cursor,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _write_node(root, version, name, **extra):
    d = root / version
    d.mkdir(parents=True, exist_ok=True)
    body = {"name": name, "displayName": name.split(".")[-1].title()}
    body.update(extra)
    (d / f"{name.split('.')[-1]}.json").write_text(json.dumps(body), encoding="utf-8")


@pytest.fixture()
def catalog(tmp_path):
    root = tmp_path / "workflow_nodes"
    _write_node(root, "1.0.0", "n8n-nodes-base.webhook", description="Starts the workflow on HTTP call",
                codex={"categories": ["Core Nodes"], "subcategories": {"Core Nodes": ["Helpers"]}})
    _write_node(root, "1.0.0", "n8n-nodes-base.slack", description="Send messages",
                codex={"categories": ["Communication"]})
    _write_node(root, "1.2.0", "n8n-nodes-base.webhook", description="HTTP trigger")
    _write_node(root, "1.2.0", "n8n-nodes-base.httpRequest", description="Makes an HTTP request",
                group=["output"])
    _write_node(root, "1.2.0", "n8n-nodes-base.slack", description="Send messages to channels",
                codex={"categories": ["Communication"], "subcategories": {"Team Chat": ["Messaging"]}})
    (root / "notes").mkdir()
    (root / "1.2.0" / "broken.json").write_text("{oops", encoding="utf-8")
    (root / "1.2.0" / "list.json").write_text("[1, 2]", encoding="utf-8")
    return root


@pytest.mark.parametrize("a,b,sign", [
    ("1.2.0", "1.10.0", -1),
    ("1.10.0", "1.2.0", 1),
    ("1.2", "1.2.0", 0),
    ("2.0.0", "1.99.99", 1),
])
def test_compare_versions_is_numeric(a, b, sign):
    result = compare_versions(a, b)
    assert (result > 0) - (result < 0) == sign


@pytest.mark.parametrize("target,expected", [
    ("1.2.0", "1.2.0"),
    ("1.5.3", "1.2.0"),
    ("1.1.9", "1.0.0"),
    ("0.9.0", None),
])
def test_best_matching_version(target, expected):
    assert find_best_matching_version(target, ["1.0.0", "1.2.0"]) == expected


def test_best_matching_version_empty():
    assert find_best_matching_version("1.0.0", []) is None


@pytest.mark.parametrize("bad", ["abc", "-1", "1.5"])
def test_parse_cursor_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_cursor(bad)


def test_parse_cursor_defaults():
    assert parse_cursor(None) == 0
    assert parse_cursor("") == 0
    assert parse_cursor("20") == 20


def test_versions_ignore_non_version_dirs(catalog):
    svc = NodeDiscoveryService(catalog)
    assert svc.available_versions() == ["1.2.0", "1.0.0"]
    assert svc.resolve_version() == "1.2.0"
    assert svc.resolve_version("1.1.0") == "1.0.0"
    assert svc.resolve_version("0.1.0") == "1.2.0"


def test_load_skips_bad_files(catalog):
    nodes = NodeDiscoveryService(catalog).load_nodes("1.2.0")
    assert sorted(n["name"] for n in nodes) == [
        "n8n-nodes-base.httpRequest", "n8n-nodes-base.slack", "n8n-nodes-base.webhook",
    ]


def test_missing_dir_has_no_versions(tmp_path):
    svc = NodeDiscoveryService(tmp_path / "missing")
    assert svc.available_versions() == []
    res = svc.search_nodes("http")
    assert res.version is None and res.nodes == [] and res.total == 0


def test_search_or_and_logic(catalog):
    svc = NodeDiscoveryService(catalog)
    either = svc.search_nodes("http slack", n8n_version="1.2.0")
    assert either.total == 3
    both = svc.search_nodes("http request", n8n_version="1.2.0", token_logic="and")
    assert [n["name"] for n in both.nodes] == ["n8n-nodes-base.httpRequest"]


def test_search_tags_toggle(catalog):
    svc = NodeDiscoveryService(catalog)
    assert svc.search_nodes("chat").total == 1
    assert svc.search_nodes("chat", tags=False).total == 0


def test_search_pagination(catalog):
    svc = NodeDiscoveryService(catalog)
    first = svc.search_nodes("", limit=2)
    assert first.total == 3
    assert len(first.nodes) == 2
    assert first.has_more is True and first.next_cursor == "2"
    second = svc.search_nodes("", limit=2, cursor=first.next_cursor)
    assert len(second.nodes) == 1
    assert second.has_more is False and second.next_cursor is None
    assert second.to_dict()["hasMore"] is False


@pytest.mark.parametrize("kwargs", [{"limit": 0}, {"token_logic": "xor"}, {"cursor": "x"}])
def test_search_rejects_bad_arguments(catalog, kwargs):
    with pytest.raises(ValueError):
        NodeDiscoveryService(catalog).search_nodes("http", **kwargs)


def test_cache_expires_after_ttl(catalog):
    clock = FakeClock()
    svc = NodeDiscoveryService(catalog, cache_ttl=60, clock=clock)
    assert len(svc.load_nodes("1.0.0")) == 2

    _write_node(catalog, "1.0.0", "n8n-nodes-base.set")
    clock.now += 30
    assert len(svc.load_nodes("1.0.0")) == 2

    clock.now += 31
    assert len(svc.load_nodes("1.0.0")) == 3


def test_clear_cache_forces_reload(catalog):
    svc = NodeDiscoveryService(catalog, clock=FakeClock())
    svc.load_nodes("1.0.0")
    _write_node(catalog, "1.0.0", "n8n-nodes-base.set")
    svc.clear_cache()
    assert len(svc.load_nodes("1.0.0")) == 3


def test_categories_and_definition(catalog):
    svc = NodeDiscoveryService(catalog)
    cats = svc.node_categories("1.0.0")
    assert cats["categories"] == ["Communication", "Core Nodes"]
    assert cats["subcategories"] == {"Core Nodes": ["Helpers"]}
    assert svc.get_node_definition("n8n-nodes-base.slack")["description"] == "Send messages to channels"
    assert svc.get_node_definition("n8n-nodes-base.slack", "1.0.0")["description"] == "Send messages"
    assert svc.get_node_definition("n8n-nodes-base.nope") is None
