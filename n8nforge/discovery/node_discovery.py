# n8nforge/discovery/node_discovery.py

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from n8nforge.utils.io import PathLike, list_dirs, list_files, read_json, to_path
from n8nforge.utils.logger import get_logger

log = get_logger("discovery")

VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")


def compare_versions(a: str, b: str) -> int:
    """Numeric dotted compare; missing parts count as 0. Returns <0, 0 or >0."""
    pa = [int(p) for p in a.split(".") if p.isdigit()]
    pb = [int(p) for p in b.split(".") if p.isdigit()]
    for i in range(max(len(pa), len(pb))):
        x = pa[i] if i < len(pa) else 0
        y = pb[i] if i < len(pb) else 0
        if x != y:
            return x - y
    return 0


def _version_key(v: str) -> List[int]:
    return [int(p) for p in v.split(".") if p.isdigit()]


def find_best_matching_version(target: str, versions: Sequence[str]) -> Optional[str]:
    """Exact match, else the highest version <= target, else None."""
    if not versions:
        return None
    if target in versions:
        return target
    candidates = [v for v in versions if compare_versions(v, target) <= 0]
    if not candidates:
        return None
    return max(candidates, key=_version_key)


@dataclass
class NodeSearchResult:
    nodes: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    next_cursor: Optional[str] = None
    version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": self.nodes,
            "total": self.total,
            "hasMore": self.has_more,
            "nextCursor": self.next_cursor,
            "version": self.version,
        }


def _searchable_text(node: Dict[str, Any], tags: bool) -> str:
    codex = node.get("codex") or {}
    parts: List[str] = [
        str(node.get("name") or ""),
        str(node.get("displayName") or ""),
        str(node.get("description") or ""),
    ]
    parts.extend(str(c) for c in codex.get("categories") or [])
    group = node.get("group") or []
    parts.extend(str(g) for g in (group if isinstance(group, list) else [group]))
    if tags:
        parts.extend(str(k) for k in (codex.get("subcategories") or {}).keys())
    return " ".join(parts).lower()


def parse_cursor(cursor: Optional[str]) -> int:
    if cursor in (None, ""):
        return 0
    try:
        start = int(cursor)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid cursor: {cursor!r}") from e
    if start < 0:
        raise ValueError(f"Invalid cursor: {cursor!r}")
    return start


class NodeDiscoveryService:
    """
    Node definitions stored as <nodes_dir>/<x.y.z>/<node>.json.

    Loaded catalogs are cached per version string; the whole cache expires
    together `cache_ttl` seconds after the last load.
    """

    def __init__(
        self,
        nodes_dir: PathLike = "./workflow_nodes",
        cache_ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.nodes_dir = to_path(nodes_dir)
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Dict[str, List[Dict[str, Any]]] = {}
        self._cache_stamp = 0.0

    # ---------- versions ----------

    def available_versions(self) -> List[str]:
        """Version directories, newest first."""
        versions = [d.name for d in list_dirs(self.nodes_dir) if VERSION_RE.match(d.name)]
        return sorted(versions, key=_version_key, reverse=True)

    def resolve_version(self, requested: Optional[str] = None) -> Optional[str]:
        """Best match for `requested`, falling back to the newest version."""
        versions = self.available_versions()
        if not versions:
            return None
        if requested:
            best = find_best_matching_version(requested, versions)
            if best:
                return best
            log.info("no node catalog <= %s, using latest %s", requested, versions[0])
        return versions[0]

    # ---------- loading ----------

    def clear_cache(self) -> None:
        self._cache.clear()
        self._cache_stamp = 0.0

    def load_nodes(self, version: Optional[str]) -> List[Dict[str, Any]]:
        if not version:
            return []
        now = self._clock()
        if version in self._cache and (now - self._cache_stamp) < self.cache_ttl:
            return self._cache[version]
        if (now - self._cache_stamp) >= self.cache_ttl:
            self._cache.clear()

        nodes: List[Dict[str, Any]] = []
        for fp in list_files(self.nodes_dir / version, "*.json"):
            try:
                data = read_json(fp)
            except (OSError, json.JSONDecodeError) as e:
                log.warning("failed to load node file %s: %s", fp, e)
                continue
            if not isinstance(data, dict):
                log.warning("skipping node file %s: not a JSON object", fp)
                continue
            nodes.append(data)

        self._cache[version] = nodes
        self._cache_stamp = now
        log.debug("loaded %d node definitions for %s", len(nodes), version)
        return nodes

    # ---------- queries ----------

    def search_nodes(
        self,
        search_term: str = "",
        n8n_version: Optional[str] = None,
        limit: int = 50,
        cursor: Optional[str] = "0",
        tags: bool = True,
        token_logic: str = "or",
    ) -> NodeSearchResult:
        if token_logic not in ("or", "and"):
            raise ValueError("token_logic must be 'or' or 'and'")
        if limit < 1:
            raise ValueError("limit must be at least 1")
        start = parse_cursor(cursor)

        version = self.resolve_version(n8n_version)
        nodes = self.load_nodes(version)

        tokens = (search_term or "").lower().split()
        if tokens:
            match = all if token_logic == "and" else any
            nodes = [n for n in nodes if match(t in _searchable_text(n, tags) for t in tokens)]

        end = start + limit
        has_more = end < len(nodes)
        return NodeSearchResult(
            nodes=nodes[start:end],
            total=len(nodes),
            has_more=has_more,
            next_cursor=str(end) if has_more else None,
            version=version,
        )

    def node_categories(self, version: Optional[str] = None) -> Dict[str, Any]:
        nodes = self.load_nodes(self.resolve_version(version))
        categories = set()
        subcategories: Dict[str, set] = {}
        for n in nodes:
            codex = n.get("codex") or {}
            categories.update(str(c) for c in codex.get("categories") or [])
            for cat, subs in (codex.get("subcategories") or {}).items():
                subcategories.setdefault(cat, set()).update(str(s) for s in subs or [])
        return {
            "categories": sorted(categories),
            "subcategories": {k: sorted(v) for k, v in sorted(subcategories.items())},
        }

    def get_node_definition(self, node_type: str, version: Optional[str] = None) -> Optional[Dict[str, Any]]:
        for n in self.load_nodes(self.resolve_version(version)):
            if n.get("name") == node_type:
                return n
        return None
