# n8nforge/storage/workflow_store.py

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from n8nforge.model.workflow import (
    Workflow,
    check_integrity,
    create_empty_workflow,
    workflow_stats,
)
from n8nforge.utils.io import PathLike, ensure_dir, list_files, read_json, to_path, write_json
from n8nforge.utils.logger import get_logger

log = get_logger("store")


class WorkflowStoreError(Exception):
    pass


class WorkflowExistsError(WorkflowStoreError):
    def __init__(self, name: str):
        super().__init__(f"Workflow '{name}' already exists")
        self.name = name


class InvalidWorkflowError(WorkflowStoreError):
    def __init__(self, problems: List[str]):
        super().__init__(f"Invalid workflow: {', '.join(problems)}")
        self.problems = problems


class WorkflowStore:
    """
    One JSON file per workflow: <workflows_dir>/<name>.json.
    The file name is the workflow's `name`.
    """

    def __init__(self, workflows_dir: PathLike = "./workflows"):
        self.workflows_dir = to_path(workflows_dir)

    def path_for(self, name: str) -> Path:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Workflow name is required")
        if "/" in name or "\\" in name or name in (".", "..") or ".." in name:
            raise ValueError(f"Invalid workflow name: {name!r}")
        return self.workflows_dir / f"{name}.json"

    # ---------- CRUD ----------

    def create(
        self,
        name: str,
        description: Optional[str] = None,
        active: bool = False,
        settings: Optional[Dict[str, Any]] = None,
    ) -> Workflow:
        if self.exists(name):
            raise WorkflowExistsError(name)
        wf = create_empty_workflow(name, description)
        wf["active"] = bool(active)
        if settings:
            wf["settings"] = dict(settings)
        self.save(wf)
        log.info("created workflow %r", name)
        return wf

    def load(self, name: str) -> Optional[Workflow]:
        """Return the workflow, or None when missing or unreadable."""
        p = self.path_for(name)
        if not p.exists():
            return None
        try:
            return read_json(p)
        except (OSError, json.JSONDecodeError) as e:
            log.warning("failed to load workflow %r from %s: %s", name, p, e)
            return None

    def save(self, workflow: Workflow, name: Optional[str] = None) -> Path:
        """
        Write `workflow` to <name>.json. `name` defaults to the workflow's own
        name; pass the name it was loaded under to overwrite that file.
        """
        problems = check_integrity(workflow)
        if problems:
            raise InvalidWorkflowError(problems)
        target = name if name is not None else workflow["name"]
        path = self.path_for(target)
        ensure_dir(self.workflows_dir)
        p = write_json(path, workflow)
        log.debug("saved workflow %r -> %s", target, p)
        return p

    def list_names(self) -> List[str]:
        return [p.stem for p in list_files(self.workflows_dir, "*.json")]

    def delete(self, name: str) -> bool:
        p = self.path_for(name)
        if not p.exists():
            return False
        try:
            p.unlink()
        except OSError as e:
            log.warning("failed to delete workflow %r: %s", name, e)
            return False
        log.info("deleted workflow %r", name)
        return True

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def details(self, name: str) -> Dict[str, Any]:
        wf = self.load(name)
        if wf is None:
            return {"exists": False, "workflow": None, "stats": None}
        return {"exists": True, "workflow": wf, "stats": workflow_stats(wf)}
