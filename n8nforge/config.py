# n8nforge/config.py

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


DEFAULT_API_URL = "http://localhost:5678"
DEFAULT_TIMEOUT = 30.0
DEFAULT_WORKFLOWS_DIR = "./workflows"
DEFAULT_NODES_DIR = "./workflow_nodes"
DEFAULT_CACHE_TTL = 3600.0


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be a number, got {raw!r}") from e


@dataclass
class Settings:
    """Runtime configuration, normally read from the process environment."""

    api_url: str = DEFAULT_API_URL
    api_key: Optional[str] = None
    api_timeout: float = DEFAULT_TIMEOUT
    workflows_dir: Path = field(default_factory=lambda: Path(DEFAULT_WORKFLOWS_DIR))
    nodes_dir: Path = field(default_factory=lambda: Path(DEFAULT_NODES_DIR))
    node_cache_ttl: float = DEFAULT_CACHE_TTL
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        log_dir = env.get("LOG_DIR")
        return cls(
            api_url=env.get("N8N_API_URL") or DEFAULT_API_URL,
            api_key=env.get("N8N_API_KEY") or None,
            api_timeout=_float(env, "N8N_API_TIMEOUT", DEFAULT_TIMEOUT),
            workflows_dir=Path(env.get("N8N_WORKFLOWS_DIR") or DEFAULT_WORKFLOWS_DIR),
            nodes_dir=Path(env.get("N8N_NODES_DIR") or DEFAULT_NODES_DIR),
            node_cache_ttl=_float(env, "N8N_NODE_CACHE_TTL", DEFAULT_CACHE_TTL),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            log_dir=Path(log_dir) if log_dir else None,
        )

    @property
    def is_api_configured(self) -> bool:
        return bool(self.api_key)

    def public_dict(self) -> dict:
        """Settings as plain values, with the API key masked."""
        return {
            "apiUrl": self.api_url,
            "apiKeyConfigured": self.is_api_configured,
            "apiTimeout": self.api_timeout,
            "workflowsDir": str(self.workflows_dir),
            "nodesDir": str(self.nodes_dir),
            "nodeCacheTtl": self.node_cache_ttl,
            "logLevel": self.log_level,
        }


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Load a .env file (if any) into the environment, then read Settings."""
    load_dotenv(dotenv_path=dotenv_path, override=False)
    return Settings.from_env()
