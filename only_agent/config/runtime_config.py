"""Runtime configuration for the action engine.

Provides centralized configuration for the workspace, the approval queue and
the HTTP server. Environment variables take precedence over the YAML file,
which takes precedence over built-in defaults.

Config file lookup (first hit wins):
1. $ONLY_AGENT_CONFIG
2. .only-agent.yaml in the current directory
3. None: defaults only

Example .only-agent.yaml:

    workspace:
      root: ~/src/my-project
      exclude: [node_modules, .git, dist]
      max_listed_files: 100
    queue:
      replace_on_parse: false
      bulk_excluded_kinds: [SHELL]
    server:
      host: 127.0.0.1
      port: 8765

Usage:
    from only_agent.config.runtime_config import get_settings, reset_config

    settings = get_settings()
    print(settings.workspace_root, settings.max_listed_files)
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ONLY_AGENT_CONFIG"
CONFIG_FILENAME = ".only-agent.yaml"

_cached_config: Optional[Dict[str, Any]] = None
_cached_settings: Optional["AgentSettings"] = None

# SHELL is never bulk-approved, whatever the config says.
ALWAYS_BULK_EXCLUDED = ("SHELL",)


def _default_config() -> Dict[str, Any]:
    """Return default configuration used when no config file exists."""
    return {
        "workspace": {
            "root": None,
            "exclude": [
                "node_modules",
                ".git",
                "__pycache__",
                ".venv",
                "venv",
                ".mypy_cache",
                ".pytest_cache",
            ],
            "max_listed_files": 100,
        },
        "queue": {
            "replace_on_parse": False,
            "bulk_excluded_kinds": ["SHELL"],
        },
        "server": {
            "host": "127.0.0.1",
            "port": 8765,
        },
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into dicts."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def find_config_path() -> Optional[Path]:
    """Return the config file to load, or None if there is none."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path).expanduser()
        if not path.exists():
            logger.warning("%s points to missing file %s; using defaults", CONFIG_ENV_VAR, path)
            return None
        return path

    local = Path.cwd() / CONFIG_FILENAME
    if local.exists():
        return local
    return None


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from ``path`` (uncached) merged over defaults.

    Raises:
        ValueError: If the file does not contain a YAML mapping.
        yaml.YAMLError: If the file is not valid YAML.
    """
    config = _default_config()
    if path is None:
        return config

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return config
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    logger.debug("Loaded config from %s", path)
    return _deep_merge(config, data)


def _load_config() -> Dict[str, Any]:
    """Load the active configuration, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    _cached_config = load_config(find_config_path())
    return _cached_config


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config, _cached_settings
    _cached_config = None
    _cached_settings = None


# =============================================================================
# Resolved settings
# =============================================================================


@dataclass
class AgentSettings:
    """Resolved configuration values.

    Attributes:
        workspace_root: Project root, or None when no project is configured.
        exclude_patterns: Patterns hidden from project listings.
        max_listed_files: Cap on files listed in the prompt.
        replace_on_parse: Clear the queue before queuing a new response.
        bulk_excluded_kinds: Kinds "approve all" leaves in the queue.
        host: HTTP bind address.
        port: HTTP port.
    """

    workspace_root: Optional[Path] = None
    exclude_patterns: List[str] = field(default_factory=lambda: list(_default_config()["workspace"]["exclude"]))
    max_listed_files: int = 100
    replace_on_parse: bool = False
    bulk_excluded_kinds: List[str] = field(default_factory=lambda: list(ALWAYS_BULK_EXCLUDED))
    host: str = "127.0.0.1"
    port: int = 8765

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "workspace_root": str(self.workspace_root) if self.workspace_root else None,
            "exclude_patterns": self.exclude_patterns,
            "max_listed_files": self.max_listed_files,
            "replace_on_parse": self.replace_on_parse,
            "bulk_excluded_kinds": self.bulk_excluded_kinds,
            "host": self.host,
            "port": self.port,
        }


def _positive_int(value: Any, name: str, default: int) -> int:
    """Parse a positive integer, logging and falling back on bad input."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value '%s'. Falling back to %d.", name, value, default)
        return default
    if parsed <= 0:
        logger.warning("%s must be positive, got %d. Falling back to %d.", name, parsed, default)
        return default
    return parsed


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def settings_from_config(config: Dict[str, Any]) -> AgentSettings:
    """Resolve settings from a config dict, applying env overrides.

    Environment variable precedence (highest to lowest):
    1. ONLY_AGENT_ROOT, ONLY_AGENT_MAX_FILES, ONLY_AGENT_HOST, ONLY_AGENT_PORT
    2. Config file value
    3. Default
    """
    defaults = _default_config()
    workspace = config.get("workspace") or {}
    queue = config.get("queue") or {}
    server = config.get("server") or {}

    root_value = os.environ.get("ONLY_AGENT_ROOT") or workspace.get("root")
    root = Path(str(root_value)).expanduser() if root_value else None

    max_files = os.environ.get("ONLY_AGENT_MAX_FILES") or workspace.get("max_listed_files")
    default_max = defaults["workspace"]["max_listed_files"]
    max_listed = _positive_int(max_files, "max_listed_files", default_max) if max_files is not None else default_max

    port_value = os.environ.get("ONLY_AGENT_PORT") or server.get("port")
    default_port = defaults["server"]["port"]
    port = _positive_int(port_value, "port", default_port) if port_value is not None else default_port

    excluded = [str(k).strip().upper() for k in queue.get("bulk_excluded_kinds") or []]
    for kind in ALWAYS_BULK_EXCLUDED:
        if kind not in excluded:
            excluded.append(kind)

    exclude = workspace.get("exclude")
    if exclude is None:
        exclude = defaults["workspace"]["exclude"]

    return AgentSettings(
        workspace_root=root,
        exclude_patterns=[str(p) for p in exclude],
        max_listed_files=max_listed,
        replace_on_parse=_as_bool(queue.get("replace_on_parse", False)),
        bulk_excluded_kinds=excluded,
        host=os.environ.get("ONLY_AGENT_HOST") or str(server.get("host") or defaults["server"]["host"]),
        port=port,
    )


def get_settings() -> AgentSettings:
    """Return the active settings (cached until ``reset_config``)."""
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = settings_from_config(_load_config())
    return _cached_settings
