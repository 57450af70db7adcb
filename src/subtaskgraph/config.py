from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError

CONFIG_DEFAULT = "subtaskgraph.config.yaml"


@dataclass
class ManagerConfig:
    version: int = 1
    github_repo: str | None = None
    github_api_url: str = "https://api.github.com"
    agent_login: str = "copilot"
    parent_label_prefix: str = "parent:"
    dry_run: bool = False
    post_comments: bool = True
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    # Concurrency configuration
    concurrency_enabled: bool = True
    concurrency_max_workers: int = 4
    # Environment authentication configuration
    env_auth_load_dotenv: bool = True
    env_auth_dotenv_path: str | None = None


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)  # Fallback to original if not found
    return value


def _int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Config value '{key}' must be an integer, got {value!r}") from exc


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping")
    return cast(dict[str, Any], value)


def load_config(path: str | Path | None = None) -> ManagerConfig:
    """Load YAML configuration.

    With no path, ``subtaskgraph.config.yaml`` is read when present and
    defaults are used otherwise. An explicit path that does not exist is an
    error.
    """
    p = Path(path) if path is not None else Path(CONFIG_DEFAULT)
    raw: dict[str, Any] = {}
    if p.exists():
        try:
            loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {p}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration root in {p} must be a mapping")
        raw = cast(dict[str, Any], loaded)
    elif path is not None:
        raise ConfigError(f'Configuration file not found: {p}')

    gh = _section(raw, 'github')
    agent = _section(raw, 'agent')
    subtasks = _section(raw, 'subtasks')
    behavior = _section(raw, 'behavior')
    logging_config = _section(raw, 'logging')
    concurrency_config = _section(raw, 'concurrency')
    env_auth = _section(raw, 'environment')
    defaults = ManagerConfig()

    return ManagerConfig(
        version=_int(raw.get('version', 1), 'version'),
        github_repo=_resolve_env_var(gh.get('repo')) or os.environ.get('GITHUB_REPOSITORY'),
        github_api_url=str(
            gh.get('api_url') or os.environ.get('GITHUB_API_URL') or defaults.github_api_url
        ),
        agent_login=str(_resolve_env_var(agent.get('login')) or defaults.agent_login),
        parent_label_prefix=str(subtasks.get('parent_label_prefix', defaults.parent_label_prefix)),
        dry_run=bool(behavior.get('dry_run', False)),
        post_comments=bool(behavior.get('post_comments', True)),
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
        concurrency_enabled=bool(concurrency_config.get('enabled', True)),
        concurrency_max_workers=_int(
            concurrency_config.get('max_workers', 4), 'concurrency.max_workers'
        ),
        env_auth_load_dotenv=bool(env_auth.get('load_dotenv', True)),
        env_auth_dotenv_path=env_auth.get('dotenv_path'),
    )


__all__ = ["CONFIG_DEFAULT", "ManagerConfig", "load_config"]
