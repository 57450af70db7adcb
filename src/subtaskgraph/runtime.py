"""Runtime helpers for CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol

from subtaskgraph.config import ManagerConfig, load_config
from subtaskgraph.logging import configure_logging, get_logger


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str | None], ManagerConfig] = load_config
) -> ManagerConfig:
    """Load config, apply command-line overrides and configure logging."""
    cfg = loader(getattr(args, "config", None))
    repo_override = getattr(args, "repo", None)
    if repo_override:
        cfg.github_repo = repo_override
    if getattr(args, "dry_run", False):
        cfg.dry_run = True
    if getattr(args, "no_comments", False):
        cfg.post_comments = False
    level = "WARNING" if getattr(args, "quiet", False) else cfg.logging_level
    configure_logging(json_logging=cfg.logging_json_enabled, level=level)
    return cfg


def execute_command(handler: _HandlerCallable, command: str) -> int:
    """Run a command handler and log its exit code and duration."""
    logger = get_logger()
    start = time.monotonic()
    exit_code = 1
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    finally:
        duration_ms = max(0.0, time.monotonic() - start) * 1000
        logger.log_performance(f"command_{command}", duration_ms, exit_code=exit_code)
    return exit_code


__all__ = ["execute_command", "prepare_config"]
