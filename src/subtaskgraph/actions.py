"""GitHub Actions workflow-command helpers (outputs, step summary, annotations)."""

from __future__ import annotations

import os
import uuid


def set_output(name: str, value: str) -> bool:
    """Append ``name=value`` to ``$GITHUB_OUTPUT``; False outside a runner."""
    path = os.environ.get("GITHUB_OUTPUT")
    if not path:
        return False
    with open(path, "a", encoding="utf-8") as handle:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            handle.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            handle.write(f"{name}={value}\n")
    return True


def write_step_summary(markdown: str) -> bool:
    path = os.environ.get("GITHUB_STEP_SUMMARY")
    if not path:
        return False
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(markdown if markdown.endswith("\n") else markdown + "\n")
    return True


def error_annotation(message: str) -> None:
    # Workflow commands are single-line; encode newlines per the runner's escaping rules
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    print(f"::error::{escaped}")


__all__ = ["error_annotation", "set_output", "write_step_summary"]
