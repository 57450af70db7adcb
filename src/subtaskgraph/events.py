"""Translate a GitHub Actions event into the work subtaskgraph should do."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .parser import parse_closing_references

PARENT_ASSIGNMENT = "parent-assignment"
SUBTASK_COMPLETION = "subtask-completion"
IGNORED = "ignored"


@dataclass(frozen=True)
class EventContext:
    event_name: str
    action: str
    kind: str = IGNORED
    parent: int | None = None
    assignee: str | None = None
    completed: tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(
        cls, event_name: str, payload: Mapping[str, Any], agent_login: str = "copilot"
    ) -> EventContext:
        action = str(payload.get("action") or "")
        issue = payload.get("issue") or {}

        if event_name == "issues" and action == "assigned":
            login = str((payload.get("assignee") or {}).get("login") or "")
            number = issue.get("number")
            if agent_login.lower() in login.lower() and isinstance(number, int):
                return cls(event_name, action, PARENT_ASSIGNMENT, parent=number, assignee=login)
            return cls(event_name, action)

        if event_name == "issues" and action == "closed":
            number = issue.get("number")
            if isinstance(number, int):
                return cls(event_name, action, SUBTASK_COMPLETION, completed=(number,))
            return cls(event_name, action)

        pull_request = payload.get("pull_request") or {}
        if event_name == "pull_request" and pull_request.get("merged"):
            linked = parse_closing_references(pull_request.get("body"))
            kind = SUBTASK_COMPLETION if linked else IGNORED
            return cls(event_name, "merged", kind, completed=linked)

        return cls(event_name, action)


def load_event_from_env(
    agent_login: str = "copilot", env: Mapping[str, str] | None = None
) -> EventContext:
    """Read ``GITHUB_EVENT_NAME`` / ``GITHUB_EVENT_PATH`` as set by the runner."""
    env = os.environ if env is None else env
    event_name = env.get("GITHUB_EVENT_NAME", "")
    event_path = env.get("GITHUB_EVENT_PATH")
    payload: dict[str, Any] = {}
    if event_path and Path(event_path).exists():
        loaded = json.loads(Path(event_path).read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            payload = loaded
    return EventContext.from_payload(event_name, payload, agent_login)


__all__ = [
    "EventContext",
    "IGNORED",
    "PARENT_ASSIGNMENT",
    "SUBTASK_COMPLETION",
    "load_event_from_env",
]
