from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class IssueState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def parse(cls, value: Any) -> IssueState:
        return cls.CLOSED if str(value or "").lower() == "closed" else cls.OPEN


class Reason(str, Enum):
    NO_DEPENDENCIES = "no-dependencies"
    DEPENDENCIES_RESOLVED = "dependencies-resolved"
    ALREADY_ASSIGNED = "already-assigned"
    BLOCKED = "blocked"


def _names(raw: Any, key: str) -> tuple[str, ...]:
    out: list[str] = []
    if not isinstance(raw, list):
        return ()
    for item in raw:
        if isinstance(item, dict):
            value = item.get(key)
            if isinstance(value, str) and value:
                out.append(value)
        elif isinstance(item, str) and item:
            out.append(item)
    return tuple(out)


@dataclass(frozen=True)
class Issue:
    """Read-only snapshot of a GitHub issue."""

    number: int
    title: str
    body: str = ""
    state: IssueState = IssueState.OPEN
    labels: tuple[str, ...] = ()
    assignees: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, entry: Mapping[str, Any]) -> Issue:
        """Build from a REST payload; labels/assignees may be objects or plain strings."""
        return cls(
            number=int(entry["number"]),
            title=str(entry.get("title") or ""),
            body=str(entry.get("body") or ""),
            state=IssueState.parse(entry.get("state")),
            labels=_names(entry.get("labels"), "name"),
            assignees=_names(entry.get("assignees"), "login"),
        )


@dataclass(frozen=True)
class Subtask:
    issue: Issue
    dependencies: tuple[int, ...] = ()

    @property
    def number(self) -> int:
        return self.issue.number

    @property
    def title(self) -> str:
        return self.issue.title

    @property
    def state(self) -> IssueState:
        return self.issue.state

    @property
    def has_assignees(self) -> bool:
        return bool(self.issue.assignees)


@dataclass(frozen=True)
class SubtaskAnalysis:
    number: int
    title: str
    state: IssueState
    dependencies: tuple[int, ...]
    has_assignees: bool
    is_ready: bool
    unresolved_dependencies: tuple[int, ...]

    @property
    def reason(self) -> Reason:
        if self.has_assignees:
            return Reason.ALREADY_ASSIGNED
        if not self.is_ready:
            return Reason.BLOCKED
        if self.dependencies:
            return Reason.DEPENDENCIES_RESOLVED
        return Reason.NO_DEPENDENCIES

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "state": self.state.value,
            "dependencies": list(self.dependencies),
            "has_assignees": self.has_assignees,
            "is_ready": self.is_ready,
            "unresolved_dependencies": list(self.unresolved_dependencies),
            "reason": self.reason.value,
        }


@dataclass(frozen=True)
class ResolutionReport:
    """What a pass hands to the assignment layer."""

    ready: tuple[SubtaskAnalysis, ...] = ()
    blocked: tuple[SubtaskAnalysis, ...] = ()
    assigned: tuple[SubtaskAnalysis, ...] = ()

    @property
    def ready_numbers(self) -> list[int]:
        return [a.number for a in self.ready]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ready": [
                {"number": a.number, "title": a.title, "reason": a.reason.value}
                for a in self.ready
            ],
            "blocked": [
                {
                    "number": a.number,
                    "title": a.title,
                    "unresolved_dependencies": list(a.unresolved_dependencies),
                }
                for a in self.blocked
            ],
            "assigned": [{"number": a.number, "title": a.title} for a in self.assigned],
        }


@dataclass
class AssignmentResult:
    number: int
    success: bool
    error: str | None = None


@dataclass
class RunOutcome:
    action: str  # assignment / completion / skipped
    parent: int | None = None
    report: ResolutionReport | None = None
    assignments: list[AssignmentResult] = field(default_factory=list)
    cycle: tuple[int, ...] | None = None
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.cycle is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "parent": self.parent,
            "report": self.report.to_dict() if self.report else None,
            "assignments": [
                {"number": r.number, "success": r.success, "error": r.error}
                for r in self.assignments
            ],
            "cycle": list(self.cycle) if self.cycle else None,
            "message": self.message,
        }


__all__ = [
    "AssignmentResult",
    "Issue",
    "IssueState",
    "Reason",
    "ResolutionReport",
    "RunOutcome",
    "Subtask",
    "SubtaskAnalysis",
]
