"""Markdown comments posted on the parent issue."""

from __future__ import annotations

from collections.abc import Sequence

from .graph import format_cycle
from .models import SubtaskAnalysis

HEADER = "🤖 **Copilot Subtask Manager**"


def _item(a: SubtaskAnalysis) -> str:
    return f"- [ ] #{a.number} - {a.title}"


def _blocked_item(a: SubtaskAnalysis) -> str:
    deps = ", ".join(f"#{d}" for d in a.unresolved_dependencies)
    return f"- [ ] #{a.number} - {a.title} (depends on: {deps})"


def _waiting(analyses: Sequence[SubtaskAnalysis], exclude: Sequence[SubtaskAnalysis]) -> list[SubtaskAnalysis]:
    skip = {a.number for a in exclude}
    return [
        a
        for a in analyses
        if a.number not in skip and not a.has_assignees and a.unresolved_dependencies
    ]


def render_status_comment(
    assignee: str,
    ready: Sequence[SubtaskAnalysis],
    analyses: Sequence[SubtaskAnalysis],
) -> str:
    lines = [HEADER, ""]
    if not analyses:
        lines.append(
            f"No subtasks found for this issue. {assignee} will work on the parent issue directly."
        )
        return "\n".join(lines) + "\n"

    if not ready:
        assigned = [a for a in analyses if a.has_assignees]
        blocked = _waiting(analyses, ())
        lines.append(f"Found {len(analyses)} subtask(s), but none are ready to assign:")
        lines.append("")
        if assigned:
            lines.append("**Already Assigned:**")
            lines.extend(_item(a) for a in assigned)
            lines.append("")
        if blocked:
            lines.append("**Blocked by Dependencies:**")
            lines.extend(_blocked_item(a) for a in blocked)
        return "\n".join(lines) + "\n"

    lines.append(f"{assignee} has been assigned to {len(ready)} ready subtask(s):")
    lines.append("")
    lines.extend(_item(a) for a in ready)
    blocked = _waiting(analyses, ready)
    if blocked:
        lines.append("")
        lines.append("**Waiting for Dependencies:**")
        lines.extend(_blocked_item(a) for a in blocked)
        lines.append("")
        lines.append("_These will be automatically assigned as dependencies are completed._")
    return "\n".join(lines) + "\n"


def render_progress_comment(
    completed: int,
    newly_assigned: Sequence[SubtaskAnalysis],
    remaining: Sequence[SubtaskAnalysis],
) -> str:
    lines = ["🤖 **Subtask Completed**", "", f"Subtask #{completed} has been completed! ✅", ""]
    if newly_assigned:
        lines.append("**Newly Assigned Subtasks:**")
        lines.extend(_item(a) for a in newly_assigned)
    else:
        lines.append("No additional subtasks are ready to assign at this time.")
    still_blocked = _waiting(remaining, newly_assigned)
    if still_blocked:
        lines.append("")
        lines.append("**Still Waiting:**")
        lines.extend(_blocked_item(a) for a in still_blocked)
    return "\n".join(lines) + "\n"


def render_cycle_comment(cycle: Sequence[int]) -> str:
    return (
        "🤖 **Copilot Subtask Manager - Error**\n\n"
        f"Circular dependency detected: {format_cycle(cycle)}\n\n"
        "Please fix the circular dependency before proceeding.\n"
    )


def render_step_summary(
    ready: Sequence[SubtaskAnalysis], analyses: Sequence[SubtaskAnalysis]
) -> str:
    lines = ["## Subtask readiness", "", "| Subtask | Status | Waiting on |", "|---|---|---|"]
    ready_numbers = {a.number for a in ready}
    for a in analyses:
        if a.number in ready_numbers:
            status = "ready"
        elif a.has_assignees:
            status = "assigned"
        else:
            status = "blocked"
        waiting = ", ".join(f"#{d}" for d in a.unresolved_dependencies) if status == "blocked" else "-"
        lines.append(f"| #{a.number} {a.title} | {status} | {waiting} |")
    return "\n".join(lines) + "\n"


__all__ = [
    "render_cycle_comment",
    "render_progress_comment",
    "render_status_comment",
    "render_step_summary",
]
