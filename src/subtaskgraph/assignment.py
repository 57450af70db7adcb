from __future__ import annotations

from collections.abc import Iterable

from .issue_store import IssueStore
from .logging import get_logger
from .models import AssignmentResult, SubtaskAnalysis


def assign_subtasks(
    store: IssueStore, assignee: str, subtasks: Iterable[SubtaskAnalysis]
) -> list[AssignmentResult]:
    """Assign ``assignee`` to each subtask; one failure does not stop the rest."""
    logger = get_logger()
    results: list[AssignmentResult] = []
    for subtask in subtasks:
        try:
            ok = store.assign_actor(subtask.number, assignee)
        except Exception as exc:  # store backends may raise transport errors
            logger.log_error(
                f"✗ Failed to assign {assignee} to subtask #{subtask.number}",
                error=str(exc),
                issue_number=subtask.number,
            )
            results.append(AssignmentResult(subtask.number, False, str(exc)))
            continue
        if ok:
            logger.info(f"✓ Assigned {assignee} to subtask #{subtask.number}")
            results.append(AssignmentResult(subtask.number, True))
        else:
            results.append(AssignmentResult(subtask.number, False, "assignment rejected"))
    return results


__all__ = ["assign_subtasks"]
