"""Event handlers: parent assignment and subtask completion.

Each handler runs one stateless pass: discover the parent's open subtasks,
refuse the whole batch if it contains a cycle, resolve readiness, assign, and
report on the parent issue. Passes for the same parent must not overlap; the
workflow serialises them with a ``concurrency:`` group.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import TypeVar

from .assignment import assign_subtasks
from .comments import render_cycle_comment, render_progress_comment, render_status_comment
from .concurrency import AsyncIssueStateLookup, ConcurrencyConfig
from .config import ManagerConfig
from .errors import CyclicDependencyError
from .events import PARENT_ASSIGNMENT, SUBTASK_COMPLETION, EventContext
from .issue_store import IssueStore, find_assigning_parent, find_parent, list_candidate_subtasks
from .logging import get_logger
from .models import ResolutionReport, RunOutcome, Subtask, SubtaskAnalysis
from .resolver import StateLookup, advance, partition, resolve

T = TypeVar("T")


async def _offload(fn: Callable[..., T], *args: object) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args))


class SubtaskManager:
    def __init__(
        self,
        store: IssueStore,
        config: ManagerConfig | None = None,
        lookup: StateLookup | None = None,
    ):
        self.store = store
        self.config = config or ManagerConfig()
        self._lookup = lookup
        self.logger = get_logger()

    def _state_lookup(self) -> AsyncIssueStateLookup:
        return AsyncIssueStateLookup(
            self.store,
            ConcurrencyConfig(
                enabled=self.config.concurrency_enabled,
                max_workers=self.config.concurrency_max_workers,
            ),
        )

    async def _comment(self, number: int, body: str) -> None:
        if self.config.post_comments:
            await _offload(self.store.post_comment, number, body)

    async def _discover(self, parent: int) -> list[Subtask]:
        return await _offload(
            functools.partial(
                list_candidate_subtasks, self.store, parent, prefix=self.config.parent_label_prefix
            )
        )

    async def _resolve(
        self, subtasks: list[Subtask], known_closed: tuple[int, ...] = ()
    ) -> tuple[list[SubtaskAnalysis], ResolutionReport]:
        if self._lookup is not None:
            return await resolve(subtasks, self._lookup, known_closed=known_closed)
        async with self._state_lookup() as lookup:
            return await resolve(subtasks, lookup, known_closed=known_closed)

    async def _report_cycle(self, parent: int, action: str, exc: CyclicDependencyError) -> RunOutcome:
        self.logger.log_error(str(exc), operation="cycle_detected", issue_number=parent)
        await self._comment(parent, render_cycle_comment(exc.cycle))
        return RunOutcome(action, parent=parent, cycle=exc.cycle, message=str(exc))

    async def handle_parent_assignment(self, parent: int, assignee: str) -> RunOutcome:
        with self.logger.timed_operation("parent_assignment", issue_number=parent):
            return await self._parent_assignment(parent, assignee)

    async def handle_subtask_completion(
        self,
        completed: int,
        assignee: str | None = None,
        *,
        closed_together: Iterable[int] = (),
    ) -> RunOutcome:
        """Assign what ``completed`` unblocks.

        ``closed_together`` names issues completed by the same event; they
        count as closed even if GitHub has not caught up yet.
        """
        with self.logger.timed_operation("subtask_completion", issue_number=completed):
            return await self._subtask_completion(
                completed, assignee or self.config.agent_login, tuple(closed_together)
            )

    async def _parent_assignment(self, parent: int, assignee: str) -> RunOutcome:
        self.logger.info(f"Handling {assignee} assignment to parent issue #{parent}")
        subtasks = await self._discover(parent)
        if not subtasks:
            # Our own assignments to subtasks come back as "assigned" events
            own_parent = await _offload(
                functools.partial(
                    find_assigning_parent,
                    self.store,
                    parent,
                    assignee,
                    prefix=self.config.parent_label_prefix,
                )
            )
            if own_parent is not None:
                self.logger.info(f"#{parent} is a subtask of #{own_parent}, skipping")
                return RunOutcome("skipped", message=f"#{parent} is a subtask")
            self.logger.info("No subtasks found for this parent issue")
            await self._comment(parent, render_status_comment(assignee, [], []))
            return RunOutcome("assignment", parent=parent, message="no subtasks")

        try:
            analyses, report = await self._resolve(subtasks)
        except CyclicDependencyError as exc:
            return await self._report_cycle(parent, "assignment", exc)

        self.logger.info(
            f"Found {len(report.ready)} ready subtask(s) out of {len(subtasks)} total"
        )
        results = await _offload(assign_subtasks, self.store, assignee, report.ready)
        await self._comment(parent, render_status_comment(assignee, report.ready, analyses))
        return RunOutcome("assignment", parent=parent, report=report, assignments=results)

    async def _subtask_completion(
        self, completed: int, assignee: str, closed_together: tuple[int, ...]
    ) -> RunOutcome:
        self.logger.info(f"Handling completion of subtask #{completed}")
        parent = await _offload(
            functools.partial(find_parent, self.store, completed, prefix=self.config.parent_label_prefix)
        )
        if parent is None:
            self.logger.info("Completed issue is not a subtask, skipping")
            return RunOutcome("skipped", message=f"#{completed} is not a subtask")

        self.logger.info(f"Found parent issue #{parent}")
        known_closed = (completed, *(n for n in closed_together if n != completed))
        subtasks = [s for s in await self._discover(parent) if s.number not in known_closed]
        if not subtasks:
            self.logger.info("No remaining subtasks found")
            await self._comment(parent, render_progress_comment(completed, [], []))
            return RunOutcome("completion", parent=parent, message="no remaining subtasks")

        try:
            analyses, _ = await self._resolve(subtasks, known_closed=known_closed)
        except CyclicDependencyError as exc:
            return await self._report_cycle(parent, "completion", exc)

        newly_ready = advance(completed, analyses)
        self.logger.info(f"Found {len(newly_ready)} newly unblocked subtask(s)")
        results = await _offload(assign_subtasks, self.store, assignee, newly_ready)
        await self._comment(parent, render_progress_comment(completed, newly_ready, analyses))
        report = replace(partition(analyses), ready=tuple(newly_ready))
        return RunOutcome(
            "completion",
            parent=parent,
            report=report,
            assignments=results,
        )

    async def process_event(self, context: EventContext) -> list[RunOutcome]:
        if context.kind == PARENT_ASSIGNMENT and context.parent is not None:
            assignee = context.assignee or self.config.agent_login
            return [await self.handle_parent_assignment(context.parent, assignee)]
        if context.kind == SUBTASK_COMPLETION:
            # One pass per completed issue, in the order the event lists them
            return [
                await self.handle_subtask_completion(number, closed_together=context.completed)
                for number in context.completed
            ]
        self.logger.info("Event is not an agent assignment or subtask completion, skipping")
        return [RunOutcome("skipped", message=f"{context.event_name}/{context.action}")]


__all__ = ["SubtaskManager"]
