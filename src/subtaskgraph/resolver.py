"""Readiness resolution and frontier advancement.

A subtask is ready when it has no assignee and every dependency is closed.
Dependency state comes from an external lookup; a missing issue or a failed
lookup counts as *open* so a subtask is never handed out early.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable, Sequence
from typing import Protocol

from .errors import classify_error
from .graph import build_graph, ensure_acyclic
from .logging import get_logger
from .models import IssueState, ResolutionReport, Subtask, SubtaskAnalysis


class StateLookup(Protocol):
    async def get_issue_state(self, number: int) -> IssueState | None: ...


class _PassLookup:
    """Memoises lookups for the duration of one ``analyze`` call only."""

    def __init__(self, lookup: StateLookup, known_closed: Iterable[int]):
        self._lookup = lookup
        self._known_closed = frozenset(known_closed)
        self._pending: dict[int, asyncio.Future[bool]] = {}
        self._logger = get_logger()

    def is_closed(self, number: int) -> Awaitable[bool]:
        future = self._pending.get(number)
        if future is None:
            future = asyncio.ensure_future(self._fetch(number))
            self._pending[number] = future
        return future

    async def _fetch(self, number: int) -> bool:
        if number in self._known_closed:
            return True
        try:
            state = await self._lookup.get_issue_state(number)
        except Exception as exc:  # fail closed: a failed read leaves the dependency open
            info = classify_error(exc)
            self._logger.warning(
                f"Could not check status of issue #{number}: {info.message}",
                issue_number=number,
                category=info.category,
            )
            return False
        if state is None:
            self._logger.warning(
                f"Dependency #{number} not found, treating as open", issue_number=number
            )
            return False
        return state is IssueState.CLOSED


async def _analyze_one(subtask: Subtask, lookup: _PassLookup) -> SubtaskAnalysis:
    logger = get_logger()
    deps = tuple(subtask.dependencies)
    if subtask.has_assignees:
        logger.info(f"Subtask #{subtask.number} already has assignees, skipping")
        return SubtaskAnalysis(
            number=subtask.number,
            title=subtask.title,
            state=subtask.state,
            dependencies=deps,
            has_assignees=True,
            is_ready=False,
            unresolved_dependencies=deps,
        )
    if not deps:
        logger.info(f"Subtask #{subtask.number} has no dependencies, ready")
        return SubtaskAnalysis(
            number=subtask.number,
            title=subtask.title,
            state=subtask.state,
            dependencies=(),
            has_assignees=False,
            is_ready=True,
            unresolved_dependencies=(),
        )

    closed = await asyncio.gather(*(lookup.is_closed(dep) for dep in deps))
    unresolved = tuple(dep for dep, is_closed in zip(deps, closed) if not is_closed)
    if unresolved:
        logger.info(
            f"Subtask #{subtask.number} has {len(unresolved)} unresolved dependencies: "
            + ", ".join(f"#{d}" for d in unresolved)
        )
    else:
        logger.info(f"Subtask #{subtask.number} has all dependencies resolved, ready")
    return SubtaskAnalysis(
        number=subtask.number,
        title=subtask.title,
        state=subtask.state,
        dependencies=deps,
        has_assignees=False,
        is_ready=not unresolved,
        unresolved_dependencies=unresolved,
    )


async def analyze(
    subtasks: Sequence[Subtask],
    lookup: StateLookup,
    *,
    known_closed: Iterable[int] = (),
) -> list[SubtaskAnalysis]:
    """Analyse every subtask, preserving input order.

    ``known_closed`` marks issues closed without asking the lookup, for the
    issue whose completion triggered this pass.
    """
    pass_lookup = _PassLookup(lookup, known_closed)
    results = await asyncio.gather(*(_analyze_one(s, pass_lookup) for s in subtasks))
    return list(results)


def advance(completed: int, analyses: Iterable[SubtaskAnalysis]) -> list[SubtaskAnalysis]:
    """Subtasks unlocked by ``completed``: unassigned, ready, and depending on it.

    Call on analyses computed after ``completed`` was closed.
    """
    return [
        a
        for a in analyses
        if not a.has_assignees and a.is_ready and completed in a.dependencies
    ]


def partition(analyses: Iterable[SubtaskAnalysis]) -> ResolutionReport:
    ready: list[SubtaskAnalysis] = []
    blocked: list[SubtaskAnalysis] = []
    assigned: list[SubtaskAnalysis] = []
    for a in analyses:
        if a.has_assignees:
            assigned.append(a)
        elif a.is_ready:
            ready.append(a)
        else:
            blocked.append(a)
    return ResolutionReport(ready=tuple(ready), blocked=tuple(blocked), assigned=tuple(assigned))


async def resolve(
    subtasks: Sequence[Subtask],
    lookup: StateLookup,
    *,
    known_closed: Iterable[int] = (),
) -> tuple[list[SubtaskAnalysis], ResolutionReport]:
    """Cycle check then readiness for one batch.

    Raises ``CyclicDependencyError`` before any lookup when the batch loops.
    """
    ensure_acyclic(build_graph(subtasks))
    analyses = await analyze(subtasks, lookup, known_closed=known_closed)
    return analyses, partition(analyses)


__all__ = ["StateLookup", "advance", "analyze", "partition", "resolve"]
