from __future__ import annotations

import asyncio

import pytest

from conftest import FakeLookup
from subtaskgraph.errors import CyclicDependencyError
from subtaskgraph.models import Issue, IssueState, Reason, Subtask
from subtaskgraph.resolver import advance, analyze, partition, resolve

OPEN = IssueState.OPEN
CLOSED = IssueState.CLOSED


def _subtask(number: int, *deps: int, assignees: tuple[str, ...] = ()) -> Subtask:
    return Subtask(
        issue=Issue(number=number, title=f"Task {number}", assignees=assignees),
        dependencies=deps,
    )


def test_no_dependencies_is_ready():
    lookup = FakeLookup()
    [analysis] = asyncio.run(analyze([_subtask(1)], lookup))
    assert analysis.is_ready
    assert analysis.unresolved_dependencies == ()
    assert analysis.reason is Reason.NO_DEPENDENCIES
    assert lookup.calls == []


def test_all_dependencies_closed():
    lookup = FakeLookup({10: CLOSED, 11: CLOSED})
    [analysis] = asyncio.run(analyze([_subtask(1, 10, 11)], lookup))
    assert analysis.is_ready
    assert analysis.unresolved_dependencies == ()
    assert analysis.reason is Reason.DEPENDENCIES_RESOLVED


def test_one_open_dependency_blocks():
    lookup = FakeLookup({10: CLOSED, 11: OPEN})
    [analysis] = asyncio.run(analyze([_subtask(1, 10, 11)], lookup))
    assert not analysis.is_ready
    assert analysis.unresolved_dependencies == (11,)
    assert analysis.reason is Reason.BLOCKED


def test_assigned_subtask_is_never_ready():
    lookup = FakeLookup({10: CLOSED})
    analyses = asyncio.run(
        analyze([_subtask(1, 10, assignees=("octocat",)), _subtask(2, assignees=("copilot",))], lookup)
    )
    assert [a.is_ready for a in analyses] == [False, False]
    # unfiltered: the closed dependency is still listed
    assert analyses[0].unresolved_dependencies == (10,)
    assert analyses[0].reason is Reason.ALREADY_ASSIGNED
    assert lookup.calls == []


def test_missing_and_failing_lookups_fail_closed():
    lookup = FakeLookup({10: CLOSED}, failing={12})
    [analysis] = asyncio.run(analyze([_subtask(1, 10, 11, 12)], lookup))
    assert not analysis.is_ready
    assert analysis.unresolved_dependencies == (11, 12)


def test_known_closed_skips_lookup():
    lookup = FakeLookup({10: OPEN})
    [analysis] = asyncio.run(analyze([_subtask(1, 10)], lookup, known_closed=[10]))
    assert analysis.is_ready
    assert lookup.calls == []


def test_shared_dependency_is_looked_up_once_per_pass():
    lookup = FakeLookup({10: CLOSED})
    asyncio.run(analyze([_subtask(1, 10), _subtask(2, 10), _subtask(3, 10)], lookup))
    assert lookup.calls == [10]


def test_order_is_preserved_and_analyze_is_idempotent():
    subtasks = [_subtask(3, 1), _subtask(1), _subtask(2, 1, 4)]
    lookup = FakeLookup({1: OPEN, 4: CLOSED})
    first = asyncio.run(analyze(subtasks, lookup))
    second = asyncio.run(analyze(subtasks, lookup))
    assert [a.number for a in first] == [3, 1, 2]
    assert first == second


def test_advance_only_reports_subtasks_unlocked_by_completion():
    subtasks = [_subtask(1, 10), _subtask(2, 11), _subtask(3, 10, assignees=("octocat",)), _subtask(4, 10, 12)]
    lookup = FakeLookup({10: CLOSED, 11: CLOSED, 12: OPEN})
    analyses = asyncio.run(analyze(subtasks, lookup))
    newly_ready = advance(10, analyses)
    assert [a.number for a in newly_ready] == [1]
    # input untouched
    assert [a.number for a in analyses] == [1, 2, 3, 4]


def test_partition_and_report():
    subtasks = [_subtask(1), _subtask(2, 1), _subtask(3, assignees=("copilot",))]
    analyses = asyncio.run(analyze(subtasks, FakeLookup({1: OPEN})))
    report = partition(analyses)
    assert report.ready_numbers == [1]
    assert [a.number for a in report.blocked] == [2]
    assert [a.number for a in report.assigned] == [3]
    payload = report.to_dict()
    assert payload["ready"] == [{"number": 1, "title": "Task 1", "reason": "no-dependencies"}]
    assert payload["blocked"][0]["unresolved_dependencies"] == [1]


def test_resolve_aborts_whole_batch_on_cycle():
    lookup = FakeLookup()
    subtasks = [_subtask(1), _subtask(2, 3), _subtask(3, 2)]
    with pytest.raises(CyclicDependencyError) as excinfo:
        asyncio.run(resolve(subtasks, lookup))
    assert excinfo.value.cycle == (2, 3, 2)
    assert lookup.calls == []


@pytest.mark.asyncio
async def test_resolve_returns_analyses_and_report():
    analyses, report = await resolve([_subtask(1), _subtask(2, 1)], FakeLookup({1: CLOSED}))
    assert [a.is_ready for a in analyses] == [True, True]
    assert report.ready_numbers == [1, 2]
