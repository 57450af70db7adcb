"""End-to-end passes over an in-memory issue store."""

from __future__ import annotations

import asyncio

from conftest import FakeLookup, issue_payload
from subtaskgraph.config import ManagerConfig
from subtaskgraph.events import EventContext
from subtaskgraph.issue_store import SnapshotIssueStore
from subtaskgraph.manager import SubtaskManager
from subtaskgraph.models import IssueState


def _scenario_store() -> SnapshotIssueStore:
    parent = ["parent:100"]
    return SnapshotIssueStore.from_payloads(
        [
            issue_payload(100, "Epic"),
            issue_payload(101, "Schema", labels=parent),
            issue_payload(102, "API", body="Depends on #101", labels=parent),
            issue_payload(103, "Docs", labels=parent),
            issue_payload(104, "Release", body="Requires: #102, #103", labels=parent),
            issue_payload(200, "Unrelated"),
        ]
    )


def test_dependency_chain_is_assigned_in_waves():
    store = _scenario_store()
    manager = SubtaskManager(store)

    first = asyncio.run(manager.handle_parent_assignment(100, "copilot"))
    assert first.report is not None
    assert first.report.ready_numbers == [101, 103]
    assert [(a.number, a.unresolved_dependencies) for a in first.report.blocked] == [
        (102, (101,)),
        (104, (102, 103)),
    ]
    assert store.assignments == [(101, "copilot"), (103, "copilot")]
    parent_comment = store.comments[-1]
    assert parent_comment[0] == 100
    assert "copilot has been assigned to 2 ready subtask(s)" in parent_comment[1]
    assert "- [ ] #104 - Release (depends on: #102, #103)" in parent_comment[1]

    store.close(101)
    second = asyncio.run(manager.handle_subtask_completion(101))
    assert second.parent == 100
    assert second.report is not None
    assert second.report.ready_numbers == [102]
    assert [(a.number, a.unresolved_dependencies) for a in second.report.blocked] == [
        (104, (102, 103))
    ]
    assert store.assignments[-1] == (102, "copilot")

    store.close(103)
    third = asyncio.run(manager.handle_subtask_completion(103))
    assert third.report is not None
    assert third.report.ready_numbers == []
    assert [(a.number, a.unresolved_dependencies) for a in third.report.blocked] == [(104, (102,))]

    store.close(102)
    fourth = asyncio.run(manager.handle_subtask_completion(102))
    assert fourth.report is not None
    assert fourth.report.ready_numbers == [104]
    assert store.assignments[-1] == (104, "copilot")
    assert "Subtask #102 has been completed! ✅" in store.comments[-1][1]


def test_completion_treats_completed_issue_as_closed():
    # PR merged but the linked issue is not closed yet
    store = _scenario_store()
    outcome = asyncio.run(SubtaskManager(store).handle_subtask_completion(101))
    assert outcome.report is not None
    assert outcome.report.ready_numbers == [102]


def test_cycle_aborts_batch_and_comments_on_parent():
    store = SnapshotIssueStore.from_payloads(
        [
            issue_payload(300, "Epic"),
            issue_payload(301, body="Part of #300"),
            issue_payload(302, body="Part of #300\nblocked by #303"),
            issue_payload(303, body="Part of #300\ndepends on #302"),
        ]
    )
    lookup = FakeLookup()
    outcome = asyncio.run(SubtaskManager(store, lookup=lookup).handle_parent_assignment(300, "copilot"))
    assert outcome.failed
    assert outcome.cycle == (302, 303, 302)
    assert outcome.report is None
    assert store.assignments == []
    assert lookup.calls == []
    [(number, body)] = store.comments
    assert number == 300
    assert "Circular dependency detected: #302 → #303 → #302" in body


def test_parent_without_subtasks_gets_status_comment():
    store = SnapshotIssueStore.from_payloads([issue_payload(5, "Lonely")])
    outcome = asyncio.run(SubtaskManager(store).handle_parent_assignment(5, "copilot"))
    assert not outcome.failed
    assert store.comments == [
        (
            5,
            "🤖 **Copilot Subtask Manager**\n\n"
            "No subtasks found for this issue. copilot will work on the parent issue directly.\n",
        )
    ]


def test_assignment_to_a_subtask_is_skipped():
    store = _scenario_store()
    outcome = asyncio.run(SubtaskManager(store).handle_parent_assignment(101, "copilot"))
    assert outcome.action == "skipped"
    assert store.comments == []


def test_completion_of_non_subtask_is_skipped():
    store = _scenario_store()
    outcome = asyncio.run(SubtaskManager(store).handle_subtask_completion(200))
    assert outcome.action == "skipped"
    assert store.assignments == []


def test_comments_can_be_disabled():
    store = _scenario_store()
    manager = SubtaskManager(store, ManagerConfig(post_comments=False))
    asyncio.run(manager.handle_parent_assignment(100, "copilot"))
    assert store.comments == []
    assert len(store.assignments) == 2


def test_process_event_dispatches_completions_in_order():
    store = _scenario_store()
    store.close(101)
    store.close(103)
    context = EventContext("pull_request", "merged", "subtask-completion", completed=(101, 103))
    outcomes = asyncio.run(SubtaskManager(store).process_event(context))
    assert [o.parent for o in outcomes] == [100, 100]
    assert outcomes[0].report is not None and outcomes[0].report.ready_numbers == [102]
    assert store.issues[102].state is IssueState.OPEN


def test_process_event_ignores_other_events():
    outcomes = asyncio.run(SubtaskManager(_scenario_store()).process_event(EventContext("push", "")))
    assert [o.action for o in outcomes] == ["skipped"]


class _FlakyStore(SnapshotIssueStore):
    def assign_actor(self, number: int, login: str) -> bool:
        if number == 101:
            raise RuntimeError("connection reset")
        return super().assign_actor(number, login)


def test_failed_assignment_does_not_stop_the_batch():
    store = _FlakyStore(issues=_scenario_store().issues)
    outcome = asyncio.run(SubtaskManager(store).handle_parent_assignment(100, "copilot"))
    assert [(r.number, r.success) for r in outcome.assignments] == [(101, False), (103, True)]
    assert outcome.assignments[0].error == "connection reset"
    assert not outcome.failed


def test_issues_closed_by_one_event_count_as_closed_in_every_pass():
    parent = ["parent:100"]
    store = SnapshotIssueStore.from_payloads(
        [
            issue_payload(100, "Epic"),
            issue_payload(101, "Schema", labels=parent),
            issue_payload(103, "Docs", labels=parent),
            issue_payload(104, "Release", body="Requires: #101, #103", labels=parent),
        ]
    )
    # GitHub has not closed #101 and #103 yet when the merge event is handled
    context = EventContext("pull_request", "merged", "subtask-completion", completed=(101, 103))
    outcomes = asyncio.run(SubtaskManager(store).process_event(context))

    assert [o.report.ready_numbers for o in outcomes if o.report] == [[104], []]
    assert store.assignments == [(104, "copilot")]


def test_assignment_to_body_linked_subtask_is_skipped():
    store = SnapshotIssueStore.from_payloads(
        [
            issue_payload(100, "Epic", assignees=["copilot"]),
            issue_payload(101, "Schema", body="Part of #100"),
        ]
    )
    outcome = asyncio.run(SubtaskManager(store).handle_parent_assignment(101, "Copilot"))
    assert outcome.action == "skipped"
    assert store.comments == []


def test_mention_of_unassigned_issue_is_not_a_parent():
    store = SnapshotIssueStore.from_payloads(
        [issue_payload(5, "Standalone", body="Related to #6"), issue_payload(6, "Other")]
    )
    outcome = asyncio.run(SubtaskManager(store).handle_parent_assignment(5, "copilot"))
    assert outcome.action == "assignment"
    assert len(store.comments) == 1


def test_passes_are_timed(capsys):
    store = _scenario_store()
    asyncio.run(SubtaskManager(store).handle_parent_assignment(100, "copilot"))
    asyncio.run(SubtaskManager(store).handle_subtask_completion(101))

    out = capsys.readouterr().out
    assert "Operation: parent_assignment_start" in out
    assert "Performance: parent_assignment completed in" in out
    assert "Performance: subtask_completion completed in" in out
