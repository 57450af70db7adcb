from subtaskgraph.comments import (
    render_cycle_comment,
    render_progress_comment,
    render_status_comment,
    render_step_summary,
)
from subtaskgraph.models import IssueState, SubtaskAnalysis


def _analysis(number, title, deps=(), unresolved=(), assigned=False):
    return SubtaskAnalysis(
        number=number,
        title=title,
        state=IssueState.OPEN,
        dependencies=tuple(deps),
        has_assignees=assigned,
        is_ready=not assigned and not unresolved,
        unresolved_dependencies=tuple(unresolved),
    )


SCHEMA = _analysis(101, "Schema")
API = _analysis(102, "API", deps=(101,), unresolved=(101,))
DOCS = _analysis(103, "Docs", assigned=True)


def test_status_comment_lists_ready_and_waiting():
    body = render_status_comment("copilot", [SCHEMA], [SCHEMA, API, DOCS])
    assert body == (
        "🤖 **Copilot Subtask Manager**\n\n"
        "copilot has been assigned to 1 ready subtask(s):\n\n"
        "- [ ] #101 - Schema\n\n"
        "**Waiting for Dependencies:**\n"
        "- [ ] #102 - API (depends on: #101)\n\n"
        "_These will be automatically assigned as dependencies are completed._\n"
    )


def test_status_comment_when_nothing_is_ready():
    body = render_status_comment("copilot", [], [API, DOCS])
    assert "Found 2 subtask(s), but none are ready to assign:" in body
    assert "**Already Assigned:**\n- [ ] #103 - Docs" in body
    assert "**Blocked by Dependencies:**\n- [ ] #102 - API (depends on: #101)" in body


def test_progress_comment_without_new_assignments():
    body = render_progress_comment(101, [], [API])
    assert body.startswith("🤖 **Subtask Completed**\n\nSubtask #101 has been completed! ✅\n")
    assert "No additional subtasks are ready to assign at this time." in body
    assert "**Still Waiting:**\n- [ ] #102 - API (depends on: #101)\n" in body


def test_progress_comment_with_new_assignments():
    ready_api = _analysis(102, "API", deps=(101,))
    body = render_progress_comment(101, [ready_api], [ready_api, DOCS])
    assert "**Newly Assigned Subtasks:**\n- [ ] #102 - API\n" in body
    assert "Still Waiting" not in body


def test_cycle_comment():
    assert render_cycle_comment((1, 2, 1)) == (
        "🤖 **Copilot Subtask Manager - Error**\n\n"
        "Circular dependency detected: #1 → #2 → #1\n\n"
        "Please fix the circular dependency before proceeding.\n"
    )


def test_step_summary_table():
    table = render_step_summary([SCHEMA], [SCHEMA, API, DOCS])
    assert "| #101 Schema | ready | - |" in table
    assert "| #102 API | blocked | #101 |" in table
    assert "| #103 Docs | assigned | - |" in table
