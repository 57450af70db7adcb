"""Issue store backends.

``GitHubIssueStore`` talks to the REST API; ``SnapshotIssueStore`` serves a
fixed list of issue payloads (an export, a fixture) and records writes
instead of performing them. Both expose the same synchronous surface; the
async resolver reaches them through :mod:`subtaskgraph.concurrency`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from .errors import classify_error
from .github_rest import GitHubAPIError, GitHubRestClient
from .logging import get_logger
from .models import Issue, IssueState, Subtask
from .parser import mentions_parent, parse_dependencies, parse_mentions, parse_parent_label

DEFAULT_PARENT_PREFIX = "parent:"
NOT_FOUND = 404


class IssueStore(Protocol):
    def list_open_issues(self) -> list[Issue]: ...

    def get_issue(self, number: int) -> Issue | None: ...

    def assign_actor(self, number: int, login: str) -> bool: ...

    def post_comment(self, number: int, body: str) -> bool: ...


def is_subtask_of(issue: Issue, parent: int, prefix: str = DEFAULT_PARENT_PREFIX) -> bool:
    if issue.number == parent:
        return False
    if parse_parent_label(issue.labels, prefix) == parent:
        return True
    # "depends on #N" is a dependency edge, not a parent back-reference
    if parent in parse_dependencies(issue.body, issue.labels):
        return False
    return mentions_parent(issue.body, parent)


def to_subtask(issue: Issue) -> Subtask:
    return Subtask(
        issue=issue,
        dependencies=parse_dependencies(issue.body, issue.labels, exclude=issue.number),
    )


def list_candidate_subtasks(
    store: IssueStore, parent: int, *, prefix: str = DEFAULT_PARENT_PREFIX
) -> list[Subtask]:
    """Open issues belonging to ``parent`` (``parent:N`` label or ``#N`` in the body)."""
    logger = get_logger()
    logger.info(f"Looking for subtasks of parent issue #{parent}")
    subtasks = [
        to_subtask(issue)
        for issue in store.list_open_issues()
        if is_subtask_of(issue, parent, prefix)
    ]
    logger.info(f"Found {len(subtasks)} subtask(s)")
    return subtasks


def get_issue_state(store: IssueStore, number: int) -> IssueState | None:
    issue = store.get_issue(number)
    return issue.state if issue is not None else None


def find_parent(
    store: IssueStore, number: int, *, prefix: str = DEFAULT_PARENT_PREFIX
) -> int | None:
    issue = store.get_issue(number)
    if issue is None:
        return None
    return parse_parent_label(issue.labels, prefix)


def find_assigning_parent(
    store: IssueStore, number: int, assignee: str, *, prefix: str = DEFAULT_PARENT_PREFIX
) -> int | None:
    """Parent whose pass would have assigned `assignee` to issue `number`.

    A `parent:N` label wins. Otherwise the first open issue the body mentions
    (not as a dependency) that already has `assignee` on it.
    """
    issue = store.get_issue(number)
    if issue is None:
        return None
    labelled = parse_parent_label(issue.labels, prefix)
    if labelled is not None:
        return labelled
    login = assignee.lower()
    for candidate in parse_mentions(issue.body):
        if not is_subtask_of(issue, candidate, prefix):
            continue
        parent = store.get_issue(candidate)
        if parent is None or parent.state is not IssueState.OPEN:
            continue
        if login in (a.lower() for a in parent.assignees):
            return candidate
    return None


class GitHubIssueStore:
    """Issue store over :class:`GitHubRestClient`; ``dry_run`` logs writes only."""

    def __init__(self, client: GitHubRestClient, *, dry_run: bool = False):
        self.client = client
        self.dry_run = dry_run
        self.logger = get_logger()

    def list_open_issues(self) -> list[Issue]:
        return [
            Issue.from_api(entry)
            for entry in self.client.list_issues(state="open")
            # the issues endpoint also returns pull requests
            if "pull_request" not in entry
        ]

    def get_issue(self, number: int) -> Issue | None:
        try:
            return Issue.from_api(self.client.get_issue(number))
        except GitHubAPIError as exc:
            if exc.status == NOT_FOUND:
                return None
            raise

    def assign_actor(self, number: int, login: str) -> bool:
        if self.dry_run:
            self.logger.log_subtask_action("assign", number, dry_run=True, assignee=login)
            return True
        try:
            self.client.add_assignees(number, [login])
        except GitHubAPIError as exc:
            info = classify_error(exc)
            self.logger.log_error(
                f"Failed to assign {login} to subtask #{number}",
                error=info.message,
                category=info.category,
                issue_number=number,
            )
            return False
        self.logger.log_subtask_action("assign", number, assignee=login)
        return True

    def post_comment(self, number: int, body: str) -> bool:
        if self.dry_run:
            self.logger.info(f"DRY-RUN comment on #{number}", issue_number=number, body=body)
            return True
        try:
            self.client.create_comment(number, body)
        except GitHubAPIError as exc:
            info = classify_error(exc)
            self.logger.log_error(
                f"Failed to comment on #{number}",
                error=info.message,
                category=info.category,
                issue_number=number,
            )
            return False
        return True


@dataclass
class SnapshotIssueStore:
    """In-memory store over issue payloads; writes are recorded, not sent."""

    issues: dict[int, Issue] = field(default_factory=dict)
    assignments: list[tuple[int, str]] = field(default_factory=list)
    comments: list[tuple[int, str]] = field(default_factory=list)

    @classmethod
    def from_payloads(cls, entries: Iterable[Mapping[str, Any]]) -> SnapshotIssueStore:
        issues: dict[int, Issue] = {}
        for entry in entries:
            if "pull_request" in entry:
                continue
            issue = Issue.from_api(entry)
            issues[issue.number] = issue
        return cls(issues=issues)

    def list_open_issues(self) -> list[Issue]:
        return [i for i in self.issues.values() if i.state is IssueState.OPEN]

    def get_issue(self, number: int) -> Issue | None:
        return self.issues.get(number)

    def assign_actor(self, number: int, login: str) -> bool:
        issue = self.issues.get(number)
        if issue is None:
            return False
        if login not in issue.assignees:
            self.issues[number] = replace(issue, assignees=(*issue.assignees, login))
        self.assignments.append((number, login))
        return True

    def post_comment(self, number: int, body: str) -> bool:
        self.comments.append((number, body))
        return True

    def close(self, number: int) -> None:
        self.issues[number] = replace(self.issues[number], state=IssueState.CLOSED)


__all__ = [
    "GitHubIssueStore",
    "IssueStore",
    "SnapshotIssueStore",
    "find_assigning_parent",
    "find_parent",
    "get_issue_state",
    "is_subtask_of",
    "list_candidate_subtasks",
    "to_subtask",
]
