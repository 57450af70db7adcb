"""Pytest configuration for subtaskgraph tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from subtaskgraph import logging as sg_logging  # noqa: E402
from subtaskgraph.models import IssueState  # noqa: E402

# Ensure pytest-asyncio plugin is loaded explicitly so @pytest.mark.asyncio tests run
pytest_plugins = ["pytest_asyncio"]


@pytest.fixture(autouse=True)
def _fresh_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    # The global logger binds sys.stdout on creation; rebuild it per test so capsys sees it
    monkeypatch.setattr(sg_logging, "_GLOBAL", None)


@pytest.fixture(autouse=True)
def _clean_actions_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("GITHUB_OUTPUT", "GITHUB_STEP_SUMMARY", "GITHUB_EVENT_NAME", "GITHUB_EVENT_PATH"):
        monkeypatch.delenv(name, raising=False)


def issue_payload(
    number: int,
    title: str | None = None,
    *,
    body: str = "",
    state: str = "open",
    labels: list[str] | None = None,
    assignees: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "number": number,
        "title": title or f"Issue {number}",
        "body": body,
        "state": state,
        "labels": [{"name": name} for name in labels or []],
        "assignees": [{"login": login} for login in assignees or []],
    }


class FakeLookup:
    """StateLookup double recording every call."""

    def __init__(
        self,
        states: dict[int, IssueState] | None = None,
        failing: set[int] | None = None,
    ) -> None:
        self.states = states or {}
        self.failing = failing or set()
        self.calls: list[int] = []

    async def get_issue_state(self, number: int) -> IssueState | None:
        self.calls.append(number)
        if number in self.failing:
            raise RuntimeError("API rate limit exceeded")
        return self.states.get(number)
