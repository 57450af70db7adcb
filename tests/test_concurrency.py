import asyncio

import pytest

from conftest import issue_payload
from subtaskgraph.concurrency import AsyncIssueStateLookup, ConcurrencyConfig
from subtaskgraph.issue_store import SnapshotIssueStore
from subtaskgraph.models import IssueState


def _store() -> SnapshotIssueStore:
    return SnapshotIssueStore.from_payloads(
        [issue_payload(1, state="closed"), issue_payload(2)]
    )


def test_concurrency_config_defaults():
    config = ConcurrencyConfig()
    assert config.enabled is True
    assert config.max_workers == 4


@pytest.mark.asyncio
async def test_lookup_runs_on_thread_pool():
    async with AsyncIssueStateLookup(_store(), ConcurrencyConfig(max_workers=2)) as lookup:
        states = await asyncio.gather(
            lookup.get_issue_state(1), lookup.get_issue_state(2), lookup.get_issue_state(3)
        )
    assert states == [IssueState.CLOSED, IssueState.OPEN, None]
    assert lookup._executor is None


def test_lookup_without_concurrency_calls_store_inline():
    lookup = AsyncIssueStateLookup(_store(), ConcurrencyConfig(enabled=False))
    with lookup:
        assert lookup._executor is None
        assert asyncio.run(lookup.get_issue_state(1)) is IssueState.CLOSED
