"""Async access to the blocking issue store.

Dependency-state reads are independent, so the resolver may issue many at
once. ``AsyncIssueStateLookup`` runs them on a bounded thread pool so the
event loop never blocks on ``requests``.
"""

from __future__ import annotations

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from types import TracebackType

from .issue_store import IssueStore, get_issue_state
from .logging import get_logger
from .models import IssueState


class ConcurrencyConfig:
    """Configuration for concurrency settings."""

    def __init__(self, enabled: bool = True, max_workers: int = 4):
        self.enabled = enabled
        self.max_workers = max_workers


class AsyncIssueStateLookup:
    """Implements the resolver's ``StateLookup`` over a synchronous store."""

    def __init__(self, store: IssueStore, config: ConcurrencyConfig | None = None):
        self.store = store
        self.config = config or ConcurrencyConfig()
        self.logger = get_logger()
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> AsyncIssueStateLookup:
        if self.config.enabled:
            self._executor = ThreadPoolExecutor(max_workers=max(1, self.config.max_workers))
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    async def __aenter__(self) -> AsyncIssueStateLookup:
        return self.__enter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)

    async def get_issue_state(self, number: int) -> IssueState | None:
        call = functools.partial(get_issue_state, self.store, number)
        if not self.config.enabled:
            return call()
        self.logger.debug(f"Looking up state of #{number}", issue_number=number)
        loop = asyncio.get_running_loop()
        # Without __enter__ the loop's default executor is used
        return await loop.run_in_executor(self._executor, call)


__all__ = ["AsyncIssueStateLookup", "ConcurrencyConfig"]
