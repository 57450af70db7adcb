"""Centralized retry / backoff helpers.

``run_with_retries`` wraps a thunk with exponential backoff plus jitter. Only
``TransientError`` triggers a retry: the REST client raises it for rate-limit
and gateway responses and for dropped connections. Everything else
propagates immediately.

Environment overrides:
  SUBTASKGRAPH_RETRY_ATTEMPTS (default 3)
  SUBTASKGRAPH_RETRY_BASE (seconds base, default 0.5)
  SUBTASKGRAPH_RETRY_MAX_SLEEP (cap in seconds, unset = no cap)
"""

from __future__ import annotations

import os
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .logging import get_logger

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)
TRANSIENT_STATUSES = frozenset({429, 502, 503, 504})

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_JITTER = random.SystemRandom()


class TransientError(RuntimeError):
    """A failure worth retrying; ``retry_after`` carries an explicit server hint."""

    def __init__(self, message: str, *, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


def _extract_explicit_backoff(text: str) -> float | None:
    """Extract an explicit backoff in seconds (``Retry-After: 12``)."""
    if not text:
        return None
    m = _RE_RETRY_AFTER.search(text)
    if m:
        val = float(m.group(1))
        return val if val > 0 else None
    return None


def parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        val = float(value.strip())
    except ValueError:
        return _extract_explicit_backoff(value)
    return val if val > 0 else None


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


@dataclass
class RetryConfig:
    attempts: int = field(default_factory=lambda: _env_int("SUBTASKGRAPH_RETRY_ATTEMPTS", 3))
    base_sleep: float = field(default_factory=lambda: _env_float("SUBTASKGRAPH_RETRY_BASE", 0.5))


def is_transient(output: str) -> bool:
    out_lower = output.lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def is_transient_status(status: int, body: str = "") -> bool:
    if status in TRANSIENT_STATUSES:
        return True
    # GitHub reports primary/secondary rate limits as 403 with an explanatory body
    return status == 403 and is_transient(body)  # noqa: PLR2004


def _compute_sleep(attempt: int, cfg: RetryConfig, exc: TransientError) -> float:
    explicit = exc.retry_after if exc.retry_after is not None else _extract_explicit_backoff(str(exc))
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("SUBTASKGRAPH_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:  # pragma: no cover
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def run_with_retries(
    fn: Callable[[], T],
    *,
    cfg: RetryConfig | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except TransientError as exc:
            if attempt >= attempts:
                raise
            sleep_for = _compute_sleep(attempt, cfg, exc)
            get_logger().warning(
                f"transient error, attempt {attempt}/{attempts}, sleeping {sleep_for:.2f}s",
                operation="retry",
                error=str(exc),
            )
            sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = [
    "RetryConfig",
    "TransientError",
    "is_transient",
    "is_transient_status",
    "parse_retry_after",
    "run_with_retries",
]
