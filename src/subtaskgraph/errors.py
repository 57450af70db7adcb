"""Error taxonomy & redaction.

Public API:
- SubtaskGraphError / CyclicDependencyError / ConfigError
- classify_error(exc) -> ErrorInfo
- redact(text) -> str

Only a cycle is a hard failure. Lookup problems (missing issue, rate limit,
network) are classified for logging and then folded into "still open" by the
resolver.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"ghs_[A-Za-z0-9]{20,40}"),  # Actions installation tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
]

_REDACTION_PLACEHOLDER = "<redacted>"


class SubtaskGraphError(RuntimeError):
    """Base class for errors raised by subtaskgraph."""


class ConfigError(SubtaskGraphError):
    pass


class CyclicDependencyError(SubtaskGraphError):
    """Raised when the subtasks of one parent depend on each other in a loop."""

    def __init__(self, cycle: Sequence[int]):
        self.cycle = tuple(cycle)
        path = " → ".join(f"#{n}" for n in self.cycle)
        super().__init__(f"Circular dependency detected: {path}")


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace token-looking substrings with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - HTTP 404 -> 'github.not_found'
    - rate limit wording or HTTP 429 -> 'github.rate_limit', transient
    - network-y keywords -> 'network', transient
    - fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    status = getattr(exc, "status", None)
    name = exc.__class__.__name__

    if status == 404:  # noqa: PLR2004
        return ErrorInfo("github.not_found", redact(msg), name, details={"status": status})
    if status == 429 or "rate limit" in low or "secondary rate" in low:  # noqa: PLR2004
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ConfigError",
    "CyclicDependencyError",
    "ErrorInfo",
    "SubtaskGraphError",
    "classify_error",
    "redact",
]
