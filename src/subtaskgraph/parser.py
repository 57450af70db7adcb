"""Dependency and reference parsing for issue bodies and labels.

Markers recognised in a body (case-insensitive, optional colon)::

    depends on #12        depends-on: #12
    requires #12          requires: #12, #13
    blocked by #12

Each marker may be followed by a comma separated list of references. Labels of
the form ``depends-on:#12`` / ``depends-on:12`` count as well. Anything that is
not ``#<digits>`` (``#abc``, ``#12abc``) is ignored rather than rejected.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from typing import NamedTuple

_REF_LIST = r"(?P<refs>#\d+\b(?:\s*,\s*#\d+\b)*)"
_REF = re.compile(r"#(\d+)\b")

# (source name, marker regex); order only matters for ties at the same offset
BODY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("depends-on", re.compile(r"\bdepends[- ]on:?\s*" + _REF_LIST, re.IGNORECASE)),
    ("requires", re.compile(r"\brequires:?\s*" + _REF_LIST, re.IGNORECASE)),
    ("blocked-by", re.compile(r"\bblocked\s+by:?\s*" + _REF_LIST, re.IGNORECASE)),
)
LABEL_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("label", re.compile(r"depends-on:\s*#?(\d+)", re.IGNORECASE)),
)

_CLOSING_RE = re.compile(
    r"\b(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?):?\s+#(\d+)\b", re.IGNORECASE
)
_MENTION_RE = re.compile(r"#(\d+)")


class DependencyMatch(NamedTuple):
    source: str
    number: int


def _body_matches(body: str) -> Iterator[DependencyMatch]:
    found: list[tuple[int, int, DependencyMatch]] = []
    for rank, (source, pattern) in enumerate(BODY_PATTERNS):
        for m in pattern.finditer(body):
            base = m.start("refs")
            for ref in _REF.finditer(m.group("refs")):
                found.append((base + ref.start(), rank, DependencyMatch(source, int(ref.group(1)))))
    found.sort(key=lambda item: (item[0], item[1]))
    for _, _, match in found:
        yield match


def _label_matches(labels: Iterable[str]) -> Iterator[DependencyMatch]:
    for label in labels:
        text = label.strip()
        for source, pattern in LABEL_PATTERNS:
            m = pattern.fullmatch(text)
            if m:
                yield DependencyMatch(source, int(m.group(1)))


def iter_dependency_matches(body: str | None, labels: Iterable[str] = ()) -> Iterator[DependencyMatch]:
    """Yield every dependency marker in body order, then label order."""
    if body:
        yield from _body_matches(body)
    yield from _label_matches(labels)


def parse_dependencies(
    body: str | None, labels: Iterable[str] = (), *, exclude: int | None = None
) -> tuple[int, ...]:
    """Return the deduplicated dependency numbers in first-seen order.

    ``exclude`` is the subtask's own number; a self reference is dropped.
    """
    seen: dict[int, None] = {}
    for match in iter_dependency_matches(body, labels):
        if match.number != exclude:
            seen.setdefault(match.number, None)
    return tuple(seen)


def parse_closing_references(text: str | None) -> tuple[int, ...]:
    """Issue numbers a PR body closes (``fixes #12``, ``Closes #13``)."""
    if not text:
        return ()
    seen: dict[int, None] = {}
    for m in _CLOSING_RE.finditer(text):
        seen.setdefault(int(m.group(1)), None)
    return tuple(seen)


def parse_parent_label(labels: Iterable[str], prefix: str = "parent:") -> int | None:
    low_prefix = prefix.lower()
    for label in labels:
        text = label.strip()
        if not text.lower().startswith(low_prefix):
            continue
        value = text[len(prefix):].strip().lstrip("#")
        if value.isdigit():
            return int(value)
    return None


def mentions_parent(body: str | None, parent: int) -> bool:
    if not body:
        return False
    return re.search(rf"#{parent}(?!\d)", body) is not None


def parse_mentions(body: str | None) -> tuple[int, ...]:
    """Every `#N` in a body, deduplicated in first-seen order."""
    if not body:
        return ()
    seen: dict[int, None] = {}
    for m in _MENTION_RE.finditer(body):
        seen.setdefault(int(m.group(1)), None)
    return tuple(seen)


__all__ = [
    "BODY_PATTERNS",
    "LABEL_PATTERNS",
    "DependencyMatch",
    "iter_dependency_matches",
    "mentions_parent",
    "parse_closing_references",
    "parse_dependencies",
    "parse_mentions",
    "parse_parent_label",
]
