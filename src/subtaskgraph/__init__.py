"""subtaskgraph - dependency-aware subtask assignment for GitHub issues.

High-level public API:

from subtaskgraph import SnapshotIssueStore, SubtaskManager

store = SnapshotIssueStore.from_payloads(issues_json)
manager = SubtaskManager(store)
outcome = asyncio.run(manager.handle_parent_assignment(100, "copilot"))
print(outcome.report.ready_numbers)

The pure pieces (``parse_dependencies``, ``build_graph``, ``detect_cycle``,
``analyze``, ``advance``) can be used on their own; the CLI and the GitHub
Action entry point are thin layers over ``SubtaskManager``.
"""

from __future__ import annotations

from .config import ManagerConfig, load_config
from .errors import CyclicDependencyError
from .graph import DependencyGraph, build_graph, detect_cycle, format_cycle
from .issue_store import GitHubIssueStore, SnapshotIssueStore
from .manager import SubtaskManager
from .models import Issue, IssueState, ResolutionReport, Subtask, SubtaskAnalysis
from .parser import parse_dependencies
from .resolver import advance, analyze, partition, resolve

__version__ = "0.2.0"

__all__ = [
    "CyclicDependencyError",
    "DependencyGraph",
    "GitHubIssueStore",
    "Issue",
    "IssueState",
    "ManagerConfig",
    "ResolutionReport",
    "SnapshotIssueStore",
    "Subtask",
    "SubtaskAnalysis",
    "SubtaskManager",
    "advance",
    "analyze",
    "build_graph",
    "detect_cycle",
    "format_cycle",
    "load_config",
    "parse_dependencies",
    "partition",
    "resolve",
    "__version__",
]
