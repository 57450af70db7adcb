"""subtaskgraph CLI.

Subcommands:
  run       -> process the current GitHub Actions event (assignment / completion)
  analyze   -> report ready / blocked subtasks of a parent, no writes
  assign    -> assign the agent to every ready subtask of a parent
  complete  -> treat an issue as completed and assign what it unblocks
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from subtaskgraph.actions import error_annotation, set_output, write_step_summary
from subtaskgraph.comments import render_step_summary
from subtaskgraph.concurrency import AsyncIssueStateLookup, ConcurrencyConfig
from subtaskgraph.config import ManagerConfig
from subtaskgraph.env_auth import create_env_auth_manager
from subtaskgraph.errors import ConfigError, CyclicDependencyError
from subtaskgraph.events import load_event_from_env
from subtaskgraph.github_rest import GitHubRestClient
from subtaskgraph.graph import format_cycle
from subtaskgraph.issue_store import GitHubIssueStore, IssueStore, SnapshotIssueStore, list_candidate_subtasks
from subtaskgraph.logging import get_logger
from subtaskgraph.manager import SubtaskManager
from subtaskgraph.models import RunOutcome
from subtaskgraph.resolver import resolve
from subtaskgraph.runtime import execute_command, prepare_config

REPO_HELP = "Override target repository (owner/repo)"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help="YAML config (default: subtaskgraph.config.yaml if present)")
    p.add_argument("--repo", help=REPO_HELP)
    p.add_argument("--snapshot", type=Path, help="Read issues from a JSON export instead of GitHub")


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="subtaskgraph", description="Dependency-aware subtask assignment for GitHub issues"
    )
    p.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    run = sub.add_parser("run", help="Process the GitHub Actions event that triggered this job")
    _add_common(run)
    run.add_argument("--dry-run", action="store_true")
    run.add_argument("--no-comments", action="store_true", help="Do not comment on the parent")

    an = sub.add_parser("analyze", help="Report ready and blocked subtasks without writing")
    _add_common(an)
    an.add_argument("--parent", type=int, required=True)
    an.add_argument("--json", action="store_true", help="Emit the report as JSON")

    asg = sub.add_parser("assign", help="Assign the agent to ready subtasks of a parent")
    _add_common(asg)
    asg.add_argument("--parent", type=int, required=True)
    asg.add_argument("--assignee", help="Login to assign (default: agent.login)")
    asg.add_argument("--dry-run", action="store_true")
    asg.add_argument("--no-comments", action="store_true")

    cmp_ = sub.add_parser("complete", help="Assign subtasks unblocked by a completed issue")
    _add_common(cmp_)
    cmp_.add_argument("--issue", type=int, required=True)
    cmp_.add_argument("--assignee", help="Login to assign (default: agent.login)")
    cmp_.add_argument("--dry-run", action="store_true")
    cmp_.add_argument("--no-comments", action="store_true")
    return p


def _build_store(cfg: ManagerConfig, args: argparse.Namespace) -> IssueStore:
    snapshot: Path | None = getattr(args, "snapshot", None)
    if snapshot is not None:
        try:
            data = json.loads(snapshot.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read snapshot {snapshot}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in snapshot {snapshot}: {exc}") from exc
        if not isinstance(data, list):
            raise ConfigError(f"Snapshot {snapshot} must contain a JSON list of issues")
        return SnapshotIssueStore.from_payloads(data)
    if not cfg.github_repo:
        raise ConfigError("No repository configured (github.repo, --repo or GITHUB_REPOSITORY)")
    auth = create_env_auth_manager(cfg.env_auth_load_dotenv, cfg.env_auth_dotenv_path)
    token = auth.get_github_token()
    if not token:
        raise ConfigError("No GitHub token found (INPUT_TOKEN, GITHUB_TOKEN or GH_TOKEN)")
    client = GitHubRestClient(token=token, repo=cfg.github_repo, base_url=cfg.github_api_url)
    return GitHubIssueStore(client, dry_run=cfg.dry_run)


def _emit_outcomes(outcomes: list[RunOutcome]) -> int:
    ready = [n for o in outcomes if o.report for n in o.report.ready_numbers]
    assigned = [r.number for o in outcomes for r in o.assignments if r.success]
    cycles = [format_cycle(o.cycle) for o in outcomes if o.cycle]
    set_output("ready", ",".join(str(n) for n in ready))
    set_output("assigned", ",".join(str(n) for n in assigned))
    set_output("cycle", "\n".join(cycles))
    set_output("result", json.dumps([o.to_dict() for o in outcomes]))
    for o in outcomes:
        if o.cycle:
            error_annotation(o.message)
    return 1 if any(o.failed for o in outcomes) else 0


def _cmd_run(cfg: ManagerConfig, args: argparse.Namespace) -> int:
    logger = get_logger()
    context = load_event_from_env(cfg.agent_login)
    logger.info(f"Event: {context.event_name or 'N/A'}")
    logger.info(f"Action: {context.action or 'N/A'}")
    manager = SubtaskManager(_build_store(cfg, args), cfg)
    outcomes = asyncio.run(manager.process_event(context))
    code = _emit_outcomes(outcomes)
    if code == 0:
        logger.info("✅ Action completed successfully")
    return code


def _cmd_analyze(cfg: ManagerConfig, args: argparse.Namespace) -> int:
    store = _build_store(cfg, args)
    subtasks = list_candidate_subtasks(store, args.parent, prefix=cfg.parent_label_prefix)

    async def _run() -> Any:
        concurrency = ConcurrencyConfig(cfg.concurrency_enabled, cfg.concurrency_max_workers)
        async with AsyncIssueStateLookup(store, concurrency) as lookup:
            return await resolve(subtasks, lookup)

    try:
        analyses, report = asyncio.run(_run())
    except CyclicDependencyError as exc:
        if args.json:
            print(json.dumps({"parent": args.parent, "cycle": list(exc.cycle)}, indent=2))
        else:
            print(str(exc))
        return 1

    if args.json:
        payload = {"parent": args.parent, **report.to_dict()}
        print(json.dumps(payload, indent=2))
        return 0
    print(f"Parent #{args.parent}: {len(analyses)} subtask(s)")
    for a in report.ready:
        print(f"  ready    #{a.number} {a.title} ({a.reason.value})")
    for a in report.blocked:
        deps = ", ".join(f"#{d}" for d in a.unresolved_dependencies)
        print(f"  blocked  #{a.number} {a.title} (waiting on {deps})")
    for a in report.assigned:
        print(f"  assigned #{a.number} {a.title}")
    write_step_summary(render_step_summary(report.ready, analyses))
    return 0


def _cmd_assign(cfg: ManagerConfig, args: argparse.Namespace) -> int:
    manager = SubtaskManager(_build_store(cfg, args), cfg)
    assignee = args.assignee or cfg.agent_login
    outcome = asyncio.run(manager.handle_parent_assignment(args.parent, assignee))
    return _emit_outcomes([outcome])


def _cmd_complete(cfg: ManagerConfig, args: argparse.Namespace) -> int:
    manager = SubtaskManager(_build_store(cfg, args), cfg)
    outcome = asyncio.run(manager.handle_subtask_completion(args.issue, args.assignee))
    return _emit_outcomes([outcome])


def _build_handlers(args: argparse.Namespace, cfg: ManagerConfig) -> dict[str, Any]:
    return {
        "run": lambda: _cmd_run(cfg, args),
        "analyze": lambda: _cmd_analyze(cfg, args),
        "assign": lambda: _cmd_assign(cfg, args),
        "complete": lambda: _cmd_complete(cfg, args),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = prepare_config(args)
        handler = _build_handlers(args, cfg)[args.cmd]
        return execute_command(handler, args.cmd)
    except ConfigError as exc:
        print(f"[subtaskgraph] {exc}", file=sys.stderr)
        error_annotation(str(exc))
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
