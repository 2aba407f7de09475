"""Build the static site and force-push it to the publishing branch.

Running ``deploy`` with no arguments performs the whole sequence with the
built-in defaults: the site is built with ``trunk build --public-url /pomyu``,
the output replaces the contents of the ``pages`` worktree and the ``pages``
branch is force-pushed to ``origin``.

Configuration:
- ``deploy.yaml`` in the repository root, or --config PATH / PAGES_DEPLOY_CONFIG.
- ``PAGES_DEPLOY_*`` environment variables override the file.
- PAGES_DEPLOY_LOG_LEVEL sets the log level.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from pagesdeploy.models.deploy import DeployResult
from pagesdeploy.services.builder import StaticSiteBuilder
from pagesdeploy.services.commands import SubprocessRunner, SupportsCommands
from pagesdeploy.services.config_loader import DeployConfig, load_config
from pagesdeploy.services.errors import DeployError
from pagesdeploy.services.git_worktree import PublishingWorktree
from pagesdeploy.services.lock import LOCK_FILENAME, DeployLock
from pagesdeploy.services.sequencer import DeploySequencer

LOGGER = logging.getLogger("pagesdeploy.deploy")

if not LOGGER.handlers:  # avoid duplicates on re-import
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    LOGGER.addHandler(handler)
    LOGGER.setLevel(logging.INFO)
    LOGGER.propagate = False

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def _configure_logging(level_name: str) -> None:
    """Configure root logging for the service modules."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    logging.getLogger("pagesdeploy").setLevel(level)
    LOGGER.setLevel(level)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy the built site to the publishing branch.")
    parser.add_argument(
        "--repo-root",
        default=".",
        help="Repository root holding the site sources (default: current directory)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML configuration file (default from PAGES_DEPLOY_CONFIG or deploy.yaml)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print the planned steps, run nothing")
    parser.add_argument("--no-lock", action="store_true", help="Do not guard against concurrent deploys")
    parser.add_argument(
        "--log-level",
        default=os.getenv("PAGES_DEPLOY_LOG_LEVEL", "INFO"),
        help="Logging level (default from PAGES_DEPLOY_LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


def build_sequencer(
    repo_root: Path,
    config: DeployConfig,
    runner: SupportsCommands | None = None,
) -> DeploySequencer:
    runner = runner or SubprocessRunner()
    worktree = PublishingWorktree(
        repo_root=repo_root,
        directory=config.worktree_dir,
        branch=config.branch,
        git_executable=config.git_executable,
        runner=runner,
    )
    builder = StaticSiteBuilder(
        repo_root=repo_root,
        command=config.resolved_build_command(),
        output_dir=config.output_dir,
        runner=runner,
    )
    return DeploySequencer(
        worktree=worktree,
        builder=builder,
        remote=config.remote,
        commit_message=config.commit_message,
    )


def _print_plan(sequencer: DeploySequencer, config: DeployConfig) -> None:
    worktree = config.worktree_dir
    git = config.git_executable
    commands = {
        "clear_worktree_dir": f"remove {worktree}",
        "add_worktree": f"{git} worktree add -f {worktree} {config.branch}",
        "build": " ".join(config.resolved_build_command()),
        "clear_tracked_files": f"(in {worktree}) {git} rm -r -q --ignore-unmatch -- .",
        "copy_output": f"copy {config.output_dir}/* into {worktree}",
        "stage_files": f"(in {worktree}) {git} add -A -- .",
        "commit": f"(in {worktree}) {git} commit -m {config.commit_message!r}",
        "push": f"(in {worktree}) {git} push -f {config.remote} {config.branch}",
    }
    for index, outcome in enumerate(sequencer.plan(), start=1):
        print(f"DRY RUN: {index}. {outcome.name}: {commands[outcome.name]}")


def _report(result: DeployResult) -> int:
    for warning in result.warnings:
        LOGGER.info("DEPLOY_TOLERATED %s", warning)
    if not result.succeeded:
        for error in result.errors:
            LOGGER.error("DEPLOY_ERROR %s", error)
        LOGGER.error("Deploy stopped at step '%s'; no cleanup was attempted", result.failed_step)
        return EXIT_FAILED

    LOGGER.info(
        "DEPLOY_COMPLETE committed=%s pushed=%s head=%s", result.committed, result.pushed, result.commit_hash
    )
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.log_level)

    repo_root = Path(args.repo_root).resolve()
    try:
        config = load_config(repo_root, Path(args.config) if args.config else None)
    except DeployError as exc:
        LOGGER.error("Invalid deploy configuration: %s", exc)
        return EXIT_USAGE

    sequencer = build_sequencer(repo_root, config)
    if args.dry_run:
        _print_plan(sequencer, config)
        return EXIT_OK

    LOGGER.info(
        "DEPLOY_START repo=%s branch=%s remote=%s public_url=%s",
        repo_root,
        config.branch,
        config.remote,
        config.public_url,
    )

    lock: DeployLock | None = None
    started = False
    try:
        if not args.no_lock:
            lock = DeployLock(sequencer.worktree.git_common_dir() / LOCK_FILENAME)
            lock.acquire()
        started = True
        result = sequencer.run()
    except KeyboardInterrupt:
        if not started:
            LOGGER.warning("DEPLOY_INTERRUPTED before the first step; nothing was changed")
            return EXIT_INTERRUPTED
        completed = len(sequencer.result.steps)
        steps = sequencer.steps()
        interrupted = steps[completed].name if completed < len(steps) else "after last step"
        LOGGER.warning("DEPLOY_INTERRUPTED during %s; remaining steps skipped", interrupted)
        return EXIT_INTERRUPTED
    except (DeployError, OSError) as exc:
        LOGGER.error("Deploy could not start: %s", exc)
        return EXIT_USAGE
    finally:
        if lock is not None:
            lock.release()

    return _report(result)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
