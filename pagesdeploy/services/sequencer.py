"""Ordered deploy of the built site to the publishing branch.

Each step runs only after the previous one finished. The sequence stops at
the first fatal failure and leaves the repository and worktree as they are:
there is no rollback. Two steps tolerate a known empty result: removing a
publishing directory that is already gone, and committing when the build
output did not change.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol

from pagesdeploy.models.deploy import CommandResult, DeployResult, StepOutcome, StepStatus
from pagesdeploy.services.errors import CommandError, DeployError
from pagesdeploy.services.git_worktree import is_nothing_to_commit


logger = logging.getLogger(__name__)


class Tolerated(Exception):
    """Signal that a step hit its accepted empty result."""


class SupportsWorktree(Protocol):
    """Subset of :class:`PublishingWorktree` relied on by the sequencer."""

    @property
    def path(self) -> Path:
        """Location of the publishing checkout."""

    def add(self) -> None:
        """Attach the worktree on the publishing branch."""

    def remove_tracked(self) -> None:
        """Remove all tracked files."""

    def stage_all(self) -> None:
        """Stage every file in the worktree."""

    def has_staged_changes(self) -> bool:
        """Return whether the index differs from the head commit."""

    def commit(self, message: str) -> CommandResult:
        """Attempt a commit and return the raw outcome."""

    def push(self, remote: str) -> None:
        """Force-push the publishing branch."""

    def head(self) -> str:
        """Return the worktree's head commit."""


class SupportsBuild(Protocol):
    """Subset of :class:`StaticSiteBuilder` relied on by the sequencer."""

    def build(self) -> None:
        """Run the build tool."""

    def copy_output(self, destination: Path) -> list[Path]:
        """Copy the build output into ``destination``."""


@dataclass(slots=True, frozen=True)
class Step:
    name: str
    description: str
    action: Callable[[], None]


@dataclass(slots=True)
class DeploySequencer:
    """Run the eight deploy steps against a worktree and a builder."""

    worktree: SupportsWorktree
    builder: SupportsBuild
    remote: str
    commit_message: str
    _result: DeployResult = field(default_factory=DeployResult, init=False)

    def steps(self) -> list[Step]:
        return [
            Step("clear_worktree_dir", "Remove the stale publishing directory", self._clear_worktree_dir),
            Step("add_worktree", "Attach the publishing worktree", self.worktree.add),
            Step("build", "Build the static site", self.builder.build),
            Step("clear_tracked_files", "Remove tracked files from the worktree", self.worktree.remove_tracked),
            Step("copy_output", "Copy build output into the worktree", self._copy_output),
            Step("stage_files", "Stage all worktree files", self.worktree.stage_all),
            Step("commit", "Commit the new site contents", self._commit),
            Step("push", "Force-push the publishing branch", self._push),
        ]

    @property
    def result(self) -> DeployResult:
        """Result of the current or most recent run, including partial progress."""

        return self._result

    def run(self) -> DeployResult:
        """Execute the sequence, stopping at the first fatal failure."""

        result = self._result = DeployResult(started_at=datetime.now(timezone.utc))
        for step in self.steps():
            logger.info("DEPLOY_STEP %s: %s", step.name, step.description)
            try:
                step.action()
            except Tolerated as exc:
                detail = str(exc)
                logger.info("DEPLOY_STEP_TOLERATED %s: %s", step.name, detail)
                result.steps.append(StepOutcome(step.name, step.description, StepStatus.TOLERATED, detail))
                result.warnings.append(f"{step.name}: {detail}")
                continue
            except (DeployError, OSError) as exc:
                logger.error("DEPLOY_FAILED %s: %s", step.name, exc)
                result.steps.append(StepOutcome(step.name, step.description, StepStatus.FAILED, str(exc)))
                result.failed_step = step.name
                result.errors.append(f"{step.name}: {exc}")
                break
            result.steps.append(StepOutcome(step.name, step.description, StepStatus.SUCCEEDED))

        result.finished_at = datetime.now(timezone.utc)
        return result

    def plan(self) -> list[StepOutcome]:
        """Return the steps as skipped outcomes without running anything."""

        return [StepOutcome(step.name, step.description, StepStatus.SKIPPED) for step in self.steps()]

    def _clear_worktree_dir(self) -> None:
        path = self.worktree.path
        try:
            if path.is_symlink() or path.is_file():
                path.unlink()
            else:
                shutil.rmtree(path)
        except FileNotFoundError as exc:
            raise Tolerated(f"'{path}' does not exist") from exc

    def _copy_output(self) -> None:
        self.builder.copy_output(self.worktree.path)

    def _commit(self) -> None:
        if not self.worktree.has_staged_changes():
            raise Tolerated("nothing to commit, build output unchanged")
        outcome = self.worktree.commit(self.commit_message)
        if outcome.ok:
            self._result.committed = True
            return
        if is_nothing_to_commit(outcome):
            raise Tolerated("nothing to commit, build output unchanged")
        raise CommandError(outcome.args, outcome.returncode, outcome.stdout, outcome.stderr)

    def _push(self) -> None:
        self.worktree.push(self.remote)
        self._result.pushed = True
        self._result.commit_hash = self.worktree.head()
