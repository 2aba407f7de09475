"""Git operations on the publishing worktree."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from pagesdeploy.models.deploy import CommandResult
from pagesdeploy.services.commands import SubprocessRunner, SupportsCommands
from pagesdeploy.services.errors import CommandError, DeployError


logger = logging.getLogger(__name__)

_NOTHING_TO_COMMIT = re.compile(r"nothing (added )?to commit|no changes added to commit")


def is_nothing_to_commit(result: CommandResult) -> bool:
    """Return ``True`` when a failed ``git commit`` only reports an unchanged tree."""

    return not result.ok and _NOTHING_TO_COMMIT.search(result.output) is not None


@dataclass(slots=True)
class PublishingWorktree:
    """Secondary checkout of ``branch`` at ``repo_root / directory``."""

    repo_root: Path
    directory: str
    branch: str
    git_executable: str = "git"
    runner: SupportsCommands = field(default_factory=SubprocessRunner)

    @property
    def path(self) -> Path:
        return self.repo_root / self.directory

    def git_common_dir(self) -> Path:
        """Return the directory shared by all worktrees of the repository."""

        raw = self._run_git("rev-parse", "--git-common-dir", cwd=self.repo_root).stdout.strip()
        common = Path(raw)
        return common if common.is_absolute() else (self.repo_root / common).resolve()

    def branch_exists(self) -> bool:
        result = self._run_git(
            "show-ref", "--verify", "--quiet", f"refs/heads/{self.branch}", cwd=self.repo_root, check=False
        )
        return result.ok

    def add(self) -> None:
        """Attach the worktree, forcing reuse of a stale registration or checked-out branch."""

        logger.debug("Attaching %s on branch %s", self.path, self.branch)
        try:
            self._run_git("worktree", "add", "-f", self.directory, self.branch, cwd=self.repo_root)
        except CommandError as exc:
            if not self.branch_exists():
                raise DeployError(
                    f"Publishing branch '{self.branch}' does not exist; create it before deploying"
                ) from exc
            raise

    def remove_tracked(self) -> None:
        """Delete every tracked file from the index and the working tree."""

        self._run_git("rm", "-r", "-q", "--ignore-unmatch", "--", ".")

    def stage_all(self) -> None:
        self._run_git("add", "-A", "--", ".")

    def commit(self, message: str) -> CommandResult:
        """Run ``git commit`` without raising so the caller can inspect the outcome."""

        return self._run_git("commit", "-m", message, check=False)

    def push(self, remote: str) -> None:
        self._run_git("push", "-f", remote, self.branch)

    def head(self) -> str:
        return self._run_git("rev-parse", "HEAD").stdout.strip()

    def has_staged_changes(self) -> bool:
        """Return ``True`` when the index differs from ``HEAD``, judged by exit status only."""

        result = self._run_git("diff", "--cached", "--quiet", check=False)
        if result.returncode not in (0, 1):
            raise CommandError(result.args, result.returncode, result.stdout, result.stderr)
        return result.returncode == 1

    def _run_git(self, *args: str, cwd: Path | None = None, check: bool = True) -> CommandResult:
        """Execute a git command, inside the worktree unless ``cwd`` says otherwise."""

        return self.runner.run([self.git_executable, *args], cwd=cwd or self.path, check=check)
