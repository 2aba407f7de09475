"""Shared fixtures and helpers for the test suite."""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import pytest

from pagesdeploy.models.deploy import CommandResult
from pagesdeploy.services.config_loader import DeployConfig
from pagesdeploy.services.errors import CommandError


def _git(*args: str, cwd: Path) -> str:
    completed = subprocess.run(
        ["git", *args], cwd=cwd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
    )
    return completed.stdout


def _build_command(files: dict[str, str], exit_code: int) -> list[str]:
    script = (
        "import pathlib, sys\n"
        f"files = {files!r}\n"
        "for name, body in files.items():\n"
        "    target = pathlib.Path('dist') / name\n"
        "    target.parent.mkdir(parents=True, exist_ok=True)\n"
        "    target.write_text(body, encoding='utf-8')\n"
        f"sys.exit({exit_code})\n"
    )
    return [sys.executable, "-c", script]


@dataclass(slots=True)
class SiteRepo:
    """Git repository with a ``pages`` branch and a bare ``origin`` remote."""

    root: Path
    remote: Path

    def git(self, *args: str, cwd: Path | None = None) -> str:
        return _git(*args, cwd=cwd or self.root)

    def build_command(self, files: dict[str, str], *, exit_code: int = 0) -> list[str]:
        """Return a build command writing ``files`` under ``dist`` and exiting with ``exit_code``."""

        return _build_command(files, exit_code)

    def config(self, files: dict[str, str], *, exit_code: int = 0) -> DeployConfig:
        return DeployConfig(build_command=tuple(self.build_command(files, exit_code=exit_code)))

    @property
    def worktree(self) -> Path:
        return self.root / "pages"

    def remote_head(self, branch: str = "pages") -> str | None:
        output = self.git("ls-remote", str(self.remote), f"refs/heads/{branch}").split()
        return output[0] if output else None

    def branch_head(self, branch: str = "pages") -> str:
        return self.git("rev-parse", "--verify", f"refs/heads/{branch}").strip()

    def commit_count(self, branch: str = "pages") -> int:
        return int(self.git("rev-list", "--count", f"refs/heads/{branch}", "--").strip())

    def tracked_files(self) -> list[str]:
        return sorted(name for name in self.git("ls-files", cwd=self.worktree).splitlines() if name)


@pytest.fixture
def site_repo(tmp_path: Path) -> SiteRepo:
    """Return a fresh repository prepared for deploys."""

    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    root = tmp_path / "site"
    root.mkdir()
    remote = tmp_path / "remote.git"

    _git("init", "-q", cwd=root)
    _git("config", "user.name", "Pages Bot", cwd=root)
    _git("config", "user.email", "bot@example.com", cwd=root)
    _git("config", "commit.gpgsign", "false", cwd=root)
    (root / "README.md").write_text("# Pomyu\n", encoding="utf-8")
    (root / "index.html").write_text("<html>source</html>\n", encoding="utf-8")
    _git("add", "README.md", "index.html", cwd=root)
    _git("commit", "-q", "-m", "Initial commit", cwd=root)
    _git("branch", "pages", cwd=root)

    _git("init", "-q", "--bare", str(remote), cwd=tmp_path)
    _git("remote", "add", "origin", str(remote), cwd=root)
    return SiteRepo(root=root, remote=remote)


@dataclass(slots=True)
class RecordingRunner:
    """Command runner that records invocations and replays canned results."""

    results: dict[str, CommandResult] = field(default_factory=dict)
    calls: list[tuple[list[str], Path]] = field(default_factory=list)

    def run(self, args: Sequence[str], *, cwd: Path, check: bool = True) -> CommandResult:
        self.calls.append((list(args), cwd))
        key = " ".join(args[1:3])
        result = self.results.get(key) or CommandResult(args=list(args), returncode=0)
        if check and not result.ok:
            raise CommandError(result.args, result.returncode, result.stdout, result.stderr)
        return result


@pytest.fixture
def recording_runner() -> RecordingRunner:
    return RecordingRunner()
