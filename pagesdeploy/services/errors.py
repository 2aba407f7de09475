"""Exceptions raised while deploying the site."""

from __future__ import annotations

from typing import Sequence


class DeployError(RuntimeError):
    """Base class for failures that abort a deploy."""


class ConfigError(DeployError):
    """Raised when the deploy configuration is invalid."""


class DeployLockedError(DeployError):
    """Raised when another deploy already holds the lock."""


class CommandError(DeployError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stdout: str = "", stderr: str = "") -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        program = self.command[0] if self.command else "command"
        subcommand = " ".join([program.rsplit("/", 1)[-1], *self.command[1:2]])
        reason = stderr.strip() or stdout.strip() or f"exit status {returncode}"
        super().__init__(f"{subcommand} failed: {reason}")
