"""Synchronous execution of the external tools the deploy drives."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from pagesdeploy.models.deploy import CommandResult
from pagesdeploy.services.errors import CommandError


logger = logging.getLogger(__name__)

MISSING_EXECUTABLE_STATUS = 127


class SupportsCommands(Protocol):
    """Interface shared by the real runner and the recording stubs in tests."""

    def run(self, args: Sequence[str], *, cwd: Path, check: bool = True) -> CommandResult:
        """Run ``args`` in ``cwd`` and return the captured result."""


def _untranslated_environment() -> dict[str, str]:
    # git localises its messages; error text is matched and logged in English.
    return {"LC_ALL": "C", "LANGUAGE": ""}


@dataclass(slots=True)
class SubprocessRunner:
    """Run commands with :func:`subprocess.run`, waiting for each to exit."""

    env_overrides: dict[str, str] = field(default_factory=_untranslated_environment)

    def run(self, args: Sequence[str], *, cwd: Path, check: bool = True) -> CommandResult:
        """Execute a command within ``cwd`` and raise :class:`CommandError` on error when ``check``.

        A program that cannot be started is reported as :class:`CommandError`
        with status 127, the shell's convention, whatever ``check`` says.
        """

        logger.debug("Running %s in %s", " ".join(args), cwd)
        try:
            completed = subprocess.run(
                list(args),
                cwd=cwd,
                text=True,
                check=False,
                capture_output=True,
                env={**os.environ, **self.env_overrides},
            )
        except OSError as exc:
            raise CommandError(list(args), MISSING_EXECUTABLE_STATUS, stderr=str(exc)) from exc
        result = CommandResult(
            args=list(args),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if result.stderr.strip():
            logger.debug("%s stderr: %s", args[0], result.stderr.strip())
        if check and not result.ok:
            raise CommandError(result.args, result.returncode, result.stdout, result.stderr)
        return result
