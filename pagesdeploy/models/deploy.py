"""Data structures describing a deploy run and the commands it executes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence


class StepStatus(str, Enum):
    """Terminal state of a single deploy step."""

    SUCCEEDED = "succeeded"
    TOLERATED = "tolerated"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class CommandResult:
    """Captured outcome of an external process."""

    args: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Return stdout and stderr joined, as git splits messages across both."""

        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


@dataclass(slots=True)
class StepOutcome:
    """Outcome recorded for one step of the sequence."""

    name: str
    description: str
    status: StepStatus
    detail: str | None = None


@dataclass(slots=True)
class DeployResult:
    """Structured summary of a deploy execution."""

    steps: list[StepOutcome] = field(default_factory=list)
    failed_step: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    commit_hash: str | None = None
    committed: bool = False
    pushed: bool = False
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when every step completed or was tolerated."""

        return self.failed_step is None and not self.errors

    def step(self, name: str) -> StepOutcome | None:
        """Return the recorded outcome for ``name`` if the step ran."""

        return next((outcome for outcome in self.steps if outcome.name == name), None)
