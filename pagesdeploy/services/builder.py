"""Static site build step and copying of its output."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from pagesdeploy.services.commands import SubprocessRunner, SupportsCommands
from pagesdeploy.services.errors import DeployError


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StaticSiteBuilder:
    """Run the external build tool and expose its output directory."""

    repo_root: Path
    command: Sequence[str]
    output_dir: str
    runner: SupportsCommands = field(default_factory=SubprocessRunner)

    @property
    def output_path(self) -> Path:
        return self.repo_root / self.output_dir

    def build(self) -> None:
        self.runner.run(list(self.command), cwd=self.repo_root)

    def copy_output(self, destination: Path) -> list[Path]:
        """Copy every entry of the output directory into ``destination``.

        Existing files are overwritten. Nothing is cleaned up when a copy fails
        part way through.
        """

        source = self.output_path
        if not source.is_dir():
            raise DeployError(f"Build output directory '{source}' does not exist")

        copied: list[Path] = []
        for entry in sorted(source.iterdir()):
            target = destination / entry.name
            if entry.is_dir():
                shutil.copytree(entry, target, dirs_exist_ok=True)
            else:
                shutil.copy2(entry, target)
            copied.append(target)
        logger.debug("Copied %d entries from %s to %s", len(copied), source, destination)
        return copied
