from __future__ import annotations

import sys
from pathlib import Path

import pytest

from pagesdeploy.services.commands import SubprocessRunner
from pagesdeploy.services.errors import CommandError


def test_commands_run_with_untranslated_messages(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LANGUAGE", "de")
    monkeypatch.setenv("LC_ALL", "de_DE.UTF-8")
    script = "import os; print(os.environ['LC_ALL'], repr(os.environ['LANGUAGE']))"

    result = SubprocessRunner().run([sys.executable, "-c", script], cwd=tmp_path)

    assert result.stdout.strip() == "C ''"


def test_non_zero_exit_raises_when_checked(tmp_path: Path) -> None:
    runner = SubprocessRunner()
    command = [sys.executable, "-c", "import sys; sys.stderr.write('broken'); sys.exit(4)"]

    with pytest.raises(CommandError, match="broken") as excinfo:
        runner.run(command, cwd=tmp_path)
    assert excinfo.value.returncode == 4

    unchecked = runner.run(command, cwd=tmp_path, check=False)
    assert unchecked.returncode == 4
    assert unchecked.stderr == "broken"


def test_missing_executable_is_a_command_error(tmp_path: Path) -> None:
    with pytest.raises(CommandError, match="No such file or directory") as excinfo:
        SubprocessRunner().run([str(tmp_path / "no-such-git"), "status"], cwd=tmp_path, check=False)

    assert excinfo.value.returncode == 127
    assert excinfo.value.command[-1] == "status"
