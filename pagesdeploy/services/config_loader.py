"""Resolve the deploy configuration from defaults, a YAML file and the environment."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, fields, replace
from pathlib import Path, PurePath
from typing import Any, Mapping

import yaml

from pagesdeploy.services.errors import ConfigError


DEFAULT_PUBLIC_URL = "/pomyu"
DEFAULT_BRANCH = "pages"
DEFAULT_REMOTE = "origin"
DEFAULT_WORKTREE_DIR = "pages"
DEFAULT_OUTPUT_DIR = "dist"
DEFAULT_COMMIT_MESSAGE = "Update pages"
DEFAULT_BUILD_COMMAND: tuple[str, ...] = ("trunk", "build", "--public-url", "{public_url}")
DEFAULT_CONFIG_FILENAME = "deploy.yaml"

CONFIG_PATH_ENV = "PAGES_DEPLOY_CONFIG"

_ENV_OVERRIDES: Mapping[str, str] = {
    "PAGES_DEPLOY_PUBLIC_URL": "public_url",
    "PAGES_DEPLOY_BRANCH": "branch",
    "PAGES_DEPLOY_REMOTE": "remote",
    "PAGES_DEPLOY_WORKTREE": "worktree_dir",
    "PAGES_DEPLOY_OUTPUT_DIR": "output_dir",
    "PAGES_DEPLOY_COMMIT_MESSAGE": "commit_message",
    "PAGES_DEPLOY_BUILD_COMMAND": "build_command",
    "PAGES_DEPLOY_GIT": "git_executable",
}


@dataclass(slots=True, frozen=True)
class DeployConfig:
    """Settings for one deploy of the static site to the publishing branch."""

    public_url: str = DEFAULT_PUBLIC_URL
    branch: str = DEFAULT_BRANCH
    remote: str = DEFAULT_REMOTE
    worktree_dir: str = DEFAULT_WORKTREE_DIR
    output_dir: str = DEFAULT_OUTPUT_DIR
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    build_command: tuple[str, ...] = field(default=DEFAULT_BUILD_COMMAND)
    git_executable: str = "git"

    def resolved_build_command(self) -> list[str]:
        """Return the build command with ``{public_url}`` placeholders filled in."""

        return [part.replace("{public_url}", self.public_url) for part in self.build_command]


def _normalise_command(value: Any, source: str) -> tuple[str, ...]:
    if isinstance(value, str):
        parts = shlex.split(value)
    elif isinstance(value, (list, tuple)) and all(isinstance(part, str) for part in value):
        parts = list(value)
    else:
        raise ConfigError(f"{source}: build_command must be a string or a list of strings")
    if not parts:
        raise ConfigError(f"{source}: build_command must not be empty")
    return tuple(parts)


def _validate_relative(name: str, value: str, source: str) -> str:
    value = value.strip()
    if not value:
        raise ConfigError(f"{source}: {name} must not be empty")
    path = PurePath(value)
    if path.is_absolute() or ".." in path.parts:
        raise ConfigError(f"{source}: {name} must be a path inside the repository, got '{value}'")
    return value


def _apply(config: DeployConfig, values: Mapping[str, Any], source: str) -> DeployConfig:
    known = {item.name for item in fields(DeployConfig)}
    unknown = sorted(str(key) for key in values if key not in known)
    if unknown:
        raise ConfigError(f"{source}: unknown setting(s): {', '.join(unknown)}")

    updates: dict[str, Any] = {}
    for key, value in values.items():
        if key == "build_command":
            updates[key] = _normalise_command(value, source)
            continue
        if not isinstance(value, str):
            raise ConfigError(f"{source}: {key} must be a string")
        if key in {"worktree_dir", "output_dir"}:
            value = _validate_relative(key, value, source)
        elif not value.strip():
            raise ConfigError(f"{source}: {key} must not be empty")
        updates[key] = value
    return replace(config, **updates)


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML configuration file into a mapping of setting names."""

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"{path}: expected a mapping of settings")
    return payload


def _default_config_path(repo_root: Path) -> Path | None:
    raw = os.getenv(CONFIG_PATH_ENV)
    if raw:
        return Path(raw)
    candidate = repo_root / DEFAULT_CONFIG_FILENAME
    return candidate if candidate.exists() else None


def load_config(repo_root: Path, config_path: Path | None = None) -> DeployConfig:
    """Return the deploy configuration for ``repo_root``.

    Defaults are overridden by the YAML file (explicit path, ``PAGES_DEPLOY_CONFIG``
    or ``deploy.yaml`` in the repository root) and then by ``PAGES_DEPLOY_*``
    environment variables. Relative explicit paths are taken from the current
    directory, like any other command line path.
    """

    config = DeployConfig()

    path = config_path or _default_config_path(repo_root)
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Configuration file '{path}' does not exist")
        config = _apply(config, load_config_file(path), str(path))

    env_values = {
        setting: value
        for variable, setting in _ENV_OVERRIDES.items()
        if (value := os.getenv(variable)) is not None
    }
    if env_values:
        config = _apply(config, env_values, "environment")
    return config
