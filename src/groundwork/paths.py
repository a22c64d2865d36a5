"""Path helpers for locating the workspace, project, and config files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from platformdirs import user_config_dir

from .models import GroundworkConfig

GROUNDWORK_APP_NAME = "groundwork"
USER_CONFIG_FILENAME = "config.json"
WORKSPACE_CONFIG_FILENAME = "groundwork.json"
WORKSPACE_ENV_VAR = "GROUNDWORK_WORKSPACE"


def user_config_path() -> Path:
    """Return the per-user config file path.

    Example:
        >>> user_config_path().name == USER_CONFIG_FILENAME
        True
    """
    return Path(user_config_dir(GROUNDWORK_APP_NAME)) / USER_CONFIG_FILENAME


def workspace_config_path(workspace_root: Path) -> Path:
    """Return the workspace-level config file path.

    Example:
        >>> workspace_config_path(Path("/ws")).as_posix()
        '/ws/groundwork.json'
    """
    return workspace_root / WORKSPACE_CONFIG_FILENAME


def expand_home(value: str, home: Path) -> Path:
    """Expand a leading ``~`` against ``home`` rather than the process home.

    Example:
        >>> expand_home("~/.pyenv", Path("/home/dev")).as_posix()
        '/home/dev/.pyenv'
        >>> expand_home("/opt/pyenv", Path("/home/dev")).as_posix()
        '/opt/pyenv'
    """
    if value == "~":
        return home
    if value.startswith("~/"):
        return home / value[2:]
    return Path(value)


def resolve_workspace_root(
    override: Path | None, environ: Mapping[str, str], cwd: Path
) -> Path:
    """Pick the workspace root: explicit override, then env var, then cwd.

    Example:
        >>> resolve_workspace_root(None, {"GROUNDWORK_WORKSPACE": "/ws"}, Path("/tmp")).as_posix()
        '/ws'
        >>> resolve_workspace_root(None, {}, Path("/tmp")).as_posix()
        '/tmp'
    """
    if override is not None:
        return override.expanduser()
    raw = environ.get(WORKSPACE_ENV_VAR, "").strip()
    if raw:
        return Path(raw).expanduser()
    return cwd


@dataclass(frozen=True)
class ProvisionPaths:
    """Every filesystem location the provisioner touches inside the workspace."""

    workspace_root: Path
    project_dir: Path
    manifest: Path
    version_marker: Path
    env_file: Path
    env_template: Path
    hooks_config: Path


def resolve_paths(config: GroundworkConfig, workspace_root: Path) -> ProvisionPaths:
    """Derive project paths from the workspace root and config."""
    project_dir = workspace_root / config.project.name
    return ProvisionPaths(
        workspace_root=workspace_root,
        project_dir=project_dir,
        manifest=project_dir / config.project.manifest,
        version_marker=project_dir / config.runtime.version_file,
        env_file=project_dir / config.env_file.target,
        env_template=project_dir / config.env_file.template,
        hooks_config=project_dir / config.hooks.config_file,
    )


def list_directory(path: Path) -> list[str]:
    """Return sorted entry names for diagnostics; directories get a ``/`` suffix."""
    try:
        entries = sorted(path.iterdir(), key=lambda entry: entry.name)
    except OSError:
        return []
    return [f"{entry.name}/" if entry.is_dir() else entry.name for entry in entries]


def describe_directory(path: Path) -> str:
    """Render a directory listing block for fatal diagnostics."""
    entries = list_directory(path)
    if not entries:
        return f"contents of {path}: (empty or unreadable)"
    lines = [f"contents of {path}:"]
    lines.extend(f"  {entry}" for entry in entries)
    return "\n".join(lines)
