"""Git helpers for keeping the project checkout present and current."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from . import exec as exec_util
from . import log
from .context import EnvironmentContext
from .models import ProjectSection
from .paths import ProvisionPaths, describe_directory
from .services.errors import (
    DependencyMissingError,
    ExternalCommandFailedError,
    IoFailedError,
    ValidationFailedError,
)

RepoAction = Literal["cloned", "updated", "update_failed"]


@dataclass(frozen=True)
class RepoState:
    """Outcome of ``ensure_repository``."""

    project_dir: Path
    action: RepoAction
    detail: str | None = None

    @property
    def update_failed(self) -> bool:
        return self.action == "update_failed"


def is_valid_checkout(project_dir: Path, manifest_name: str) -> bool:
    """Return whether ``project_dir`` holds a complete checkout.

    Example:
        >>> is_valid_checkout(Path("/nonexistent"), "pyproject.toml")
        False
    """
    return project_dir.is_dir() and (project_dir / manifest_name).is_file()


def clone(
    context: EnvironmentContext,
    url: str,
    destination: Path,
    *,
    branch: str | None = None,
) -> exec_util.CommandResult | None:
    """Clone ``url`` into ``destination``."""
    argv = ["git", "clone"]
    if branch:
        argv.extend(["--branch", branch])
    argv.extend([url, str(destination)])
    return context.run(argv, capture=False)


def pull(
    context: EnvironmentContext, repo_dir: Path, remote: str, branch: str
) -> exec_util.CommandResult | None:
    """Fast-forward ``repo_dir`` from ``remote``/``branch``."""
    return context.run(["git", "-C", str(repo_dir), "pull", "--ff-only", remote, branch])


def _remove_partial(project_dir: Path) -> None:
    if not project_dir.exists() and not project_dir.is_symlink():
        return
    log.warning(f"Removing incomplete checkout at {project_dir}")
    try:
        if project_dir.is_dir() and not project_dir.is_symlink():
            shutil.rmtree(project_dir)
        else:
            project_dir.unlink()
    except OSError as exc:
        raise IoFailedError(f"failed to remove incomplete checkout {project_dir}: {exc}") from exc


def ensure_repository(
    context: EnvironmentContext, paths: ProvisionPaths, project: ProjectSection
) -> RepoState:
    """Make sure the project checkout exists and holds its manifest.

    A valid checkout is pulled; pull failures are reported on the returned
    state and never raised. Anything else at the project path is removed and
    the repository is cloned exactly once.

    Raises:
        ValidationFailedError: No repository URL is configured, or the clone
            finished without the manifest file.
        ExternalCommandFailedError: The clone failed; ``exit_code`` is git's.
    """
    project_dir = paths.project_dir
    if is_valid_checkout(project_dir, project.manifest):
        log.info(f"Updating existing checkout at {project_dir}")
        result = pull(context, project_dir, project.remote, project.branch)
        if result is None:
            return RepoState(project_dir, "update_failed", "missing required command: git")
        if not result.ok:
            return RepoState(
                project_dir,
                "update_failed",
                exec_util.command_failure_detail(
                    exec_util.CommandRequest(argv=result.argv), result
                ),
            )
        return RepoState(project_dir, "updated")

    if not project.repo_url:
        raise ValidationFailedError(
            "no repository URL configured",
            recovery_hint="set project.repo_url in groundwork.json or GROUNDWORK_REPO_URL",
        )
    _remove_partial(project_dir)
    log.info(f"Cloning {project.repo_url} into {project_dir}")
    result = clone(context, project.repo_url, project_dir, branch=project.branch)
    if result is None:
        raise DependencyMissingError("missing required command: git")
    if not result.ok:
        raise ExternalCommandFailedError(
            f"git clone failed for {project.repo_url}",
            exit_code=result.returncode,
        )
    if not paths.manifest.is_file():
        raise ValidationFailedError(
            f"{project.manifest} not found in {project_dir} after clone\n"
            f"{describe_directory(project_dir)}"
        )
    return RepoState(project_dir, "cloned")
