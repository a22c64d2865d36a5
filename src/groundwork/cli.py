"""Typer entrypoint for the ``groundwork`` command."""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from . import __version__, config, dependencies, paths
from . import log as groundwork_log
from .context import EnvironmentContext
from .models import GroundworkConfig
from .provision import ProvisionRequest, Provisioner
from .services import ServiceFailure


class LogLevelName(str, Enum):
    trace = "trace"
    debug = "debug"
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


app = typer.Typer(
    help="Provision a developer workspace for the companion project.",
    no_args_is_help=True,
    add_completion=False,
)


def build_context() -> EnvironmentContext:
    return EnvironmentContext.from_process()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"groundwork {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    log_level: Optional[LogLevelName] = typer.Option(
        None,
        "--log-level",
        help="Minimum level to print (default: GROUNDWORK_LOG_LEVEL or info).",
        case_sensitive=False,
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    if log_level is not None:
        groundwork_log.set_level(log_level.value)
    if no_color:
        groundwork_log.set_no_color(True)


def _fail(error: ServiceFailure) -> typer.Exit:
    groundwork_log.error(str(error))
    if error.recovery_hint:
        groundwork_log.info(f"hint: {error.recovery_hint}")
    return typer.Exit(code=error.exit_code)


def _load(
    context: EnvironmentContext,
    workspace: Path | None,
    config_path: Path | None,
    overrides: dict,
) -> tuple[Path, GroundworkConfig]:
    root = paths.resolve_workspace_root(workspace, context.environ, Path(os.getcwd()))
    loaded = config.load_config(
        root, environ=context.environ, config_path=config_path, overrides=overrides
    )
    return root, loaded


def _cli_overrides(
    repo_url: str | None, python: str | None, without: str | None
) -> dict:
    overrides: dict = {}
    if repo_url:
        overrides.setdefault("project", {})["repo_url"] = repo_url
    if python:
        overrides.setdefault("runtime", {})["default_version"] = python
    if without is not None:
        overrides.setdefault("dependencies", {})["exclude_group"] = without
    return overrides


@app.command()
def provision(
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", "-w", help="Workspace root (default: GROUNDWORK_WORKSPACE or cwd)."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Extra JSON config layered over the defaults."
    ),
    repo_url: Optional[str] = typer.Option(None, "--repo-url", help="Repository to clone."),
    python: Optional[str] = typer.Option(
        None, "--python", help="Python version used when the project pins none."
    ),
    without: Optional[str] = typer.Option(
        None, "--without", help="Dependency group to exclude (empty string for none)."
    ),
    skip_hooks: bool = typer.Option(False, "--skip-hooks", help="Do not install commit hooks."),
    skip_profile: bool = typer.Option(
        False, "--skip-profile", help="Do not touch shell profile files."
    ),
) -> None:
    """Clone, install, and configure the project workspace."""
    context = build_context()
    try:
        root, loaded = _load(
            context, workspace, config_path, _cli_overrides(repo_url, python, without)
        )
    except ServiceFailure as exc:
        raise _fail(exc) from exc
    report = Provisioner(context).run(
        ProvisionRequest(
            workspace_root=root,
            config=loaded,
            skip_hooks=skip_hooks,
            skip_profile=skip_profile,
        )
    )
    if report.exit_code != 0:
        raise typer.Exit(code=report.exit_code)


@app.command("env-info")
def env_info(
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c"),
) -> None:
    """Print the project's virtualenv path."""
    context = build_context()
    try:
        root, loaded = _load(context, workspace, config_path, {})
    except ServiceFailure as exc:
        raise _fail(exc) from exc
    project_paths = paths.resolve_paths(loaded, root)
    context.prepend_path(paths.expand_home(loaded.dependencies.bin_dir, context.home))
    venv = dependencies.env_info(context, project_paths.project_dir)
    if venv is None:
        groundwork_log.error(f"no virtualenv found for {project_paths.project_dir}")
        raise typer.Exit(code=1)
    typer.echo(venv)


if __name__ == "__main__":  # pragma: no cover
    app()
