"""Poetry helpers: install, configure, and install project dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from . import exec as exec_util
from . import log
from .context import EnvironmentContext
from .models import DependencySection
from .paths import expand_home
from .services.errors import DependencyMissingError, ExternalCommandFailedError


@dataclass(frozen=True)
class ToolState:
    """Outcome of ``ensure_dependency_manager``."""

    executable: str
    installed: bool
    settings: tuple[tuple[str, str], ...]


def _require(result: exec_util.CommandResult | None, what: str) -> exec_util.CommandResult:
    if result is None:
        raise DependencyMissingError("missing required command: poetry")
    if not result.ok:
        detail = f"{what} failed"
        if result.output:
            detail = f"{detail}: {result.output}"
        raise ExternalCommandFailedError(detail, exit_code=result.returncode)
    return result


def configure(context: EnvironmentContext, option: str, value: str) -> None:
    """Set one global ``poetry config`` option."""
    _require(context.run(["poetry", "config", option, value]), f"poetry config {option}")


def list_settings(context: EnvironmentContext) -> tuple[str, ...]:
    """Return ``poetry config --list`` output, one setting per line."""
    return exec_util.run_typed(
        exec_util.CommandSpec(
            request=exec_util.CommandRequest(
                argv=("poetry", "config", "--list"), env=dict(context.environ)
            ),
            parser=exec_util.parse_lines,
        ),
        runner=context.runner,
    )


def _report_settings(context: EnvironmentContext) -> None:
    try:
        settings = list_settings(context)
    except exec_util.CommandExecutionError as exc:
        log.warning(f"could not list poetry settings: {exc}")
        return
    log.info("Poetry configuration:")
    for line in settings:
        log.info(f"  {line}")


def use_interpreter(context: EnvironmentContext, project_dir: Path, python: str) -> None:
    """Bind the project's virtualenv to ``python`` (``poetry env use``).

    Raises:
        ExternalCommandFailedError: with Poetry's own exit code.
    """
    _require(
        context.run(["poetry", "env", "use", python], cwd=project_dir),
        f"poetry env use {python}",
    )


def ensure_dependency_manager(
    context: EnvironmentContext, dependencies: DependencySection
) -> ToolState:
    """Install Poetry when missing and apply the virtualenv policy.

    Raises:
        DependencyMissingError: Poetry is still unavailable after installing.
        ExternalCommandFailedError: the installer or ``poetry config`` failed.
    """
    context.prepend_path(expand_home(dependencies.bin_dir, context.home))
    installed = False
    if context.which("poetry") is None:
        log.info("poetry not found; installing it")
        result = context.shell(dependencies.installer)
        if result is None:
            raise DependencyMissingError("missing required command: bash")
        if not result.ok:
            raise ExternalCommandFailedError(
                f"poetry installer failed: {result.output}", exit_code=result.returncode
            )
        installed = True
    executable = context.which("poetry")
    if executable is None:
        raise DependencyMissingError(
            "poetry is not on PATH",
            recovery_hint=f"expected it in {dependencies.bin_dir}",
        )
    for option, value in dependencies.settings.items():
        configure(context, option, value)
        log.debug(f"poetry config {option} {value}")
    _report_settings(context)
    return ToolState(
        executable=executable,
        installed=installed,
        settings=tuple(dependencies.settings.items()),
    )


def install_dependencies(
    context: EnvironmentContext, project_dir: Path, exclusion_group: str | None
) -> None:
    """Run ``poetry install`` without the excluded group.

    Raises:
        ExternalCommandFailedError: with Poetry's own exit code.
    """
    argv = ["poetry", "install", "--no-interaction"]
    if exclusion_group:
        argv.extend(["--without", exclusion_group])
    log.info(f"Installing project dependencies ({' '.join(argv[1:])})")
    result = context.run(argv, cwd=project_dir, capture=False)
    if result is None:
        raise DependencyMissingError("missing required command: poetry")
    if not result.ok:
        raise ExternalCommandFailedError(
            "poetry install failed",
            exit_code=result.returncode,
            recovery_hint=f"run `poetry install` in {project_dir} to see the full error",
        )


def run(
    context: EnvironmentContext, project_dir: Path, argv: list[str]
) -> exec_util.CommandResult | None:
    """Run a command inside the project's virtualenv (``poetry run``)."""
    return context.run(["poetry", "run", *argv], cwd=project_dir)


def env_info(context: EnvironmentContext, project_dir: Path) -> str | None:
    """Return the project's virtualenv path, or ``None`` when there is none."""
    result = context.run(["poetry", "env", "info", "--path"], cwd=project_dir)
    if result is None or not result.ok:
        return None
    value = result.stdout.strip()
    return value or None
