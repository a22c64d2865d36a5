"""pyenv helpers: install the version manager and the project's Python."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from . import exec as exec_util
from . import log
from .context import EnvironmentContext
from .models import RuntimeSection
from .paths import ProvisionPaths, expand_home
from .services.errors import DependencyMissingError, ExternalCommandFailedError

VersionSource = Literal["marker", "default"]


@dataclass(frozen=True)
class RuntimeState:
    """Outcome of ``ensure_runtime``."""

    version: str
    requested: str
    source: VersionSource
    manager_installed: bool
    version_installed: bool
    interpreter: Path


def read_version_marker(path: Path) -> str | None:
    """Return the first version named in a ``.python-version`` style file.

    Blank lines and ``#`` comments are skipped; a missing or empty file gives
    ``None``.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (FileNotFoundError, IsADirectoryError):
        return None
    for line in text.splitlines():
        candidate = line.split("#", 1)[0].strip()
        if candidate:
            return candidate
    return None


def required_version(paths: ProvisionPaths, default: str) -> tuple[str, VersionSource]:
    marker = read_version_marker(paths.version_marker)
    if marker is None:
        return default, "default"
    return marker, "marker"


def pyenv_root(context: EnvironmentContext, runtime: RuntimeSection) -> Path:
    override = context.environ.get("PYENV_ROOT", "").strip()
    if override:
        return Path(override)
    return expand_home(runtime.root, context.home)


def activate(context: EnvironmentContext, root: Path) -> None:
    """Expose pyenv and its shims on the context PATH."""
    context.set("PYENV_ROOT", str(root))
    context.prepend_path(root / "shims")
    context.prepend_path(root / "bin")


def list_installed(context: EnvironmentContext) -> tuple[str, ...]:
    """Return installed Python versions (``pyenv versions --bare``)."""
    return exec_util.run_typed(
        exec_util.CommandSpec(
            request=exec_util.CommandRequest(
                argv=("pyenv", "versions", "--bare"), env=dict(context.environ)
            ),
            parser=exec_util.parse_lines,
        ),
        runner=context.runner,
    )


def _version_key(version: str) -> tuple[int, ...]:
    return tuple(int(part) if part.isdigit() else -1 for part in re.split(r"[.-]", version))


def resolve_installed(version: str, installed: tuple[str, ...]) -> str | None:
    """Match ``version`` against installed versions, newest first for prefixes.

    Example:
        >>> resolve_installed("3.11", ("3.10.4", "3.11.2", "3.11.8", "3.11.8/envs/tools"))
        '3.11.8'
        >>> resolve_installed("3.12", ("3.11.8",)) is None
        True
    """
    if version in installed:
        return version
    prefix = f"{version}."
    matches = [item for item in installed if item.startswith(prefix) and "/" not in item]
    if not matches:
        return None
    return max(matches, key=_version_key)


def interpreter_path(root: Path, version: str) -> Path:
    """Path of the ``python`` executable pyenv built for ``version``."""
    return root / "versions" / version / "bin" / "python"


def _installed(context: EnvironmentContext) -> tuple[str, ...]:
    try:
        return list_installed(context)
    except exec_util.CommandExecutionError as exc:
        raise ExternalCommandFailedError(str(exc), exit_code=exc.returncode) from exc


def install(context: EnvironmentContext, version: str) -> None:
    log.info(f"Installing Python {version} with pyenv (this can take a while)")
    result = context.run(["pyenv", "install", "--skip-existing", version], capture=False)
    if result is None:
        raise DependencyMissingError("missing required command: pyenv")
    if not result.ok:
        raise ExternalCommandFailedError(
            f"pyenv install {version} failed",
            exit_code=result.returncode,
            recovery_hint="check the pyenv build prerequisites for your platform",
        )


def set_local_version(context: EnvironmentContext, project_dir: Path, version: str) -> None:
    result = context.run(["pyenv", "local", version], cwd=project_dir)
    if result is None:
        raise DependencyMissingError("missing required command: pyenv")
    if not result.ok:
        raise ExternalCommandFailedError(
            f"pyenv local {version} failed: {result.output}", exit_code=result.returncode
        )


def _install_manager(context: EnvironmentContext, runtime: RuntimeSection) -> None:
    log.info("pyenv not found; installing it")
    result = context.shell(runtime.installer)
    if result is None:
        raise DependencyMissingError("missing required command: bash")
    if not result.ok:
        raise ExternalCommandFailedError(
            f"pyenv installer failed: {result.output}", exit_code=result.returncode
        )
    if context.which("pyenv") is None:
        raise DependencyMissingError(
            "pyenv installer finished but pyenv is still not on PATH",
            recovery_hint=f"check {context.environ.get('PYENV_ROOT', runtime.root)}/bin",
        )


def ensure_runtime(
    context: EnvironmentContext, paths: ProvisionPaths, runtime: RuntimeSection
) -> RuntimeState:
    """Install pyenv and the required Python if needed, then select it locally.

    A marker naming only a version prefix (``3.11``) is satisfied by the
    newest installed match; the selected version is always the full name.

    Raises:
        DependencyMissingError: pyenv could not be made available.
        ExternalCommandFailedError: a pyenv command failed.
    """
    root = pyenv_root(context, runtime)
    activate(context, root)
    manager_installed = False
    if context.which("pyenv") is None:
        _install_manager(context, runtime)
        manager_installed = True

    requested, source = required_version(paths, runtime.default_version)
    if source == "default":
        log.info(
            f"No {paths.version_marker.name} in {paths.project_dir}; "
            f"using default Python {requested}"
        )
    version = resolve_installed(requested, _installed(context))
    version_installed = False
    if version is None:
        install(context, requested)
        version_installed = True
        version = resolve_installed(requested, _installed(context)) or requested
    else:
        log.debug(f"Python {version} already installed")
    set_local_version(context, paths.project_dir, version)
    return RuntimeState(
        version=version,
        requested=requested,
        source=source,
        manager_installed=manager_installed,
        version_installed=version_installed,
        interpreter=interpreter_path(root, version),
    )
