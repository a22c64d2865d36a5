"""pre-commit hook installation."""

from __future__ import annotations

from . import dependencies
from .context import EnvironmentContext
from .models import HooksSection
from .paths import ProvisionPaths


def install_hooks(
    context: EnvironmentContext, paths: ProvisionPaths, hooks: HooksSection
) -> str | None:
    """Install commit hooks inside the project virtualenv.

    Best-effort: returns a warning message instead of raising.
    """
    if not paths.hooks_config.is_file():
        return f"{paths.hooks_config.name} not found; skipping hook install"
    result = dependencies.run(context, paths.project_dir, list(hooks.command))
    if result is None:
        return "poetry not found; skipping hook install"
    if not result.ok:
        detail = f": {result.output}" if result.output else ""
        return f"{' '.join(hooks.command)} failed (exit {result.returncode}){detail}"
    return None
