"""Seed the project's ``.env`` from its checked-in template."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .paths import ProvisionPaths
from .services.errors import IoFailedError

EnvFileAction = Literal["created", "preserved", "missing_template"]


@dataclass(frozen=True)
class EnvFileState:
    path: Path
    action: EnvFileAction


def ensure_env_file(paths: ProvisionPaths) -> EnvFileState:
    """Copy the template to the live env file unless it already exists.

    An existing env file is never touched. When neither file exists the
    state is ``missing_template`` and the caller decides how loudly to warn.
    """
    target = paths.env_file
    # A dangling symlink still counts as an existing env file.
    if target.exists() or target.is_symlink():
        return EnvFileState(target, "preserved")
    if not paths.env_template.is_file():
        return EnvFileState(target, "missing_template")
    try:
        shutil.copyfile(paths.env_template, target)
    except OSError as exc:
        raise IoFailedError(f"failed to create {target}: {exc}") from exc
    return EnvFileState(target, "created")
