"""Managed shell-profile blocks for future interactive shells.

Each profile file gets one block bounded by sentinel comments. Re-running
replaces the block in place instead of appending another copy.

Example:
    >>> text = upsert_block("alias ll='ls -l'\\n", "export A=1", "demo")
    >>> upsert_block(text, "export A=1", "demo") == text
    True
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path

from . import runtime
from .context import EnvironmentContext
from .models import GroundworkConfig
from .paths import ProvisionPaths, expand_home
from .services.errors import IoFailedError


@dataclass(frozen=True)
class ProfileState:
    written: tuple[Path, ...]
    unchanged: tuple[Path, ...]


def begin_marker(marker: str) -> str:
    return f"# >>> {marker} >>>"


def end_marker(marker: str) -> str:
    return f"# <<< {marker} <<<"


def render_block(body: str, marker: str) -> str:
    """Wrap ``body`` in sentinel lines.

    Example:
        >>> print(render_block("export A=1", "demo"), end="")
        # >>> demo >>>
        export A=1
        # <<< demo <<<
    """
    return f"{begin_marker(marker)}\n{body.strip()}\n{end_marker(marker)}\n"


def find_block(text: str, marker: str) -> tuple[int, int] | None:
    """Return the ``[start, end)`` span of the managed block, if present."""
    end_line = end_marker(marker)
    end_index = text.find(end_line)
    if end_index == -1:
        return None
    start = text.rfind(begin_marker(marker), 0, end_index)
    if start == -1:
        return None
    stop = end_index + len(end_line)
    if text.startswith("\n", stop):
        stop += 1
    return start, stop


def upsert_block(text: str, body: str, marker: str) -> str:
    """Replace the managed block in ``text`` or append one."""
    block = render_block(body, marker)
    span = find_block(text, marker)
    if span is not None:
        start, stop = span
        return f"{text[:start]}{block}{text[stop:]}"
    if not text:
        return block
    separator = "\n" if text.endswith("\n") else "\n\n"
    return f"{text}{separator}{block}"


def render_fragment(
    context: EnvironmentContext, config: GroundworkConfig, paths: ProvisionPaths
) -> str:
    """Shell lines that reproduce this run's environment in new shells."""
    pyenv_root = runtime.pyenv_root(context, config.runtime)
    poetry_bin = expand_home(config.dependencies.bin_dir, context.home)
    lines = [
        f'export PYENV_ROOT="{pyenv_root}"',
        'export PATH="$PYENV_ROOT/bin:$PATH"',
        "if command -v pyenv >/dev/null 2>&1; then",
        '  eval "$(pyenv init --path)"',
        '  eval "$(pyenv init -)"',
        "fi",
        f'export PATH="{poetry_bin}:$PATH"',
        f'export GROUNDWORK_PROJECT="{paths.project_dir}"',
    ]
    lines.extend(
        f"alias {name}={shlex.quote(command)}"
        for name, command in config.profile.aliases.items()
    )
    if config.profile.auto_cd:
        lines.extend(
            [
                f'if [ "$PWD" = "{paths.workspace_root}" ] && [ -d "$GROUNDWORK_PROJECT" ]; then',
                '  cd "$GROUNDWORK_PROJECT"',
                "fi",
            ]
        )
    return "\n".join(lines)


def render_login_fragment(profile_path: Path) -> str:
    """Login-shell lines that load the interactive profile.

    Example:
        >>> print(render_login_fragment(Path("/home/dev/.bashrc")))
        [ -f "/home/dev/.bashrc" ] && . "/home/dev/.bashrc"
    """
    return f'[ -f "{profile_path}" ] && . "{profile_path}"'


def _profile_path(context: EnvironmentContext, name: str) -> Path:
    path = expand_home(name, context.home)
    if not path.is_absolute():
        path = context.home / path
    return path


def _upsert_file(path: Path, body: str, marker: str) -> bool:
    """Write the managed block into ``path``; return whether the file changed."""
    try:
        current = path.read_text(encoding="utf-8") if path.exists() else ""
        updated = upsert_block(current, body, marker)
        if updated == current:
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(updated, encoding="utf-8")
    except OSError as exc:
        raise IoFailedError(f"failed to update {path}: {exc}") from exc
    return True


def append_shell_profile(
    context: EnvironmentContext, config: GroundworkConfig, paths: ProvisionPaths
) -> ProfileState:
    """Write the managed blocks into the configured profiles under ``home``.

    Interactive profiles get the environment block; login profiles get a
    block that sources the first interactive profile so login shells see the
    same environment.
    """
    settings = config.profile
    targets = [
        (_profile_path(context, name), render_fragment(context, config, paths))
        for name in settings.files
    ]
    if targets:
        login_body = render_login_fragment(targets[0][0])
        interactive = {path for path, _ in targets}
        for name in settings.login_files:
            login_path = _profile_path(context, name)
            # One marker per file: an interactive profile keeps its own block.
            if login_path not in interactive:
                targets.append((login_path, login_body))
    written: list[Path] = []
    unchanged: list[Path] = []
    for profile_path, body in targets:
        if _upsert_file(profile_path, body, settings.marker):
            written.append(profile_path)
        else:
            unchanged.append(profile_path)
    return ProfileState(written=tuple(written), unchanged=tuple(unchanged))
