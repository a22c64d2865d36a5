"""Injectable process environment for provisioning steps."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from . import exec as exec_util
from . import log


@dataclass
class EnvironmentContext:
    """Home directory, environment variables, and command runner for a run.

    Steps read and mutate this object instead of ``os.environ`` so a run can be
    exercised against a temporary home with fake tools.

    Example:
        >>> ctx = EnvironmentContext(home=Path("/home/dev"), environ={"PATH": "/usr/bin"})
        >>> ctx.prepend_path(Path("/home/dev/.local/bin"))
        >>> ctx.environ["PATH"]
        '/home/dev/.local/bin:/usr/bin'
    """

    home: Path
    environ: dict[str, str] = field(default_factory=dict)
    runner: exec_util.CommandRunner | None = None

    @classmethod
    def from_process(cls) -> EnvironmentContext:
        return cls(home=Path.home(), environ=dict(os.environ))

    @property
    def path_entries(self) -> list[str]:
        raw = self.environ.get("PATH", "")
        return [entry for entry in raw.split(os.pathsep) if entry]

    def prepend_path(self, entry: Path) -> None:
        """Put ``entry`` first on PATH, moving it if it is already present."""
        value = str(entry)
        entries = [item for item in self.path_entries if item != value]
        self.environ["PATH"] = os.pathsep.join([value, *entries])

    def set(self, name: str, value: str) -> None:
        self.environ[name] = value

    def which(self, name: str) -> str | None:
        return shutil.which(name, path=self.environ.get("PATH", ""))

    def run(
        self,
        argv: list[str] | tuple[str, ...],
        *,
        cwd: Path | None = None,
        capture: bool = True,
    ) -> exec_util.CommandResult | None:
        """Run a command with this context's environment and runner."""
        log.trace(f"$ {' '.join(argv)}")
        return exec_util.run_with_runner(
            exec_util.CommandRequest(
                argv=tuple(argv),
                cwd=cwd,
                env=dict(self.environ),
                capture_output=capture,
                text=True,
            ),
            runner=self.runner,
        )

    def shell(self, script: str, *, cwd: Path | None = None) -> exec_util.CommandResult | None:
        """Run a shell pipeline such as a ``curl | bash`` installer."""
        return self.run(["bash", "-c", script], cwd=cwd)
