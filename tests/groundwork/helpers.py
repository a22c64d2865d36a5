# ruff: noqa: E402

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from groundwork import exec as exec_util
from groundwork.context import EnvironmentContext
from groundwork.models import GroundworkConfig, ProjectSection
from groundwork.paths import ProvisionPaths, resolve_paths

REPO_URL = "https://git.example.com/team/app.git"
MANIFEST_TEXT = '[tool.poetry]\nname = "app"\n'
ENV_TEMPLATE_TEXT = "API_TOKEN=changeme\nDEBUG=1\n"

Effect = Callable[[exec_util.CommandRequest], None]


@dataclass
class _Handler:
    words: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    effect: Effect | None
    missing: bool


@dataclass
class FakeRunner:
    """Command runner that records requests and answers from registered handlers.

    A handler matches when every registered word appears in the argv. Later
    registrations win; unmatched commands succeed with empty output.
    """

    requests: list[exec_util.CommandRequest] = field(default_factory=list)
    _handlers: list[_Handler] = field(default_factory=list)

    def on(
        self,
        *words: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        effect: Effect | None = None,
        missing: bool = False,
    ) -> FakeRunner:
        self._handlers.append(
            _Handler(words, returncode, stdout, stderr, effect, missing)
        )
        return self

    def run(self, request: exec_util.CommandRequest) -> exec_util.CommandResult | None:
        self.requests.append(request)
        for handler in reversed(self._handlers):
            if all(word in request.argv for word in handler.words):
                if handler.missing:
                    return None
                if handler.effect is not None:
                    handler.effect(request)
                return exec_util.CommandResult(
                    argv=request.argv,
                    returncode=handler.returncode,
                    stdout=handler.stdout,
                    stderr=handler.stderr,
                )
        return exec_util.CommandResult(argv=request.argv, returncode=0, stdout="", stderr="")

    def calls(self, *words: str) -> list[exec_util.CommandRequest]:
        return [
            request
            for request in self.requests
            if all(word in request.argv for word in words)
        ]


def make_stub(directory: Path, name: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(0o755)
    return path


def make_context(
    tmp_path: Path,
    runner: FakeRunner,
    *,
    tools: tuple[str, ...] = ("git", "pyenv", "poetry"),
) -> EnvironmentContext:
    home = tmp_path / "home"
    home.mkdir(parents=True, exist_ok=True)
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    for tool in tools:
        make_stub(bin_dir, tool)
    return EnvironmentContext(home=home, environ={"PATH": str(bin_dir)}, runner=runner)


def make_config(**project: object) -> GroundworkConfig:
    data: dict[str, object] = {"name": "app", "repo_url": REPO_URL}
    data.update(project)
    return GroundworkConfig(project=ProjectSection(**data))


def make_workspace(tmp_path: Path, config: GroundworkConfig | None = None) -> ProvisionPaths:
    workspace = tmp_path / "ws"
    workspace.mkdir(parents=True, exist_ok=True)
    return resolve_paths(config or make_config(), workspace)


def populate_checkout(
    project_dir: Path,
    *,
    env_template: bool = True,
    hooks_config: bool = True,
    version: str | None = None,
) -> None:
    project_dir.mkdir(parents=True, exist_ok=True)
    (project_dir / "pyproject.toml").write_text(MANIFEST_TEXT, encoding="utf-8")
    (project_dir / ".git").mkdir(exist_ok=True)
    if env_template:
        (project_dir / ".env.example").write_text(ENV_TEMPLATE_TEXT, encoding="utf-8")
    if hooks_config:
        (project_dir / ".pre-commit-config.yaml").write_text("repos: []\n", encoding="utf-8")
    if version is not None:
        (project_dir / ".python-version").write_text(f"{version}\n", encoding="utf-8")


def clone_effect(**options: object) -> Effect:
    """Simulate ``git clone`` by materializing the destination checkout."""

    def effect(request: exec_util.CommandRequest) -> None:
        populate_checkout(Path(request.argv[-1]), **options)

    return effect


def provisioning_runner(**clone_options: object) -> FakeRunner:
    runner = FakeRunner()
    runner.on("git", "clone", effect=clone_effect(**clone_options))
    runner.on("poetry", "env", "info", stdout="/ws/app/.venv\n")
    return runner
