"""Subprocess helpers for running external tools."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generic, Mapping, Protocol, TypeVar

ParsedT = TypeVar("ParsedT")


@dataclass(frozen=True)
class CommandRequest:
    """One external tool invocation.

    ``capture_output=False`` lets long-running installers stream straight to
    the terminal; the result then carries only the exit status.
    """

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    capture_output: bool = True
    text: bool = True


@dataclass(frozen=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return (self.stderr or self.stdout or "").strip()


class CommandRunner(Protocol):
    def run(self, request: CommandRequest) -> CommandResult | None: ...


class SubprocessCommandRunner:
    """Runs requests with ``subprocess.run``; a missing executable gives ``None``."""

    def run(self, request: CommandRequest) -> CommandResult | None:
        run_kwargs: dict[str, object] = {
            "cwd": request.cwd,
            "env": dict(request.env) if request.env is not None else None,
            "check": False,
        }
        if request.capture_output:
            run_kwargs["capture_output"] = True
            run_kwargs["text"] = request.text
        try:
            completed = subprocess.run(list(request.argv), **run_kwargs)
        except FileNotFoundError:
            return None
        return CommandResult(
            argv=request.argv,
            returncode=completed.returncode,
            stdout=completed.stdout if isinstance(completed.stdout, str) else "",
            stderr=completed.stderr if isinstance(completed.stderr, str) else "",
        )


_DEFAULT_COMMAND_RUNNER: CommandRunner = SubprocessCommandRunner()


@dataclass(frozen=True)
class CommandSpec(Generic[ParsedT]):
    """A request plus the parser applied to its successful output."""

    request: CommandRequest
    parser: Callable[[CommandResult], ParsedT]


@dataclass(frozen=True)
class CommandExecutionError(RuntimeError):
    """A typed command was missing or exited non-zero."""

    request: CommandRequest
    detail: str
    result: CommandResult | None = None

    def __str__(self) -> str:
        return self.detail

    @property
    def returncode(self) -> int:
        # 127 mirrors the shell's status for a command that was not found.
        if self.result is None:
            return 127
        return self.result.returncode


def run_with_runner(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult | None:
    return (runner or _DEFAULT_COMMAND_RUNNER).run(request)


def missing_command_detail(request: CommandRequest) -> str:
    if not request.argv:
        return "missing required command"
    return f"missing required command: {request.argv[0]}"


def command_failure_detail(request: CommandRequest, result: CommandResult) -> str:
    command_text = " ".join(request.argv)
    if result.output:
        return f"command failed: {command_text}\n{result.output}"
    return f"command failed: {command_text}"


def run_typed(
    spec: CommandSpec[ParsedT], *, runner: CommandRunner | None = None
) -> ParsedT:
    """Run ``spec.request`` and hand its successful result to ``spec.parser``.

    Raises:
        CommandExecutionError: the executable is missing or exited non-zero.
    """
    result = run_with_runner(spec.request, runner=runner)
    if result is None:
        raise CommandExecutionError(
            request=spec.request, detail=missing_command_detail(spec.request)
        )
    if not result.ok:
        raise CommandExecutionError(
            request=spec.request,
            result=result,
            detail=command_failure_detail(spec.request, result),
        )
    return spec.parser(result)


def parse_lines(result: CommandResult) -> tuple[str, ...]:
    """Split stdout into stripped, non-empty lines.

    Example:
        >>> parse_lines(CommandResult(argv=("x",), returncode=0, stdout=" a\\n\\nb\\n", stderr=""))
        ('a', 'b')
    """
    return tuple(line.strip() for line in result.stdout.splitlines() if line.strip())
