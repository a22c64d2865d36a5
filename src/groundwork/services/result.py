"""Tagged step outcomes for the provisioning sequence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

StepKind = Literal["ok", "warning", "fatal"]


@dataclass(frozen=True)
class StepOk(Generic[T]):
    """Step completed.

    Args:
        step: Step name.
        value: Typed state produced by the step.
        message: Optional human-readable summary.
    """

    step: str
    value: T
    message: str | None = None
    kind: StepKind = "ok"


@dataclass(frozen=True)
class StepWarning:
    """Best-effort step failed; the sequence continues.

    Args:
        step: Step name.
        message: Human-readable warning.
        value: Optional partial state.
    """

    step: str
    message: str
    value: object = None
    kind: StepKind = "warning"


@dataclass(frozen=True)
class StepFatal:
    """Step failed in a way that leaves the environment unusable.

    Args:
        step: Step name.
        message: Human-readable failure summary.
        exit_code: Non-zero process exit status to report.
        recovery_hint: Optional actionable hint.
    """

    step: str
    message: str
    exit_code: int = 1
    recovery_hint: str | None = None
    kind: StepKind = "fatal"


StepOutcome = StepOk[T] | StepWarning | StepFatal


def step_ok(step: str, value: T, message: str | None = None) -> StepOk[T]:
    return StepOk(step=step, value=value, message=message)


def step_warning(step: str, message: str, value: object = None) -> StepWarning:
    return StepWarning(step=step, message=message, value=value)


def step_fatal(
    step: str, message: str, *, exit_code: int = 1, recovery_hint: str | None = None
) -> StepFatal:
    return StepFatal(
        step=step,
        message=message,
        exit_code=exit_code if exit_code != 0 else 1,
        recovery_hint=recovery_hint,
    )
