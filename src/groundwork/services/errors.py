"""Step failure contracts.

Provisioning steps return typed states on success and raise ServiceFailure on
expected precondition/runtime failures. Programmer bugs raise normal
exceptions.
"""

from __future__ import annotations

from typing import Literal

ServiceFailureCode = Literal[
    "validation_failed",
    "dependency_missing",
    "external_command_failed",
    "io_failed",
]


class ServiceFailure(Exception):
    """Expected failure: precondition, missing tool, or failed command.

    Raised by steps instead of returning a failure value. Use ``raise
    ServiceFailure(...) from exc`` to chain a causing exception; it is
    available as ``__cause__``. The provisioner turns it into a fatal step
    outcome and ``exit_code`` becomes the process exit status.
    """

    def __init__(
        self,
        code: ServiceFailureCode,
        message: str,
        *,
        recovery_hint: str | None = None,
        exit_code: int = 1,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.recovery_hint = recovery_hint
        self.exit_code = exit_code if exit_code != 0 else 1


class ValidationFailedError(ServiceFailure):
    """Precondition or configuration check failed."""

    def __init__(
        self, message: str, *, recovery_hint: str | None = None, exit_code: int = 1
    ) -> None:
        super().__init__(
            "validation_failed", message, recovery_hint=recovery_hint, exit_code=exit_code
        )


class DependencyMissingError(ServiceFailure):
    """Required tool is missing and could not be installed."""

    def __init__(
        self, message: str, *, recovery_hint: str | None = None, exit_code: int = 127
    ) -> None:
        super().__init__(
            "dependency_missing", message, recovery_hint=recovery_hint, exit_code=exit_code
        )


class ExternalCommandFailedError(ServiceFailure):
    """External command (git, pyenv, poetry) failed."""

    def __init__(
        self, message: str, *, recovery_hint: str | None = None, exit_code: int = 1
    ) -> None:
        super().__init__(
            "external_command_failed",
            message,
            recovery_hint=recovery_hint,
            exit_code=exit_code,
        )


class IoFailedError(ServiceFailure):
    """I/O operation failed (read, write, copy)."""

    def __init__(
        self, message: str, *, recovery_hint: str | None = None, exit_code: int = 1
    ) -> None:
        super().__init__("io_failed", message, recovery_hint=recovery_hint, exit_code=exit_code)
