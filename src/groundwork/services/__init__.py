from .errors import (
    DependencyMissingError,
    ExternalCommandFailedError,
    IoFailedError,
    ServiceFailure,
    ValidationFailedError,
)
from .result import (
    StepFatal,
    StepOk,
    StepOutcome,
    StepWarning,
    step_fatal,
    step_ok,
    step_warning,
)

__all__ = [
    "DependencyMissingError",
    "ExternalCommandFailedError",
    "IoFailedError",
    "ServiceFailure",
    "StepFatal",
    "StepOk",
    "StepOutcome",
    "StepWarning",
    "ValidationFailedError",
    "step_fatal",
    "step_ok",
    "step_warning",
]
