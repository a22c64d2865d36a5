"""The provisioning sequence.

Steps run strictly in order. Each returns a tagged outcome (``StepOk``,
``StepWarning`` or ``StepFatal``); ``ProvisionReport.record`` is the single
place that decides whether the sequence continues. Steps raise
``ServiceFailure`` for fatal conditions and the runner converts it into a
``StepFatal`` carrying the failure's exit code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, cast

from . import dependencies, envfile, git, hooks, log, profile, runtime
from .context import EnvironmentContext
from .models import GroundworkConfig
from .paths import ProvisionPaths, describe_directory, resolve_paths
from .services import (
    IoFailedError,
    ServiceFailure,
    StepFatal,
    StepOk,
    StepOutcome,
    StepWarning,
    ValidationFailedError,
    step_fatal,
    step_ok,
    step_warning,
)

Step = Callable[["ProvisionRequest", ProvisionPaths], object]


@dataclass(frozen=True)
class ProvisionRequest:
    workspace_root: Path
    config: GroundworkConfig
    skip_hooks: bool = False
    skip_profile: bool = False


@dataclass
class ProvisionReport:
    """Ordered outcomes of one provisioning run."""

    outcomes: list[StepOutcome] = field(default_factory=list)

    def record(self, outcome: StepOutcome) -> bool:
        """Store ``outcome``, report it, and return whether to continue."""
        self.outcomes.append(outcome)
        if isinstance(outcome, StepFatal):
            log.error(f"[{outcome.step}] {outcome.message}")
            if outcome.recovery_hint:
                log.info(f"hint: {outcome.recovery_hint}")
            return False
        if isinstance(outcome, StepWarning):
            log.warning(f"[{outcome.step}] {outcome.message}")
            return True
        if outcome.message:
            log.success(f"[{outcome.step}] {outcome.message}")
        return True

    @property
    def fatal(self) -> StepFatal | None:
        for outcome in self.outcomes:
            if isinstance(outcome, StepFatal):
                return outcome
        return None

    @property
    def warnings(self) -> tuple[StepWarning, ...]:
        return tuple(item for item in self.outcomes if isinstance(item, StepWarning))

    @property
    def exit_code(self) -> int:
        fatal = self.fatal
        return fatal.exit_code if fatal is not None else 0

    def value(self, step: str) -> object:
        for outcome in self.outcomes:
            if outcome.step == step:
                return outcome.value if not isinstance(outcome, StepFatal) else None
        return None


def run_step(name: str, fn: Callable[[], object]) -> StepOutcome:
    """Run one step, turning ``ServiceFailure`` into ``StepFatal``."""
    log.debug(f"step: {name}")
    try:
        result = fn()
    except ServiceFailure as exc:
        return step_fatal(
            name, str(exc), exit_code=exc.exit_code, recovery_hint=exc.recovery_hint
        )
    if isinstance(result, (StepOk, StepWarning, StepFatal)):
        return result
    return step_ok(name, result)


class Provisioner:
    """Runs the fixed provisioning sequence against one workspace."""

    def __init__(self, context: EnvironmentContext) -> None:
        self._context = context
        self._runtime: runtime.RuntimeState | None = None

    @property
    def context(self) -> EnvironmentContext:
        return self._context

    def run(self, request: ProvisionRequest) -> ProvisionReport:
        report = ProvisionReport()
        self._runtime = None
        workspace = run_step("workspace", lambda: self.resolve_workspace(request))
        if not report.record(workspace):
            return report
        paths = cast(ProvisionPaths, report.value("workspace"))
        for name, step in self.steps():
            outcome = run_step(name, lambda: step(request, paths))
            if not report.record(outcome):
                break
        if report.fatal is None:
            log.success(f"Workspace ready: {paths.project_dir}")
        return report

    def steps(self) -> list[tuple[str, Step]]:
        return [
            ("repository", self.ensure_repository),
            ("manifest", self.check_manifest),
            ("runtime", self.ensure_runtime),
            ("dependency-manager", self.ensure_dependency_manager),
            ("interpreter", self.bind_interpreter),
            ("dependencies", self.install_dependencies),
            ("hooks", self.install_hooks),
            ("env-file", self.ensure_env_file),
            ("profile", self.append_shell_profile),
            ("environment", self.report_environment),
        ]

    def resolve_workspace(self, request: ProvisionRequest) -> StepOutcome:
        root = request.workspace_root
        if not root.is_dir():
            raise ValidationFailedError(
                f"workspace directory does not exist: {root}\n"
                f"{describe_directory(root.parent)}",
                recovery_hint="pass --workspace or set GROUNDWORK_WORKSPACE",
            )
        paths = resolve_paths(request.config, root.resolve())
        return step_ok("workspace", paths, f"workspace {paths.workspace_root}")

    def ensure_repository(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        state = git.ensure_repository(self._context, paths, request.config.project)
        if state.update_failed:
            return step_warning(
                "repository", f"could not update {state.project_dir}: {state.detail}", state
            )
        return step_ok("repository", state, f"repository {state.action}")

    def check_manifest(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        if not paths.manifest.is_file():
            raise ValidationFailedError(
                f"{paths.manifest.name} not found in {paths.project_dir}\n"
                f"{describe_directory(paths.project_dir)}"
            )
        return step_ok("manifest", paths.manifest)

    def ensure_runtime(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        state = runtime.ensure_runtime(self._context, paths, request.config.runtime)
        self._runtime = state
        return step_ok("runtime", state, f"Python {state.version} ({state.source})")

    def ensure_dependency_manager(
        self, request: ProvisionRequest, paths: ProvisionPaths
    ) -> StepOutcome:
        state = dependencies.ensure_dependency_manager(
            self._context, request.config.dependencies
        )
        return step_ok("dependency-manager", state, f"poetry at {state.executable}")

    def bind_interpreter(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        if self._runtime is None:
            raise ValidationFailedError("no Python runtime was selected for the project")
        python = str(self._runtime.interpreter)
        dependencies.use_interpreter(self._context, paths.project_dir, python)
        return step_ok(
            "interpreter", python, f"virtualenv bound to Python {self._runtime.version}"
        )

    def install_dependencies(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        group = request.config.dependencies.exclude_group
        dependencies.install_dependencies(self._context, paths.project_dir, group)
        suffix = f" (without {group})" if group else ""
        return step_ok("dependencies", group, f"dependencies installed{suffix}")

    def install_hooks(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        if request.skip_hooks or not request.config.hooks.enabled:
            return step_ok("hooks", False, "hook install skipped")
        problem = hooks.install_hooks(self._context, paths, request.config.hooks)
        if problem is not None:
            return step_warning("hooks", problem)
        return step_ok("hooks", True, "commit hooks installed")

    def ensure_env_file(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        state = envfile.ensure_env_file(paths)
        if state.action == "missing_template":
            return step_warning(
                "env-file",
                f"neither {paths.env_file.name} nor {paths.env_template.name} exists "
                f"in {paths.project_dir}",
                state,
            )
        if state.action == "created":
            return step_ok("env-file", state, f"created {state.path} from {paths.env_template.name}")
        return step_ok("env-file", state, f"kept existing {state.path}")

    def append_shell_profile(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        if request.skip_profile or not request.config.profile.enabled:
            return step_ok("profile", None, "shell profile skipped")
        try:
            state = profile.append_shell_profile(self._context, request.config, paths)
        except IoFailedError as exc:
            return step_warning("profile", str(exc))
        if not state.written:
            return step_ok("profile", state, "shell profiles already up to date")
        names = ", ".join(path.name for path in state.written)
        return step_ok("profile", state, f"updated {names}")

    def report_environment(self, request: ProvisionRequest, paths: ProvisionPaths) -> StepOutcome:
        venv = dependencies.env_info(self._context, paths.project_dir)
        if venv is None:
            return step_warning("environment", "poetry reported no virtualenv for the project")
        return step_ok("environment", venv, f"virtualenv {venv}")
