from __future__ import annotations

from pathlib import Path

from groundwork.models import DEFAULT_REPO_URL, GroundworkConfig
from groundwork.provision import ProvisionReport, ProvisionRequest, Provisioner, run_step
from groundwork.services import (
    ExternalCommandFailedError,
    StepFatal,
    StepOk,
    StepWarning,
    step_warning,
)
from tests.groundwork.helpers import (
    ENV_TEMPLATE_TEXT,
    FakeRunner,
    make_config,
    make_context,
    populate_checkout,
    provisioning_runner,
)


def _request(workspace: Path, **kwargs: object) -> ProvisionRequest:
    return ProvisionRequest(workspace_root=workspace, config=make_config(), **kwargs)


def _steps(report: ProvisionReport) -> list[tuple[str, str]]:
    return [(outcome.step, outcome.kind) for outcome in report.outcomes]


def test_fresh_workspace_is_fully_provisioned(tmp_path: Path) -> None:
    runner = provisioning_runner()
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 0
    assert _steps(report) == [
        ("workspace", "ok"),
        ("repository", "ok"),
        ("manifest", "ok"),
        ("runtime", "ok"),
        ("dependency-manager", "ok"),
        ("interpreter", "ok"),
        ("dependencies", "ok"),
        ("hooks", "ok"),
        ("env-file", "ok"),
        ("profile", "ok"),
        ("environment", "ok"),
    ]
    project_dir = workspace.resolve() / "app"
    assert (project_dir / "pyproject.toml").is_file()
    assert len(runner.calls("git", "clone")) == 1
    assert runner.calls("pyenv", "install")[0].argv[-1] == "3.11.8"
    (install,) = runner.calls("poetry", "install", "--no-interaction")
    assert install.argv[-2:] == ("--without", "aws")
    assert (project_dir / ".env").read_text(encoding="utf-8") == ENV_TEMPLATE_TEXT
    assert report.value("environment") == "/ws/app/.venv"


def test_missing_workspace_is_fatal_and_never_clones(tmp_path: Path) -> None:
    runner = provisioning_runner()
    context = make_context(tmp_path, runner)

    report = Provisioner(context).run(_request(tmp_path / "nope"))

    assert report.exit_code != 0
    assert _steps(report) == [("workspace", "fatal")]
    assert runner.requests == []
    fatal = report.fatal
    assert fatal is not None
    assert "workspace directory does not exist" in fatal.message
    assert "home/" in fatal.message


def test_existing_checkout_with_failed_update_still_succeeds(tmp_path: Path) -> None:
    runner = provisioning_runner().on("git", "pull", returncode=1, stderr="offline")
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    populate_checkout(workspace / "app")

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 0
    assert runner.calls("git", "clone") == []
    assert len(runner.calls("git", "pull")) == 1
    assert [warning.step for warning in report.warnings] == ["repository"]


def test_existing_env_file_is_not_overwritten(tmp_path: Path) -> None:
    runner = provisioning_runner()
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    populate_checkout(workspace / "app")
    env_file = workspace / "app" / ".env"
    env_file.write_text("API_TOKEN=keep-me\n", encoding="utf-8")

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 0
    assert env_file.read_text(encoding="utf-8") == "API_TOKEN=keep-me\n"
    state = report.value("env-file")
    assert getattr(state, "action") == "preserved"


def test_clone_failure_stops_with_git_exit_code(tmp_path: Path) -> None:
    runner = FakeRunner().on("git", "clone", returncode=128)
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 128
    assert _steps(report)[-1] == ("repository", "fatal")
    assert runner.calls("pyenv") == []


def test_dependency_install_failure_is_fatal(tmp_path: Path) -> None:
    runner = provisioning_runner().on("poetry", "install", returncode=2)
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 2
    assert _steps(report)[-1] == ("dependencies", "fatal")
    assert runner.calls("pre-commit") == []
    assert not (workspace / "app" / ".env").exists()


def test_best_effort_steps_only_warn(tmp_path: Path) -> None:
    runner = provisioning_runner(env_template=False).on("pre-commit", returncode=1)
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 0
    assert [warning.step for warning in report.warnings] == ["hooks", "env-file"]


def test_skip_flags_leave_profiles_and_hooks_alone(tmp_path: Path) -> None:
    runner = provisioning_runner()
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(_request(workspace, skip_hooks=True, skip_profile=True))

    assert report.exit_code == 0
    assert runner.calls("pre-commit") == []
    assert not (context.home / ".bashrc").exists()


def test_second_run_is_idempotent(tmp_path: Path) -> None:
    runner = provisioning_runner()
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()
    provisioner = Provisioner(context)

    provisioner.run(_request(workspace))
    project_dir = workspace / "app"
    snapshot = {
        name: (project_dir / name).read_bytes() for name in ("pyproject.toml", ".env")
    }
    bashrc = (context.home / ".bashrc").read_text(encoding="utf-8")
    runner.on("pyenv", "versions", stdout="3.11.8\n")

    report = provisioner.run(_request(workspace))

    assert report.exit_code == 0
    assert len(runner.calls("git", "clone")) == 1
    assert len(runner.calls("git", "pull")) == 1
    assert len(runner.calls("pyenv", "install")) == 1
    assert {
        name: (project_dir / name).read_bytes() for name in ("pyproject.toml", ".env")
    } == snapshot
    assert (context.home / ".bashrc").read_text(encoding="utf-8") == bashrc
    profile_state = report.value("profile")
    assert getattr(profile_state, "written") == ()


def test_run_step_wraps_plain_values_and_failures() -> None:
    ok = run_step("demo", lambda: 42)
    assert isinstance(ok, StepOk)
    assert ok.value == 42

    warning = run_step("demo", lambda: step_warning("demo", "careful"))
    assert isinstance(warning, StepWarning)

    def boom() -> None:
        raise ExternalCommandFailedError("tool broke", exit_code=9, recovery_hint="retry")

    fatal = run_step("demo", boom)
    assert isinstance(fatal, StepFatal)
    assert fatal.exit_code == 9
    assert fatal.recovery_hint == "retry"


def test_default_config_clones_the_companion_project(tmp_path: Path) -> None:
    runner = provisioning_runner()
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(
        ProvisionRequest(workspace_root=workspace, config=GroundworkConfig())
    )

    assert report.exit_code == 0, _steps(report)
    (clone,) = runner.calls("git", "clone")
    assert DEFAULT_REPO_URL in clone.argv
    assert clone.argv[-1] == str(workspace.resolve() / "LLM-Engineers-Handbook")


def test_virtualenv_is_bound_to_selected_python(tmp_path: Path) -> None:
    runner = provisioning_runner(version="3.11")
    runner.on("pyenv", "versions", stdout="3.10.14\n3.11.4\n3.11.9\n")
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 0
    assert runner.calls("pyenv", "install") == []
    expected = str(context.home / ".pyenv" / "versions" / "3.11.9" / "bin" / "python")
    (use,) = runner.calls("poetry", "env", "use")
    assert use.argv == ("poetry", "env", "use", expected)
    assert use.cwd == workspace.resolve() / "app"
    assert report.value("interpreter") == expected
    argvs = [request.argv for request in runner.requests]
    assert argvs.index(use.argv) < argvs.index(
        ("poetry", "install", "--no-interaction", "--without", "aws")
    )


def test_interpreter_binding_failure_is_fatal(tmp_path: Path) -> None:
    runner = provisioning_runner().on("poetry", "env", "use", returncode=1, stderr="no python")
    context = make_context(tmp_path, runner)
    workspace = tmp_path / "ws"
    workspace.mkdir()

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 1
    assert _steps(report)[-1] == ("interpreter", "fatal")
    assert runner.calls("poetry", "install", "--no-interaction") == []


def test_manifest_removed_by_update_is_fatal(tmp_path: Path) -> None:
    workspace = tmp_path / "ws"
    project_dir = workspace / "app"
    populate_checkout(project_dir)

    def drop_manifest(request: object) -> None:
        (project_dir / "pyproject.toml").unlink()

    runner = provisioning_runner().on("git", "pull", effect=drop_manifest)
    context = make_context(tmp_path, runner)

    report = Provisioner(context).run(_request(workspace))

    assert report.exit_code == 1
    assert _steps(report)[-2:] == [("repository", "ok"), ("manifest", "fatal")]
    fatal = report.fatal
    assert fatal is not None
    assert "pyproject.toml not found" in fatal.message
    assert ".env.example" in fatal.message
    assert runner.calls("pyenv") == []
