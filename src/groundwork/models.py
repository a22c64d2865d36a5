"""Pydantic models for Groundwork configuration data."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PROJECT_NAME = "LLM-Engineers-Handbook"
DEFAULT_REPO_URL = "https://github.com/PacktPublishing/LLM-Engineers-Handbook.git"
DEFAULT_PYTHON_VERSION = "3.11.8"
DEFAULT_EXCLUDED_GROUP = "aws"
DEFAULT_MANIFEST = "pyproject.toml"
DEFAULT_PROFILE_MARKER = "groundwork"
PYENV_INSTALLER = "curl -fsSL https://pyenv.run | bash"
POETRY_INSTALLER = "curl -sSL https://install.python-poetry.org | python3 -"


def _strip_or_none(value: object) -> object:
    if isinstance(value, str):
        normalized = value.strip()
        return normalized or None
    return value


class ProjectSection(BaseModel):
    """Companion project identification.

    Attributes:
        name: Directory name of the checkout under the workspace root.
        repo_url: Remote repository cloned into the project directory.
        remote: Remote pulled when the checkout already exists.
        branch: Branch cloned and pulled.
        manifest: File whose presence marks a complete checkout.

    Example:
        >>> ProjectSection(name="app", repo_url="https://example.com/app.git").manifest
        'pyproject.toml'
    """

    model_config = ConfigDict(extra="forbid")

    name: str = DEFAULT_PROJECT_NAME
    repo_url: str | None = DEFAULT_REPO_URL
    remote: str = "origin"
    branch: str = "main"
    manifest: str = DEFAULT_MANIFEST

    @field_validator("repo_url", mode="before")
    @classmethod
    def normalize_repo_url(cls, value: object) -> object:
        return _strip_or_none(value)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().strip("/")
            if not normalized or "/" in normalized or normalized in {".", ".."}:
                raise ValueError("project name must be a single directory name")
            return normalized
        return value


class RuntimeSection(BaseModel):
    """Python version manager settings.

    Attributes:
        default_version: Version used when the project has no version marker.
        version_file: Version marker file name inside the project.
        root: pyenv installation root (``~`` is expanded against the home dir).
        installer: Shell pipeline that installs pyenv.
    """

    model_config = ConfigDict(extra="forbid")

    default_version: str = DEFAULT_PYTHON_VERSION
    version_file: str = ".python-version"
    root: str = "~/.pyenv"
    installer: str = PYENV_INSTALLER

    @field_validator("default_version", mode="before")
    @classmethod
    def normalize_version(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip()
            return normalized or DEFAULT_PYTHON_VERSION
        return value


class DependencySection(BaseModel):
    """Dependency manager settings.

    Attributes:
        exclude_group: Optional dependency group skipped on install.
        bin_dir: Directory the Poetry installer places ``poetry`` in.
        installer: Shell pipeline that installs Poetry.
        settings: ``poetry config`` options applied on every run.
    """

    model_config = ConfigDict(extra="forbid")

    exclude_group: str | None = DEFAULT_EXCLUDED_GROUP
    bin_dir: str = "~/.local/bin"
    installer: str = POETRY_INSTALLER
    settings: dict[str, str] = Field(
        default_factory=lambda: {
            "virtualenvs.in-project": "true",
            "virtualenvs.create": "true",
        }
    )

    @field_validator("exclude_group", mode="before")
    @classmethod
    def normalize_group(cls, value: object) -> object:
        return _strip_or_none(value)

    @field_validator("settings", mode="before")
    @classmethod
    def stringify_settings(cls, value: object) -> object:
        if isinstance(value, dict):
            return {
                str(key): (str(item).lower() if isinstance(item, bool) else str(item))
                for key, item in value.items()
            }
        return value


class HooksSection(BaseModel):
    """Commit-hook installation settings."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    config_file: str = ".pre-commit-config.yaml"
    command: list[str] = Field(default_factory=lambda: ["pre-commit", "install"])


class EnvFileSection(BaseModel):
    """Secrets file settings."""

    model_config = ConfigDict(extra="forbid")

    template: str = ".env.example"
    target: str = ".env"


class ProfileSection(BaseModel):
    """Shell profile settings.

    Attributes:
        enabled: Whether profile fragments are written at all.
        files: Interactive-shell profiles (relative to home) that receive the
            environment block.
        login_files: Login-shell profiles that get a block sourcing the first
            entry of ``files``.
        aliases: Shell aliases defined by the environment block.
        auto_cd: Change into the project when a shell starts in the workspace
            root.
        marker: Sentinel name bounding the managed block.
    """

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    files: list[str] = Field(default_factory=lambda: [".bashrc"])
    login_files: list[str] = Field(default_factory=lambda: [".bash_profile"])
    aliases: dict[str, str] = Field(
        default_factory=lambda: {
            "poe": "poetry poe",
            "poetry-shell": 'source "$(poetry env info --path)/bin/activate"',
        }
    )
    auto_cd: bool = True
    marker: str = DEFAULT_PROFILE_MARKER

    @field_validator("aliases")
    @classmethod
    def check_alias_names(cls, value: dict[str, str]) -> dict[str, str]:
        for name in value:
            if not name or any(char.isspace() or char in "='\"$" for char in name):
                raise ValueError(f"invalid alias name: {name!r}")
        return value

    @field_validator("marker", mode="before")
    @classmethod
    def normalize_marker(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip()
            return normalized or DEFAULT_PROFILE_MARKER
        return value


class GroundworkConfig(BaseModel):
    """Full provisioning configuration.

    Example:
        >>> GroundworkConfig().runtime.default_version == DEFAULT_PYTHON_VERSION
        True
    """

    model_config = ConfigDict(extra="forbid")

    project: ProjectSection = Field(default_factory=ProjectSection)
    runtime: RuntimeSection = Field(default_factory=RuntimeSection)
    dependencies: DependencySection = Field(default_factory=DependencySection)
    hooks: HooksSection = Field(default_factory=HooksSection)
    env_file: EnvFileSection = Field(default_factory=EnvFileSection)
    profile: ProfileSection = Field(default_factory=ProfileSection)
