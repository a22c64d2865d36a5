"""Configuration loading for Groundwork.

Config is layered, later layers win: built-in defaults, the per-user
``config.json``, the workspace ``groundwork.json``, an explicit ``--config``
file, ``GROUNDWORK_*`` environment variables, then CLI overrides. Every layer
is a partial JSON payload validated with the Pydantic models in
``groundwork.models``.

Example:
    >>> merge_payloads({"project": {"name": "a"}}, {"project": {"branch": "dev"}})
    {'project': {'name': 'a', 'branch': 'dev'}}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from pydantic import ValidationError

from . import log, paths
from .models import GroundworkConfig
from .services.errors import IoFailedError, ValidationFailedError

ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "GROUNDWORK_REPO_URL": ("project", "repo_url"),
    "GROUNDWORK_BRANCH": ("project", "branch"),
    "GROUNDWORK_PROJECT_NAME": ("project", "name"),
    "GROUNDWORK_PYTHON": ("runtime", "default_version"),
    "GROUNDWORK_EXCLUDE_GROUP": ("dependencies", "exclude_group"),
}


def load_json(path: Path) -> dict | None:
    """Load a JSON object file if it exists.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed payload as a dict, or ``None`` if the file does not exist.

    Example:
        >>> from pathlib import Path
        >>> load_json(Path("missing.json")) is None
        True
    """
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValidationFailedError(f"invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise IoFailedError(f"failed to read {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationFailedError(f"config at {path} must be a JSON object")
    return payload


def merge_payloads(base: dict, override: Mapping) -> dict:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = merge_payloads(current, value)
        else:
            merged[key] = value
    return merged


def env_payload(environ: Mapping[str, str]) -> dict:
    """Translate ``GROUNDWORK_*`` variables into a partial config payload.

    Example:
        >>> env_payload({"GROUNDWORK_BRANCH": "dev", "HOME": "/root"})
        {'project': {'branch': 'dev'}}
    """
    payload: dict = {}
    for name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(name)
        if value is None or not value.strip():
            continue
        payload.setdefault(section, {})[key] = value.strip()
    return payload


def parse_config(payload: dict, source: str | None = None) -> GroundworkConfig:
    """Validate a merged config payload."""
    try:
        return GroundworkConfig.model_validate(payload)
    except ValidationError as exc:
        location = f" from {source}" if source else ""
        raise ValidationFailedError(f"invalid configuration{location}:\n{exc}") from exc


def load_config(
    workspace_root: Path,
    *,
    environ: Mapping[str, str],
    config_path: Path | None = None,
    overrides: Mapping | None = None,
    user_config: Path | None = None,
) -> GroundworkConfig:
    """Load and validate the layered configuration for a workspace."""
    candidates = [
        user_config if user_config is not None else paths.user_config_path(),
        paths.workspace_config_path(workspace_root),
    ]
    if config_path is not None:
        if not config_path.exists():
            raise ValidationFailedError(f"config file not found: {config_path}")
        candidates.append(config_path)

    payload: dict = {}
    sources: list[str] = []
    for candidate in candidates:
        layer = load_json(candidate)
        if layer is None:
            continue
        log.debug(f"Loaded config layer {candidate}")
        sources.append(str(candidate))
        payload = merge_payloads(payload, layer)
    payload = merge_payloads(payload, env_payload(environ))
    if overrides:
        payload = merge_payloads(payload, overrides)
    return parse_config(payload, ", ".join(sources) or None)
