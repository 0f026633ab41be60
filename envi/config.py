"""Config file loading, validation, and persistence.

Schema on disk ($ENVI_HOME/config.json, default ~/.envi/config.json):

    {
        "manifest_files": ["package.json", "pyproject.toml"],
        "redacted_variables": ["GITHUB_PAT", "STRIPE_SECRET_KEY"]
    }

Both keys are optional and fall back to the defaults. Keys prefixed with "_"
(e.g. "_comment") are stripped on load.
"""

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from envi.constants import CONFIG_FILENAME, DEFAULT_MANIFEST_FILES, DEFAULT_REDACTED_VARIABLES
from envi.errors import ConfigError
from envi.store import envi_home


class EnviConfig(BaseModel):
    """Settings read once per command and passed to the operations that need them."""

    manifest_files: list[str] = Field(default_factory=lambda: list(DEFAULT_MANIFEST_FILES))
    redacted_variables: list[str] = Field(default_factory=lambda: list(DEFAULT_REDACTED_VARIABLES))


def config_path() -> Path:
    return envi_home() / CONFIG_FILENAME


def load_config(path: Path | None = None) -> EnviConfig:
    """Load and validate the config file.

    Returns the defaults when the file does not exist. Raises ConfigError if
    the file exists but is malformed.
    """
    path = path or config_path()
    if not path.exists():
        return EnviConfig()

    try:
        raw: object = json.loads(path.read_text(encoding="utf-8") or "{}")
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path.name} is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name} must be a JSON object at the top level")

    # Strip reserved/comment keys.
    data = {k: v for k, v in raw.items() if not k.startswith("_")}

    try:
        return EnviConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {path}: {exc}") from exc


def save_config(config: EnviConfig, path: Path | None = None) -> None:
    """Persist config to disk, creating directories as needed."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), indent=2) + "\n", encoding="utf-8")


def _add(items: list[str], value: str) -> tuple[list[str], bool]:
    if value in items:
        return items, False
    return [*items, value], True


def _remove(items: list[str], value: str) -> tuple[list[str], bool]:
    if value not in items:
        return items, False
    return [i for i in items if i != value], True


def add_redacted_variable(config: EnviConfig, name: str) -> tuple[EnviConfig, bool]:
    items, changed = _add(config.redacted_variables, name)
    return config.model_copy(update={"redacted_variables": items}), changed


def remove_redacted_variable(config: EnviConfig, name: str) -> tuple[EnviConfig, bool]:
    items, changed = _remove(config.redacted_variables, name)
    return config.model_copy(update={"redacted_variables": items}), changed


def add_manifest_file(config: EnviConfig, filename: str) -> tuple[EnviConfig, bool]:
    """Add a manifest file ahead of the existing ones; custom manifests take priority."""
    if filename in config.manifest_files:
        return config, False
    return config.model_copy(update={"manifest_files": [filename, *config.manifest_files]}), True


def remove_manifest_file(config: EnviConfig, filename: str) -> tuple[EnviConfig, bool]:
    items, changed = _remove(config.manifest_files, filename)
    return config.model_copy(update={"manifest_files": items}), changed
