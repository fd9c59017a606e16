"""Configuration loading and saving.

The configuration lives in a YAML file (``build-config.yaml`` by default).
Saving writes the whole document back, which is how updated versions are
persisted after a run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from buildy.config.models import BuildyConfig
from buildy.exceptions import ConfigError, ConfigNotFoundError, ConfigValidationError

DEFAULT_CONFIG_FILE = "build-config.yaml"

logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from ``path``.

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigValidationError: If the file is not a YAML mapping
    """
    if not path.is_file():
        raise ConfigNotFoundError(f"Configuration file not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Expected a mapping at the top of {path}")
    return data


def load_config(path: Path | str = DEFAULT_CONFIG_FILE) -> BuildyConfig:
    """Load and validate the configuration file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated configuration

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigValidationError: If the content is invalid
    """
    path = Path(path)
    data = load_yaml(path)

    try:
        config = BuildyConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration in {path}:\n{e}") from e

    logger.debug("Loaded %d subprojects from %s", len(config.sub_projects), path)
    return config


def dump_config(config: BuildyConfig) -> str:
    """Render the configuration as YAML."""
    # Versions are always written, even when they match the defaults
    data: dict[str, Any] = {"name": config.name, "version": config.version}
    data.update(
        config.model_dump(
            mode="json",
            by_alias=True,
            exclude_defaults=True,
            exclude={"name", "version", "sub_projects"},
        )
    )
    data["subProjects"] = [
        {
            "name": sp.name,
            "version": sp.version,
            **sp.model_dump(
                mode="json",
                by_alias=True,
                exclude_defaults=True,
                exclude={"name", "version"},
            ),
        }
        for sp in config.sub_projects
    ]
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def save_config(config: BuildyConfig, path: Path | str = DEFAULT_CONFIG_FILE) -> Path:
    """Write the configuration back to ``path``.

    Raises:
        ConfigError: If the file cannot be written
    """
    path = Path(path)
    content = dump_config(config)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not write configuration {path}: {e}") from e

    logger.debug("Saved configuration to %s", path)
    return path
