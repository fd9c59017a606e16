"""Configuration management for buildy."""

from __future__ import annotations

from buildy.config.loader import DEFAULT_CONFIG_FILE, dump_config, load_config, save_config
from buildy.config.models import (
    CENTRAL_SECTION,
    BuildyConfig,
    CentralIncrement,
    CommitsConfig,
    SubProjectConfig,
)

__all__ = [
    "CENTRAL_SECTION",
    "DEFAULT_CONFIG_FILE",
    "BuildyConfig",
    "CentralIncrement",
    "CommitsConfig",
    "SubProjectConfig",
    "dump_config",
    "load_config",
    "save_config",
]
