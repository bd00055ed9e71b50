"""Configuration management for gitit."""

from .environment import EnvironmentSettings
from .file import (
    CONFIG_FILENAMES,
    GititConfig,
    PluginEntry,
    discover_config_path,
    load_config,
    load_object,
)

__all__ = [
    "CONFIG_FILENAMES",
    "EnvironmentSettings",
    "GititConfig",
    "PluginEntry",
    "discover_config_path",
    "load_config",
    "load_object",
]
