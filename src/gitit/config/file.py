"""Project config file discovery and loading.

A config file is looked up by walking from the working directory up to the
filesystem root, taking the first of ``CONFIG_FILENAMES`` found. Hooks,
providers and plugins are referenced as ``module:attribute`` import strings,
resolved relative to the config file's directory.
"""

from __future__ import annotations

import importlib
import sys
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterator, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigError, HookError
from ..hooks.plugins import Plugin, canonical_hook_name
from ..models import DownloadOptions, PluginSpec

CONFIG_FILENAMES = (
    "gitit.config.yml",
    "gitit.config.yaml",
    ".gitit.yml",
    ".gitit.yaml",
)


class PluginEntry(BaseModel):
    """A plugin reference with options passed through to the plugin."""

    plugin: str
    options: Dict[str, Any] = Field(default_factory=dict)


class GititConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    verbose: bool = False
    dir: Optional[str] = None
    force: bool = False
    force_clean: bool = Field(default=False, alias="forceClean")
    install: bool = False
    silent: bool = False
    auth: Optional[str] = None
    offline: bool = False
    prefer_offline: bool = Field(default=False, alias="preferOffline")
    registry: Union[Literal[False], str, None] = None
    provider: Optional[str] = None
    hooks: Dict[str, str] = Field(default_factory=dict)
    providers: Dict[str, str] = Field(default_factory=dict)
    plugins: List[Union[str, PluginEntry]] = Field(default_factory=list)

    # Set by load_config; import strings are resolved relative to it.
    source_dir: Optional[Path] = Field(default=None, exclude=True)

    def to_options(self, **overrides: Any) -> DownloadOptions:
        """Build :class:`DownloadOptions`; non-``None`` overrides win."""
        hooks: Dict[str, Any] = {}
        for name, spec in self.hooks.items():
            try:
                hook_name = canonical_hook_name(name)
            except HookError as e:
                raise ConfigError(str(e)) from e
            hooks[hook_name] = load_object(spec, self.source_dir)
        providers = {
            name: load_object(spec, self.source_dir)
            for name, spec in self.providers.items()
        }
        plugins: List[PluginSpec] = []
        for entry in self.plugins:
            if isinstance(entry, str):
                plugins.append(_load_plugin(entry, self.source_dir))
            else:
                plugins.append((_load_plugin(entry.plugin, self.source_dir), entry.options))

        values: Dict[str, Any] = {
            "provider": self.provider,
            "force": self.force,
            "force_clean": self.force_clean,
            "offline": self.offline,
            "prefer_offline": self.prefer_offline,
            "dir": self.dir,
            "registry": self.registry,
            "auth": self.auth,
            "install": self.install,
            "silent": self.silent,
            "hooks": hooks,
            "providers": providers,
            "plugins": tuple(plugins),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return DownloadOptions(**values)


@contextmanager
def _import_path(directory: Optional[Path]) -> Iterator[None]:
    if directory is None or str(directory) in sys.path:
        yield
        return
    sys.path.insert(0, str(directory))
    try:
        yield
    finally:
        sys.path.remove(str(directory))


def load_object(spec: str, search_dir: Optional[Path] = None) -> Any:
    """Import ``module:attribute`` (the attribute may be dotted)."""
    module_name, sep, attribute = spec.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigError(f"Invalid import string {spec!r}, expected 'module:attribute'")
    with _import_path(search_dir):
        try:
            obj: Any = importlib.import_module(module_name)
        except ImportError as e:
            raise ConfigError(f"Cannot import {module_name!r} for {spec!r}: {e}") from e
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError(f"{spec!r}: {module_name} has no attribute {attribute!r}") from e
    return obj


def _load_plugin(spec: str, search_dir: Optional[Path]) -> Plugin:
    plugin = load_object(spec, search_dir)
    if not isinstance(plugin, Plugin):
        raise ConfigError(f"{spec!r} is not a gitit Plugin")
    return plugin


@lru_cache(maxsize=None)
def discover_config_path(start: Path) -> Optional[Path]:
    """Return the nearest config file at or above ``start``, if any."""
    for directory in (start, *start.parents):
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def load_config(path: Optional[Path] = None, *, cwd: Optional[Path] = None) -> GititConfig:
    """Load ``path``, or the discovered config file, or the defaults."""
    if path is None:
        path = discover_config_path((cwd or Path.cwd()).resolve())
    if path is None:
        return GititConfig()
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    try:
        config = GititConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e
    return config.model_copy(update={"source_dir": path.resolve().parent})
