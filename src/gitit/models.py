"""Core records passed through the download pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import httpx
from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:
    from .hooks.plugins import Plugin


class TemplateInfo(BaseModel):
    """Resolved metadata for a single template tarball.

    Provider-specific keys that are not part of the core record are kept in
    ``extras`` instead of being dropped.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    tar: str = Field(min_length=1)
    version: Optional[str] = None
    subdir: Optional[str] = None
    url: Optional[str] = None
    default_dir: Optional[str] = Field(default=None, alias="defaultDir")
    headers: Dict[str, Optional[str]] = Field(default_factory=dict)
    extras: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_extras(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        known = set()
        for name, info in cls.model_fields.items():
            known.add(name)
            if info.alias:
                known.add(info.alias)
        extras: Dict[str, Any] = dict(data.get("extras") or {})
        values: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "extras":
                continue
            if key in known:
                values[key] = value
            else:
                extras[key] = value
        values["extras"] = extras
        return values


class DownloadTemplateResult(TemplateInfo):
    """Final record returned to the caller."""

    source: str
    dir: str = ""


class CachePolicy(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    PREFER_OFFLINE = "prefer_offline"


@dataclass(frozen=True)
class ProviderOptions:
    auth: Optional[str] = None
    client: Optional[httpx.AsyncClient] = None
    # Providers log here instead of their module logger when set.
    log: Optional[logging.Logger] = None


ProviderResult = Union[TemplateInfo, Mapping[str, Any], None]
Provider = Callable[
    [str, ProviderOptions], Union[ProviderResult, Awaitable[ProviderResult]]
]
Hook = Callable[..., Any]
PluginSpec = Union["Plugin", Tuple["Plugin", Mapping[str, Any]]]


@dataclass(frozen=True)
class ExtractOptions:
    """What to unpack, where, and how each entry path is rewritten."""

    file: Path
    cwd: Path
    on_entry: Optional[Callable[[str], str]] = None


@dataclass(frozen=True)
class InstallOptions:
    cwd: Path
    silent: bool = False


@dataclass(frozen=True)
class DownloadOptions:
    """Options accepted by :func:`gitit.download_template`.

    ``registry`` is ``None`` for the default registry endpoint, a URL to use a
    custom one, or ``False`` to disable registry lookups entirely.
    """

    provider: Optional[str] = None
    force: bool = False
    force_clean: bool = False
    offline: bool = False
    prefer_offline: bool = False
    providers: Mapping[str, Provider] = field(default_factory=dict)
    dir: Optional[str] = None
    registry: Union[str, Literal[False], None] = None
    cwd: Optional[str] = None
    auth: Optional[str] = None
    install: bool = False
    silent: bool = False
    hooks: Mapping[str, Hook] = field(default_factory=dict)
    plugins: Sequence[PluginSpec] = ()


__all__ = [
    "TemplateInfo",
    "DownloadTemplateResult",
    "CachePolicy",
    "ProviderOptions",
    "Provider",
    "ProviderResult",
    "Hook",
    "PluginSpec",
    "ExtractOptions",
    "InstallOptions",
    "DownloadOptions",
]
