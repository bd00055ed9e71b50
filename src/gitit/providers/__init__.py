"""Template providers keyed by their identifier prefix."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Union

from ..models import Provider
from .git import GitInfo, bitbucket, github, gitlab, parse_git_uri, sourcehut
from .http import http
from .registry import DEFAULT_REGISTRY, fetch_registry_entry, registry_provider

PROVIDERS: Dict[str, Provider] = {
    "http": http,
    "https": http,
    "github": github,
    "gh": github,
    "gitlab": gitlab,
    "bitbucket": bitbucket,
    "sourcehut": sourcehut,
}


def builtin_providers(
    registry: Union[str, bool, None] = None,
    *,
    root: Optional[Path] = None,
) -> Dict[str, Provider]:
    """Return the built-in table, plus ``registry`` unless it is disabled."""
    table = dict(PROVIDERS)
    if registry is not False:
        endpoint = registry if isinstance(registry, str) else None
        table["registry"] = registry_provider(endpoint, root=root)
    return table


__all__ = [
    "PROVIDERS",
    "DEFAULT_REGISTRY",
    "GitInfo",
    "builtin_providers",
    "fetch_registry_entry",
    "parse_git_uri",
    "registry_provider",
    "github",
    "gitlab",
    "bitbucket",
    "sourcehut",
    "http",
]
