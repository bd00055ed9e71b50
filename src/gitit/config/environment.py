"""Settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

_TRUTHY = {"1", "true", "yes", "on"}


def _truthy(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class EnvironmentSettings:
    registry: Optional[str] = None
    auth: Optional[str] = None
    debug: bool = False
    cache_dir: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvironmentSettings":
        env = os.environ if environ is None else environ
        return cls(
            registry=env.get("GITIT_REGISTRY") or None,
            auth=env.get("GITIT_AUTH") or None,
            debug=_truthy(env.get("GITIT_DEBUG")) or _truthy(env.get("DEBUG")),
            cache_dir=env.get("GITIT_CACHE_DIR") or None,
        )
