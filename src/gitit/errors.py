"""Error taxonomy for gitit.

Each error carries the pipeline ``stage`` it belongs to so the CLI can report
which step failed in a single line.
"""

from __future__ import annotations

from typing import Optional


class GititError(Exception):
    """Base class for all gitit failures."""

    stage = "gitit"


class ConfigError(GititError):
    """Raised when a config file or import string cannot be loaded."""

    stage = "config"


class ResolutionError(GititError):
    """Raised when a template identifier cannot be resolved by a provider."""

    stage = "resolve"

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.source = source


class RegistryValidationError(ResolutionError):
    """Raised when a registry entry is missing its required fields."""


class FetchError(GititError):
    """Raised when a tarball cannot be fetched and no usable cache exists."""

    stage = "fetch"

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        provider: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.provider = provider
        self.source = source


class DestinationError(GititError):
    """Raised when the destination directory cannot be prepared."""

    stage = "destination"


class DestinationConflictError(DestinationError):
    """Raised when the destination directory exists and is not empty."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Destination {path} already exists and is not empty. "
            "Use --force to write into it or --force-clean to replace it."
        )
        self.path = path


class ExtractionError(GititError):
    """Raised when an archive cannot be unpacked."""

    stage = "extract"


class InstallError(GititError):
    """Raised when the detected package manager fails."""

    stage = "install"

    def __init__(self, manager: str, returncode: Optional[int], message: Optional[str] = None) -> None:
        super().__init__(
            message or f"{manager} install exited with code {returncode}"
        )
        self.manager = manager
        self.returncode = returncode


class HookError(GititError):
    """Raised by (or about) a hook that cannot continue the pipeline."""

    stage = "hook"


__all__ = [
    "GititError",
    "ConfigError",
    "ResolutionError",
    "RegistryValidationError",
    "FetchError",
    "DestinationError",
    "DestinationConflictError",
    "ExtractionError",
    "InstallError",
    "HookError",
]
