"""gitit - download project templates from git hosts, URLs and registries."""

from .errors import (
    ConfigError,
    DestinationConflictError,
    DestinationError,
    ExtractionError,
    FetchError,
    GititError,
    HookError,
    InstallError,
    RegistryValidationError,
    ResolutionError,
)
from .hooks import Plugin
from .models import (
    DownloadOptions,
    DownloadTemplateResult,
    ExtractOptions,
    InstallOptions,
    ProviderOptions,
    TemplateInfo,
)
from .pipeline import download_template, download_template_sync

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "download_template",
    "download_template_sync",
    "Plugin",
    "DownloadOptions",
    "DownloadTemplateResult",
    "ExtractOptions",
    "InstallOptions",
    "ProviderOptions",
    "TemplateInfo",
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
