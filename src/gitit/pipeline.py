"""Download a template: resolve, fetch into the cache, extract, install."""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import httpx
from pydantic import ValidationError

from .cache import CacheEntry, cache_entry, fetch_to_cache
from .config import EnvironmentSettings
from .errors import (
    DestinationConflictError,
    DestinationError,
    FetchError,
    HookError,
    ResolutionError,
)
from .extract import default_entry_rewriter, extract_archive
from .hooks import maybe_await, merge_hooks, merge_providers, run_hook
from .install import install_dependencies
from .models import (
    CachePolicy,
    DownloadOptions,
    DownloadTemplateResult,
    ExtractOptions,
    InstallOptions,
    Provider,
    ProviderOptions,
    TemplateInfo,
)
from .providers import builtin_providers
from .utils.http import auth_headers, new_client, normalize_headers

logger = logging.getLogger(__name__)

SOURCE_PROTOCOL_RE = re.compile(r"^([\w.-]+):")
_UNSAFE_NAME_RE = re.compile(r"[^0-9A-Za-z-]")


def sanitize_name(value: str) -> str:
    return _UNSAFE_NAME_RE.sub("-", value)


def split_identifier(template: str, default_provider: str) -> Tuple[str, str]:
    """Return ``(provider, source)`` for ``[<provider>:]<source>``.

    ``http``/``https`` identifiers keep the scheme as part of the source.
    """
    match = SOURCE_PROTOCOL_RE.match(template)
    if match is None:
        return default_provider, template
    provider = match.group(1)
    if provider in ("http", "https"):
        return provider, template
    return provider, template[match.end() :]


def apply_environment(
    options: DownloadOptions, settings: EnvironmentSettings
) -> DownloadOptions:
    """Fill options the caller left unset from the environment."""
    updates: dict[str, Any] = {}
    if options.registry is None and settings.registry:
        updates["registry"] = settings.registry
    if options.auth is None and settings.auth:
        updates["auth"] = settings.auth
    return replace(options, **updates) if updates else options


async def resolve_template(
    provider: Provider,
    provider_name: str,
    source: str,
    provider_options: ProviderOptions,
) -> TemplateInfo:
    try:
        value = await maybe_await(provider(source, provider_options))
    except ResolutionError as e:
        raise type(e)(
            f"Failed to download template from {provider_name}: {e}",
            provider=provider_name,
            source=source,
        ) from e
    except Exception as e:
        raise ResolutionError(
            f"Failed to download template from {provider_name}: {e}",
            provider=provider_name,
            source=source,
        ) from e

    if value is None:
        raise ResolutionError(
            f"Failed to resolve template from {provider_name}",
            provider=provider_name,
            source=source,
        )
    if isinstance(value, TemplateInfo):
        return value
    try:
        return TemplateInfo.model_validate(value)
    except ValidationError as e:
        raise ResolutionError(
            f"Invalid template info from {provider_name}: name and tar are required",
            provider=provider_name,
            source=source,
        ) from e


def resolve_cache_policy(options: DownloadOptions, entry: CacheEntry) -> CachePolicy:
    if options.offline:
        return CachePolicy.OFFLINE
    if options.prefer_offline and entry.exists():
        return CachePolicy.OFFLINE
    return CachePolicy.ONLINE


def prepare_destination(path: Path, *, force: bool = False, force_clean: bool = False) -> None:
    """Create ``path``, refusing to write into a non-empty directory unless forced."""
    try:
        if force_clean and (path.exists() or path.is_symlink()):
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        if path.exists():
            if not path.is_dir():
                raise DestinationConflictError(str(path))
            if not force and any(path.iterdir()):
                raise DestinationConflictError(str(path))
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DestinationError(f"Cannot prepare destination {path}: {e}") from e


def _as_result(value: Any, hook: str) -> DownloadTemplateResult:
    if isinstance(value, DownloadTemplateResult):
        return value
    if isinstance(value, Mapping):
        try:
            return DownloadTemplateResult.model_validate(value)
        except ValidationError as e:
            raise HookError(f"The {hook} hook returned an invalid result: {e}") from e
    raise HookError(
        f"The {hook} hook must return a DownloadTemplateResult, got {type(value).__name__}"
    )


async def download_template(
    template: str,
    options: Optional[DownloadOptions] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    log: Optional[logging.Logger] = None,
) -> DownloadTemplateResult:
    """Fetch ``template`` and extract it into the destination directory.

    ``client`` is reused for every request when given, otherwise a client is
    created for the duration of the call. ``log`` replaces the module logger.
    """
    log = log or logger
    options = apply_environment(options or DownloadOptions(), EnvironmentSettings.from_env())

    hooks = merge_hooks(options.plugins, options.hooks)
    template, options = await run_hook(hooks, "before_download", template, options)
    if not isinstance(options, DownloadOptions):
        raise HookError("The before_download hook must return DownloadOptions")

    cwd = Path(options.cwd or ".").resolve()
    providers = merge_providers(
        builtin_providers(options.registry, root=cwd),
        options.plugins,
        options.providers,
    )
    default_provider = options.provider or (
        "registry" if options.registry is not False else "github"
    )
    provider_name, source = split_identifier(template, default_provider)
    provider = providers.get(provider_name)
    if provider is None:
        raise ResolutionError(
            f"Unsupported provider: {provider_name}",
            provider=provider_name,
            source=source,
        )

    owns_client = client is None
    if client is None:
        client = new_client()
    try:
        info = await resolve_template(
            provider,
            provider_name,
            source,
            ProviderOptions(auth=options.auth, client=client, log=log),
        )
        info = info.model_copy(
            update={
                "name": sanitize_name(info.name),
                "default_dir": sanitize_name(info.default_dir or info.name),
            }
        )

        entry = cache_entry(provider_name, info.name, info.version)
        try:
            archive = await fetch_to_cache(
                info.tar,
                entry,
                client=client,
                headers={
                    **normalize_headers(auth_headers(options.auth)),
                    **normalize_headers(info.headers),
                },
                policy=resolve_cache_policy(options, entry),
                log=log,
            )
        except FetchError as e:
            raise FetchError(
                str(e), url=e.url, provider=provider_name, source=source
            ) from e
    finally:
        if owns_client:
            await client.aclose()

    result = DownloadTemplateResult(**info.model_dump(), source=source)
    result = _as_result(await run_hook(hooks, "after_download", result), "after_download")

    extract_path = (cwd / (options.dir or result.default_dir or result.name)).resolve()
    prepare_destination(extract_path, force=options.force, force_clean=options.force_clean)

    extract_options = ExtractOptions(
        file=archive,
        cwd=extract_path,
        on_entry=default_entry_rewriter(result.subdir),
    )
    result = result.model_copy(update={"dir": str(extract_path)})
    result, extract_options = await run_hook(hooks, "before_extract", result, extract_options)
    result = _as_result(result, "before_extract")

    await asyncio.to_thread(extract_archive, extract_options, log)

    result = _as_result(await run_hook(hooks, "after_extract", result), "after_extract")

    if options.install:
        install_options = InstallOptions(cwd=extract_path, silent=options.silent)
        result, install_options = await run_hook(
            hooks, "before_install", result, install_options
        )
        result = _as_result(result, "before_install")
        await install_dependencies(install_options, log)
        result = _as_result(await run_hook(hooks, "after_install", result), "after_install")

    return result


def download_template_sync(
    template: str,
    options: Optional[DownloadOptions] = None,
    **kwargs: Any,
) -> DownloadTemplateResult:
    """Blocking wrapper around :func:`download_template`."""
    return asyncio.run(download_template(template, options, **kwargs))
