"""Registry provider: resolve short template names via ``<name>.json`` entries."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..errors import RegistryValidationError, ResolutionError
from ..models import Provider, ProviderOptions, TemplateInfo
from ..utils.http import auth_headers, new_client, normalize_headers

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://raw.githubusercontent.com/unjs/giget/main/templates"
LOCAL_TEMPLATES_DIR = Path("src") / "templates"


def parse_registry_entry(payload: Any, origin: str) -> TemplateInfo:
    """Validate a registry JSON payload, requiring non-empty ``name`` and ``tar``."""
    if not isinstance(payload, dict) or not payload.get("name") or not payload.get("tar"):
        raise RegistryValidationError(
            f"Invalid template info from {origin}. name or tar fields are missing!"
        )
    try:
        return TemplateInfo.model_validate(payload)
    except ValidationError as e:
        raise RegistryValidationError(f"Invalid template info from {origin}: {e}") from e


def load_local_entry(
    name: str,
    root: Optional[Path] = None,
    log: Optional[logging.Logger] = None,
) -> Optional[TemplateInfo]:
    """Return the local override for ``name`` or ``None``.

    Any problem with the local file is logged and treated as a miss so the
    remote registry still gets a chance.
    """
    path = (root or Path.cwd()) / LOCAL_TEMPLATES_DIR / f"{name}.json"
    if not path.is_file():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return parse_registry_entry(payload, str(path))
    except (OSError, ValueError, RegistryValidationError) as e:
        (log or logger).debug("Error loading local template %s: %s", path, e)
        return None


async def fetch_registry_entry(
    url: str,
    options: ProviderOptions,
) -> TemplateInfo:
    """GET a single registry entry and validate it."""
    headers = normalize_headers(auth_headers(options.auth))
    client = options.client
    owns_client = client is None
    if client is None:
        client = new_client()
    try:
        response = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise ResolutionError(f"Failed to download template info from {url}: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    if response.status_code >= 400:
        raise ResolutionError(
            f"Failed to download template info from {url}: "
            f"{response.status_code} {response.reason_phrase}"
        )
    try:
        payload: Dict[str, Any] = response.json()
    except ValueError as e:
        raise RegistryValidationError(f"Invalid JSON from {url}: {e}") from e
    return parse_registry_entry(payload, url)


def registry_provider(
    endpoint: Optional[str] = None,
    *,
    root: Optional[Path] = None,
) -> Provider:
    """Build a provider that looks names up locally, then in ``endpoint``."""
    registry = (endpoint or DEFAULT_REGISTRY).rstrip("/")

    async def resolve(source: str, options: ProviderOptions) -> TemplateInfo:
        log = options.log or logger
        start = time.perf_counter()
        local = load_local_entry(source, root, log)
        if local is not None:
            log.debug(
                "Loaded %s template info from local templates in %.0fms",
                source,
                (time.perf_counter() - start) * 1000,
            )
            return local

        url = f"{registry}/{source}.json"
        info = await fetch_registry_entry(url, options)
        log.debug(
            "Fetched %s template info from %s in %.0fms",
            source,
            url,
            (time.perf_counter() - start) * 1000,
        )
        return info

    return resolve
