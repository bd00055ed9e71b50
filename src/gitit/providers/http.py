"""Provider for plain ``http(s)://`` tarball or registry-entry URLs."""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import PurePosixPath
from urllib.parse import urlsplit

import httpx

from ..errors import ResolutionError
from ..models import ProviderOptions, TemplateInfo
from ..utils.http import auth_headers, new_client, normalize_headers
from .registry import fetch_registry_entry

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r"filename=\"?([^\";]+)\"?")


def _basename(url: str) -> str:
    name = PurePosixPath(urlsplit(url).path).name
    for suffix in (".tar.gz", ".tgz", ".tar"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name or "template"


async def http(source: str, options: ProviderOptions) -> TemplateInfo:
    """Resolve a URL to a tarball, or to a registry entry when it serves JSON.

    The template name gets a short digest of the URL appended so unrelated
    URLs with the same file name never share a cache entry.
    """
    parts = urlsplit(source)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ResolutionError(f"Invalid URL {source!r}", source=source)

    if parts.path.endswith(".json"):
        return await fetch_registry_entry(source, options)

    name = _basename(source)
    client = options.client
    owns_client = client is None
    if client is None:
        client = new_client()
    try:
        head = await client.head(
            source, headers=normalize_headers(auth_headers(options.auth))
        )
        head.raise_for_status()
        if "application/json" in head.headers.get("content-type", ""):
            return await fetch_registry_entry(source, options)
        disposition = head.headers.get("content-disposition")
        if disposition:
            match = _FILENAME_RE.search(disposition)
            if match:
                name = match.group(1).split(".")[0]
    except httpx.HTTPError as e:
        (options.log or logger).debug("Failed to fetch HEAD for %s: %s", source, e)
    finally:
        if owns_client:
            await client.aclose()

    digest = hashlib.sha256(source.encode("utf-8")).hexdigest()[:8]
    return TemplateInfo(
        name=f"{name}-{digest}",
        version="",
        subdir="",
        tar=source,
        default_dir=name,
        headers=auth_headers(options.auth),
    )
