"""On-disk tarball cache with ETag revalidation.

Layout::

    <cache_root>/<provider>/<name>/<version-or-name>.tar.gz
    <cache_root>/<provider>/<name>/<version-or-name>.tar.gz.json   {"etag": "..."}

The archive is always replaced before its sidecar is written. A crash in
between leaves an old tag next to a new archive, which only costs a refetch.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import sys
import tarfile
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import httpx

from ..errors import FetchError
from ..models import CachePolicy

logger = logging.getLogger(__name__)


def cache_directory() -> Path:
    """Return the per-user cache root, honouring ``GITIT_CACHE_DIR``."""
    override = os.getenv("GITIT_CACHE_DIR")
    if override:
        return Path(override).expanduser().resolve()
    if sys.platform == "win32":
        return Path(tempfile.gettempdir()) / "gitit"
    xdg = os.getenv("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg).expanduser().resolve() / "gitit"
    return Path.home() / ".cache" / "gitit"


@dataclass(frozen=True)
class CacheEntry:
    archive: Path

    @property
    def info_path(self) -> Path:
        return self.archive.with_name(self.archive.name + ".json")

    def exists(self) -> bool:
        return self.archive.is_file()

    def read_etag(self) -> Optional[str]:
        try:
            data = json.loads(self.info_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        etag = data.get("etag")
        return etag if isinstance(etag, str) else None

    def write_etag(self, etag: Optional[str]) -> None:
        data = {"etag": etag} if etag else {}
        tmp = _temp_sibling(self.info_path, ".tmp")
        try:
            tmp.write_text(json.dumps(data), encoding="utf-8")
            os.replace(tmp, self.info_path)
        finally:
            tmp.unlink(missing_ok=True)


def _temp_sibling(path: Path, suffix: str) -> Path:
    """Create an empty, uniquely named file next to ``path``."""
    fd, name = tempfile.mkstemp(dir=path.parent, prefix=f"{path.name}.", suffix=suffix)
    os.close(fd)
    return Path(name)


_UNSAFE_SEGMENT_RE = re.compile(r"[^\w.@-]")


def _safe_segment(value: str) -> str:
    segment = _UNSAFE_SEGMENT_RE.sub("-", value)
    return "-" if segment in ("", ".", "..") else segment


def cache_entry(
    provider: str,
    name: str,
    version: Optional[str] = None,
    root: Optional[Path] = None,
) -> CacheEntry:
    """Deterministic cache location for a ``(provider, name, version)`` key."""
    base = root or cache_directory()
    filename = f"{_safe_segment(version or name)}.tar.gz"
    return CacheEntry(archive=base / _safe_segment(provider) / _safe_segment(name) / filename)


def is_readable_archive(path: Path) -> bool:
    try:
        return tarfile.is_tarfile(path)
    except OSError:
        return False


async def _download(
    url: str,
    entry: CacheEntry,
    headers: Mapping[str, str],
    client: httpx.AsyncClient,
    log: logging.Logger,
) -> bool:
    """Fetch ``url`` into ``entry`` unless the stored ETag is still current.

    Returns ``True`` when a full download happened.
    """
    stored = entry.read_etag()
    etag: Optional[str] = None
    try:
        head = await client.head(url, headers=dict(headers))
        if head.status_code < 400:
            etag = head.headers.get("etag")
    except httpx.HTTPError as e:
        log.debug("HEAD %s failed, fetching unconditionally: %s", url, e)

    if etag is not None and etag == stored and entry.exists():
        log.debug("%s is up to date (etag %s)", entry.archive, etag)
        return False

    # One temporary file per download; concurrent fetches never share it.
    try:
        tmp = _temp_sibling(entry.archive, ".part")
    except OSError as e:
        raise FetchError(f"Failed to write {entry.archive}: {e}", url=url) from e
    try:
        async with client.stream("GET", url, headers=dict(headers)) as response:
            if response.status_code >= 400:
                raise FetchError(
                    f"Failed to download {url}: "
                    f"{response.status_code} {response.reason_phrase}",
                    url=url,
                )
            with open(tmp, "wb") as f:
                async for chunk in response.aiter_bytes():
                    await asyncio.to_thread(f.write, chunk)
            etag = response.headers.get("etag") or etag
        os.replace(tmp, entry.archive)
        entry.write_etag(etag)
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to download {url}: {e}", url=url) from e
    except OSError as e:
        raise FetchError(f"Failed to write {entry.archive}: {e}", url=url) from e
    finally:
        tmp.unlink(missing_ok=True)
    return True


async def fetch_to_cache(
    url: str,
    entry: CacheEntry,
    *,
    client: httpx.AsyncClient,
    headers: Optional[Mapping[str, str]] = None,
    policy: CachePolicy = CachePolicy.ONLINE,
    log: Optional[logging.Logger] = None,
) -> Path:
    """Make sure ``entry`` holds the archive for ``url`` and return its path.

    A failed download falls back to a previously cached archive, if one
    exists and still opens as a tar archive.
    """
    log = log or logger

    if policy is CachePolicy.PREFER_OFFLINE and entry.exists():
        policy = CachePolicy.OFFLINE

    if policy is CachePolicy.OFFLINE:
        if not entry.exists():
            raise FetchError(
                f"Tarball not found: {entry.archive} (offline)", url=url
            )
        log.debug("Using cached %s (offline)", entry.archive)
        return entry.archive

    entry.archive.parent.mkdir(parents=True, exist_ok=True)
    start = time.perf_counter()
    try:
        downloaded = await _download(url, entry, headers or {}, client, log)
    except FetchError as e:
        if not entry.exists():
            raise
        if not is_readable_archive(entry.archive):
            raise FetchError(
                f"{e} (cached copy at {entry.archive} is not a readable archive)",
                url=url,
            ) from e
        log.warning("Download error, using cached version %s: %s", entry.archive, e)
        return entry.archive

    if downloaded:
        log.debug(
            "Downloaded %s to %s in %.0fms",
            url,
            entry.archive,
            (time.perf_counter() - start) * 1000,
        )
    return entry.archive
