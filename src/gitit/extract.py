"""Unpack template tarballs into a destination directory."""

from __future__ import annotations

import gzip
import io
import logging
import shutil
import tarfile
import time
import zlib
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

from .errors import ExtractionError
from .models import ExtractOptions

logger = logging.getLogger(__name__)


def default_entry_rewriter(subdir: Optional[str] = None) -> Callable[[str], str]:
    """Strip the archive's wrapper directory and optionally remap ``subdir``.

    ``pkg-main/examples/basic/index.js`` becomes ``index.js`` for
    ``subdir="examples/basic"``; entries outside the subdir map to ``""``
    and are not written.
    """
    prefix = (subdir or "").strip("/")

    def rewrite(path: str) -> str:
        stripped = "/".join(path.split("/")[1:])
        if not prefix:
            return stripped
        if stripped.startswith(f"{prefix}/"):
            return stripped[len(prefix) + 1 :]
        return ""

    return rewrite


def _read_archive(path: Path) -> bytes:
    data = path.read_bytes()
    if path.name.endswith(".tar"):
        return data
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error):
        logger.debug("%s is not gzip compressed, reading it as a plain tar", path)
        return data


def _safe_target(root: Path, name: str) -> Optional[Path]:
    relative = PurePosixPath(name)
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        return None
    target = (root / Path(*relative.parts)).resolve()
    if not target.is_relative_to(root):
        return None
    return target


def extract_archive(options: ExtractOptions, log: Optional[logging.Logger] = None) -> List[Path]:
    """Extract ``options.file`` into ``options.cwd`` and return the written files.

    Only regular files and directories are materialised. Nothing is rolled
    back on failure.
    """
    log = log or logger
    root = Path(options.cwd).resolve()
    start = time.perf_counter()
    written: List[Path] = []
    try:
        raw = _read_archive(Path(options.file))
        with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as archive:
            for member in archive:
                name = member.name
                if options.on_entry is not None:
                    name = options.on_entry(name)
                if not name:
                    continue

                target = _safe_target(root, name)
                if target is None:
                    log.warning("Skipping %s: path escapes %s", member.name, root)
                    continue

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isreg():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = archive.extractfile(member)
                    if source is None:
                        continue
                    with source, open(target, "wb") as f:
                        shutil.copyfileobj(source, f)
                    if member.mode & 0o100:
                        target.chmod(target.stat().st_mode | 0o111)
                    written.append(target)
                else:
                    log.debug("Skipping %s: unsupported entry type %r", member.name, member.type)
    except tarfile.TarError as e:
        raise ExtractionError(f"Invalid archive {options.file}: {e}") from e
    except OSError as e:
        raise ExtractionError(f"Failed to extract {options.file} to {root}: {e}") from e

    log.debug(
        "Extracted %d files to %s in %.0fms",
        len(written),
        root,
        (time.perf_counter() - start) * 1000,
    )
    return written
