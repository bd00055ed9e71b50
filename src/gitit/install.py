"""Install a scaffolded project's dependencies with its package manager."""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import InstallError
from .models import InstallOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageManager:
    name: str
    lockfiles: Tuple[str, ...]
    command: Tuple[str, ...]


# Checked in order; the first manager whose lockfile exists wins.
PACKAGE_MANAGERS: Tuple[PackageManager, ...] = (
    PackageManager("bun", ("bun.lockb", "bun.lock"), ("bun", "install")),
    PackageManager("pnpm", ("pnpm-lock.yaml",), ("pnpm", "install")),
    PackageManager("yarn", ("yarn.lock",), ("yarn", "install")),
    PackageManager("npm", ("package-lock.json",), ("npm", "install")),
    PackageManager("uv", ("uv.lock",), ("uv", "sync")),
    PackageManager("poetry", ("poetry.lock",), ("poetry", "install")),
)

_BY_NAME = {pm.name: pm for pm in PACKAGE_MANAGERS}

# Used when no lockfile is present.
_MANIFEST_FALLBACKS = (("package.json", "npm"), ("pyproject.toml", "uv"))


def detect_package_manager(cwd: Path) -> Optional[PackageManager]:
    for manager in PACKAGE_MANAGERS:
        if any((cwd / lockfile).is_file() for lockfile in manager.lockfiles):
            return manager
    for manifest, name in _MANIFEST_FALLBACKS:
        if (cwd / manifest).is_file():
            return _BY_NAME[name]
    return None


def install_command(manager: PackageManager) -> List[str]:
    executable = shutil.which(manager.command[0])
    if executable is None:
        raise InstallError(
            manager.name, None, f"{manager.name} is not installed or not on PATH"
        )
    return [executable, *manager.command[1:]]


async def install_dependencies(
    options: InstallOptions, log: Optional[logging.Logger] = None
) -> Optional[PackageManager]:
    """Run the detected package manager in ``options.cwd``.

    Returns the manager used, or ``None`` when nothing could be detected.
    """
    log = log or logger
    cwd = Path(options.cwd)
    manager = detect_package_manager(cwd)
    if manager is None:
        log.warning("No package manager detected in %s, skipping install", cwd)
        return None

    command = install_command(manager)
    log.info("Installing dependencies with %s in %s", manager.name, cwd)
    stream = subprocess.DEVNULL if options.silent else None
    try:
        process = await asyncio.create_subprocess_exec(
            *command, cwd=str(cwd), stdout=stream, stderr=stream
        )
    except OSError as e:
        raise InstallError(manager.name, None, f"Failed to run {manager.name}: {e}") from e
    code = await process.wait()
    if code:
        raise InstallError(manager.name, code)
    return manager
