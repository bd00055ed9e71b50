from __future__ import annotations

import io
import tarfile
from pathlib import Path
from typing import Callable, Dict

import pytest

import gitit.config.file as config_file_mod

GITIT_ENV = (
    "GITIT_REGISTRY",
    "GITIT_AUTH",
    "GITIT_DEBUG",
    "DEBUG",
    "GITIT_GITHUB_URL",
    "GITIT_GITLAB_URL",
    "XDG_CACHE_HOME",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path: Path) -> Path:
    """Keep the user's environment and cache out of every test."""
    for name in GITIT_ENV:
        monkeypatch.delenv(name, raising=False)
    cache_root = tmp_path / ".gitit-cache"
    monkeypatch.setenv("GITIT_CACHE_DIR", str(cache_root))
    config_file_mod.discover_config_path.cache_clear()
    return cache_root


def build_tarball(
    files: Dict[str, str],
    root: str = "template-main",
    compress: bool = True,
) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz" if compress else "w") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{root}/{name}" if root else name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def make_tarball() -> Callable[..., bytes]:
    return build_tarball
