"""Tarball cache for gitit."""

from .store import (
    CacheEntry,
    cache_directory,
    cache_entry,
    fetch_to_cache,
    is_readable_archive,
)

__all__ = [
    "CacheEntry",
    "cache_directory",
    "cache_entry",
    "fetch_to_cache",
    "is_readable_archive",
]
