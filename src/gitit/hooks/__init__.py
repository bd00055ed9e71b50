"""Extension points and plugin merging for gitit."""

from .plugins import (
    HOOK_NAMES,
    Plugin,
    canonical_hook_name,
    failed_hook,
    iter_plugins,
    maybe_await,
    merge_hooks,
    merge_providers,
    run_hook,
)

__all__ = [
    "HOOK_NAMES",
    "Plugin",
    "canonical_hook_name",
    "failed_hook",
    "iter_plugins",
    "maybe_await",
    "merge_hooks",
    "merge_providers",
    "run_hook",
]
