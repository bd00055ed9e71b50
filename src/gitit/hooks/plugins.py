"""Hook and provider tables, and the ordered merge that builds them.

Merge order is always built-in, then each plugin in declaration order, then
caller-supplied entries. Later layers overwrite earlier ones for the same key.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from ..errors import HookError
from ..models import Hook, PluginSpec, Provider

HOOK_NAMES = (
    "before_download",
    "after_download",
    "before_extract",
    "after_extract",
    "before_install",
    "after_install",
)

# Hooks that receive and return a (state, request) pair.
_PAIR_HOOKS = {"before_download", "before_extract", "before_install"}

_HOOK_NOTE = "raised by the {} hook"
_HOOK_NOTE_RE = re.compile(r"^raised by the (\w+) hook$")

_CAMEL_CASE = {
    "beforeDownload": "before_download",
    "afterDownload": "after_download",
    "beforeExtract": "before_extract",
    "afterExtract": "after_extract",
    "beforeInstall": "before_install",
    "afterInstall": "after_install",
}


@dataclass(frozen=True)
class Plugin:
    """A named bundle of hooks and providers."""

    name: str
    version: str = "0.0.0"
    description: Optional[str] = None
    hooks: Mapping[str, Hook] = field(default_factory=dict)
    providers: Mapping[str, Provider] = field(default_factory=dict)


def canonical_hook_name(name: str) -> str:
    canonical = _CAMEL_CASE.get(name, name)
    if canonical not in HOOK_NAMES:
        raise HookError(
            f"Unknown hook {name!r}. Available hooks: {', '.join(HOOK_NAMES)}"
        )
    return canonical


def iter_plugins(
    plugins: Iterable[PluginSpec],
) -> Iterator[Tuple[Plugin, Mapping[str, Any]]]:
    """Yield ``(plugin, options)`` pairs; options are passed through untouched."""
    for item in plugins:
        if isinstance(item, tuple):
            plugin, options = item
        else:
            plugin, options = item, {}
        if not isinstance(plugin, Plugin):
            raise HookError(f"Expected a Plugin, got {type(plugin).__name__}")
        yield plugin, options


def _hook_table(hooks: Mapping[str, Hook], origin: str) -> Dict[str, Hook]:
    table: Dict[str, Hook] = {}
    for name, fn in hooks.items():
        if fn is None:
            continue
        if not callable(fn):
            raise HookError(f"Hook {name!r} from {origin} is not callable")
        table[canonical_hook_name(name)] = fn
    return table


def merge_hooks(
    plugins: Iterable[PluginSpec] = (),
    hooks: Optional[Mapping[str, Hook]] = None,
) -> Dict[str, Hook]:
    merged: Dict[str, Hook] = {}
    for plugin, _options in iter_plugins(plugins):
        merged.update(_hook_table(plugin.hooks, origin=f"plugin {plugin.name}"))
    merged.update(_hook_table(hooks or {}, origin="options"))
    return merged


def merge_providers(
    builtin: Mapping[str, Provider],
    plugins: Iterable[PluginSpec] = (),
    providers: Optional[Mapping[str, Provider]] = None,
) -> Dict[str, Provider]:
    merged: Dict[str, Provider] = dict(builtin)
    for plugin, _options in iter_plugins(plugins):
        merged.update({k: v for k, v in plugin.providers.items() if callable(v)})
    merged.update(providers or {})
    return merged


def failed_hook(exc: BaseException) -> Optional[str]:
    """Return the name of the hook ``exc`` escaped from, if any."""
    for note in getattr(exc, "__notes__", ()):
        match = _HOOK_NOTE_RE.match(note)
        if match:
            return match.group(1)
    return None


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def run_hook(hooks: Mapping[str, Hook], name: str, *args: Any) -> Any:
    """Run hook ``name`` if registered and return its (validated) output.

    Without a registered hook the input is returned as-is, so callers can
    unpack the result the same way in both cases. Exceptions raised by the hook
    propagate unchanged.
    """
    expected = 2 if name in _PAIR_HOOKS else 1
    if len(args) != expected:
        raise TypeError(f"{name} takes {expected} argument(s), got {len(args)}")

    hook = hooks.get(name)
    if hook is None:
        return args if expected == 2 else args[0]

    try:
        value = await maybe_await(hook(*args))
    except Exception as exc:
        exc.add_note(_HOOK_NOTE.format(name))
        raise

    if value is None:
        raise HookError(f"The {name} hook returned None")
    if expected == 2 and not (isinstance(value, tuple) and len(value) == 2):
        raise HookError(f"The {name} hook must return a 2-tuple")
    return value
