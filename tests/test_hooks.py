from __future__ import annotations

import asyncio

import pytest

from gitit.errors import HookError
from gitit.hooks import (
    Plugin,
    canonical_hook_name,
    failed_hook,
    iter_plugins,
    merge_hooks,
    merge_providers,
    run_hook,
)


def builtin_provider(source, options):
    return {"name": "builtin", "tar": "https://x"}


def plugin_provider(source, options):
    return {"name": "plugin", "tar": "https://x"}


def caller_provider(source, options):
    return {"name": "caller", "tar": "https://x"}


def test_provider_merge_order() -> None:
    plugin = Plugin("p", providers={"gh": plugin_provider, "extra": plugin_provider})

    merged = merge_providers({"gh": builtin_provider, "gitlab": builtin_provider}, [plugin])
    assert merged["gh"] is plugin_provider
    assert merged["gitlab"] is builtin_provider
    assert merged["extra"] is plugin_provider

    merged = merge_providers({"gh": builtin_provider}, [plugin], {"gh": caller_provider})
    assert merged["gh"] is caller_provider


def test_later_plugins_override_earlier_ones() -> None:
    first = Plugin("first", hooks={"after_download": lambda r: "first"})
    second = Plugin("second", hooks={"afterDownload": lambda r: "second"})

    hooks = merge_hooks([first, second])
    assert asyncio.run(run_hook(hooks, "after_download", "r")) == "second"

    hooks = merge_hooks([first, second], {"after_download": lambda r: "caller"})
    assert asyncio.run(run_hook(hooks, "after_download", "r")) == "caller"


def test_plugin_options_are_passed_through() -> None:
    plugin = Plugin("p")
    options = {"anything": object()}
    assert list(iter_plugins([plugin, (plugin, options)])) == [
        (plugin, {}),
        (plugin, options),
    ]


def test_non_plugin_is_rejected() -> None:
    with pytest.raises(HookError):
        merge_hooks([{"name": "not-a-plugin"}])


def test_hook_names() -> None:
    assert canonical_hook_name("beforeExtract") == "before_extract"
    assert canonical_hook_name("after_install") == "after_install"
    with pytest.raises(HookError, match="Unknown hook"):
        canonical_hook_name("on_error")


def test_missing_hook_is_identity() -> None:
    assert asyncio.run(run_hook({}, "after_extract", "result")) == "result"
    assert asyncio.run(run_hook({}, "before_extract", "result", "opts")) == (
        "result",
        "opts",
    )


def test_async_hooks_are_awaited() -> None:
    async def before_install(result, options):
        return result + "!", options

    value = asyncio.run(
        run_hook({"before_install": before_install}, "before_install", "r", "o")
    )
    assert value == ("r!", "o")


def test_hook_returning_none_is_an_error() -> None:
    with pytest.raises(HookError, match="returned None"):
        asyncio.run(run_hook({"after_download": lambda r: None}, "after_download", "r"))


def test_pair_hook_must_return_pair() -> None:
    with pytest.raises(HookError, match="2-tuple"):
        asyncio.run(
            run_hook({"before_download": lambda t, o: t}, "before_download", "t", "o")
        )


def test_hook_exceptions_propagate_unchanged() -> None:
    boom = RuntimeError("boom")

    def after_extract(result):
        raise boom

    with pytest.raises(RuntimeError) as excinfo:
        asyncio.run(run_hook({"after_extract": after_extract}, "after_extract", "r"))

    assert excinfo.value is boom
    assert "raised by the after_extract hook" in excinfo.value.__notes__
    assert failed_hook(excinfo.value) == "after_extract"
    assert failed_hook(RuntimeError("elsewhere")) is None


def test_non_callable_hook_is_rejected() -> None:
    with pytest.raises(HookError, match="not callable"):
        merge_hooks([], {"after_download": "nope"})
