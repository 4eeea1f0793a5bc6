# src/windpack/plugins.py
"""Plugin helpers and the ordered fold of plugin config hooks."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

from .config import Mode, PluginContext, PluginHook
from .config.config_freeze import freeze
from .constants import DEFAULT_MODE
from .errors import MergeError
from .logs import get_app_logger
from .merge import merge_config
from .utils import literal_to_set


@dataclass(frozen=True)
class SimplePlugin:
    """A plugin built from a name and an optional hook function."""

    name: str
    hook: PluginHook | None = None

    def config(
        self, current: Mapping[str, Any], ctx: PluginContext
    ) -> Any:
        if self.hook is None:
            return None
        return self.hook(current, ctx)


def define_plugin(name: str, config: PluginHook | None = None) -> SimplePlugin:
    """Build a plugin from a hook function.

    Example:
        def add_banner(current, ctx):
            return {"define": {"__BANNER__": ctx["mode"]}}

        banner = define_plugin("banner", add_banner)
    """
    return SimplePlugin(name=name, hook=config)


def plugin_name(plugin: Any) -> str:
    name = getattr(plugin, "name", None)
    return name if isinstance(name, str) else type(plugin).__name__


def literal_mode(value: str) -> Mode:
    if value not in literal_to_set(Mode):
        xmsg = f"Unknown mode {value!r} (expected development or production)"
        raise ValueError(xmsg)
    return cast("Mode", value)


def resolve_mode(
    raw: Mapping[str, Any],
    explicit: str | None = None,
    fallback: str = DEFAULT_MODE,
) -> Mode:
    """Explicit (CLI) mode, then the config's own `mode`, then `fallback`."""
    if explicit is not None:
        return literal_mode(explicit)
    configured = raw.get("mode")
    if isinstance(configured, str):
        try:
            return literal_mode(configured)
        except ValueError:
            # reported by validation later
            pass
    return literal_mode(fallback)


async def apply_plugins(raw: Mapping[str, Any], mode: Mode) -> dict[str, Any]:
    """Fold each plugin's `config` hook over the raw config, in list order.

    The plugin list is read once, before the fold: plugins contributed by a
    hook are merged into the result but never invoked. A hook returning None
    leaves the accumulator as it was.

    Raises:
        MergeError: a hook returned something other than a mapping or None.
    """
    logger = get_app_logger()
    accumulator: dict[str, Any] = dict(raw)

    plugins = raw.get("plugins") or []
    if not isinstance(plugins, (list, tuple)):
        # left for schema validation to report
        return accumulator

    ctx: PluginContext = {"mode": mode}
    for index, plugin in enumerate(tuple(plugins)):
        hook = getattr(plugin, "config", None)
        if not callable(hook):
            logger.trace("[plugins] %s has no config hook", plugin_name(plugin))
            continue

        name = plugin_name(plugin)
        result = hook(freeze(accumulator), ctx)
        if inspect.isawaitable(result):
            result = await result

        if result is None:
            logger.trace("[plugins] #%d %s: no changes", index, name)
            continue
        if not isinstance(result, Mapping):
            xmsg = (
                f"Plugin {name!r} config hook must return a mapping or None,"
                f" got {type(result).__name__}"
            )
            raise MergeError(xmsg, source=name)

        logger.trace(
            "[plugins] #%d %s contributed %s", index, name, list(result)
        )
        accumulator = merge_config(accumulator, result)

    return accumulator
