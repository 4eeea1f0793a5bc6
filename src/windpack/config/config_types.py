# src/windpack/config/config_types.py

import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol, TypedDict, runtime_checkable

from typing_extensions import NotRequired

from windpack.constants import MANIFEST_MODULE_TYPE


ModuleFormat = Literal["module", "script"]
Mode = Literal["development", "production"]
AppType = Literal["spa", "custom"]
Command = Literal["dev", "build", "config"]


class PluginContext(TypedDict):
    mode: Mode


# a hook may answer synchronously or with an awaitable
PluginHookResult = Mapping[str, Any] | None
PluginHook = Callable[
    [Mapping[str, Any], PluginContext],
    PluginHookResult | Awaitable[PluginHookResult],
]


@runtime_checkable
class Plugin(Protocol):
    """Anything with a `name`; an optional `config(current, ctx)` hook."""

    name: str


# --- config schema (file contract keys) -------------------------------------


class ResolveOptions(TypedDict):
    extensions: NotRequired[list[str]]
    preserveSymlinks: NotRequired[bool]


class ServerOptions(TypedDict):
    port: NotRequired[int]
    base: NotRequired[str]


class SwcOptions(TypedDict):
    include: NotRequired[str | re.Pattern[str]]
    exclude: NotRequired[str | re.Pattern[str]]


class WindpackConfig(TypedDict):
    plugins: NotRequired[list[Plugin]]
    appType: NotRequired[AppType]
    root: NotRequired[str]
    base: NotRequired[str]
    mode: NotRequired[Mode]
    cacheDir: NotRequired[str]
    define: NotRequired[dict[str, Any]]
    publicDir: NotRequired[str]
    clearScreen: NotRequired[bool]
    resolve: NotRequired[ResolveOptions]
    server: NotRequired[ServerOptions]
    webpackConfig: NotRequired[dict[str, Any]]
    swc: NotRequired[SwcOptions]
    strictConfig: NotRequired[bool]


# read-only, fully defaulted view of a WindpackConfig
ValidatedConfig = Mapping[str, Any]


# --- pipeline records ---------------------------------------------------------


@dataclass(frozen=True)
class ConfigCandidate:
    """The config file chosen for this run and how it would execute."""

    path: Path
    format: ModuleFormat


@dataclass(frozen=True)
class PackageMetadata:
    """The bits of the nearest pyproject.toml that the pipeline reads."""

    path: Path
    name: str | None = None
    version: str | None = None
    type: str | None = None
    dependencies: Mapping[str, str] = field(default_factory=dict)

    @property
    def dir(self) -> Path:
        return self.path.parent

    @property
    def is_module(self) -> bool:
        return self.type == MANIFEST_MODULE_TYPE
