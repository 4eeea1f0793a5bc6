# src/windpack/__init__.py

"""Windpack: executable build configs with ordered plugin overrides.

Full developer API
==================
This package re-exports all non-private symbols from its submodules,
making it suitable for config files, plugins, and programmatic use.
Anything prefixed with "_" is considered internal and may change.

Highlights:
    - define_config()          → Typed entry point for windpack.config.* files
    - define_plugin()          → Build a plugin from a config hook
    - resolve_config()         → Locate, load, merge and validate (async)
    - merge_config()           → The deep merge used between plugin layers
    - build_engine_options()   → Bundling-engine hand-off
    - main()                   → CLI entrypoint
"""

from .actions import get_metadata, watch_config
from .cli import main
from .config import (
    AppType,
    Command,
    ConfigCandidate,
    FrozenMapping,
    Mode,
    ModuleFormat,
    PackageMetadata,
    PackageMetadataResolver,
    Plugin,
    PluginContext,
    PluginHook,
    ResolveOptions,
    ServerOptions,
    SwcOptions,
    ValidatedConfig,
    WindpackConfig,
    define_config,
    detect_module_format,
    find_config,
    normalize_config,
    parse_config,
    validate_config,
)
from .constants import (
    DEFAULT_ENV_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MODE,
    DEFAULT_STRICT_CONFIG,
    DEFAULT_WATCH_INTERVAL,
)
from .engine import build_engine_options, dump_engine_options
from .errors import (
    ConfigEvaluationError,
    ConfigValidationError,
    MergeError,
    ResolutionError,
    UnsupportedFormatError,
    WindpackError,
)
from .logs import get_app_logger
from .merge import merge_config
from .meta import (
    PROGRAM_CONFIG,
    PROGRAM_DISPLAY,
    PROGRAM_ENV,
    PROGRAM_PACKAGE,
    PROGRAM_SCRIPT,
    Metadata,
)
from .module_loader import load_config_module
from .pipeline import LoadedConfig, resolve_config, resolve_config_object
from .plugins import SimplePlugin, apply_plugins, define_plugin, resolve_mode
from .stitch import CompiledConfigModule, compile_config, stitch_config
from .utils import ValidationSummary


__all__ = [  # noqa: RUF022
    # actions
    "get_metadata",
    "watch_config",
    # cli
    "main",
    # config
    "AppType",
    "Command",
    "ConfigCandidate",
    "FrozenMapping",
    "Mode",
    "ModuleFormat",
    "PackageMetadata",
    "PackageMetadataResolver",
    "Plugin",
    "PluginContext",
    "PluginHook",
    "ResolveOptions",
    "ServerOptions",
    "SwcOptions",
    "ValidatedConfig",
    "WindpackConfig",
    "define_config",
    "detect_module_format",
    "find_config",
    "normalize_config",
    "parse_config",
    "validate_config",
    # constants
    "DEFAULT_ENV_LOG_LEVEL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MODE",
    "DEFAULT_STRICT_CONFIG",
    "DEFAULT_WATCH_INTERVAL",
    # engine
    "build_engine_options",
    "dump_engine_options",
    # errors
    "ConfigEvaluationError",
    "ConfigValidationError",
    "MergeError",
    "ResolutionError",
    "UnsupportedFormatError",
    "WindpackError",
    # logs
    "get_app_logger",
    # merge
    "merge_config",
    # meta
    "PROGRAM_CONFIG",
    "PROGRAM_DISPLAY",
    "PROGRAM_ENV",
    "PROGRAM_PACKAGE",
    "PROGRAM_SCRIPT",
    "Metadata",
    # module_loader
    "load_config_module",
    # pipeline
    "LoadedConfig",
    "resolve_config",
    "resolve_config_object",
    # plugins
    "SimplePlugin",
    "apply_plugins",
    "define_plugin",
    "resolve_mode",
    # stitch
    "CompiledConfigModule",
    "compile_config",
    "stitch_config",
    # utils
    "ValidationSummary",
]
