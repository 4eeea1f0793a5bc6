# src/windpack/config/__init__.py

"""Configuration handling for windpack.

Locating the config file, reading the project manifest, deciding the module
format, and validating/normalizing the merged result.
"""

from .config_format import detect_module_format, make_candidate
from .config_freeze import FrozenMapping, freeze, thaw
from .config_loader import config_candidate_names, find_config, log_validation_summary
from .config_schema import (
    FIELD_EXAMPLES,
    build_default_config,
    define_config,
    normalize_config,
    parse_config,
    resolve_strictness,
    validate_config,
)
from .config_types import (
    AppType,
    Command,
    ConfigCandidate,
    Mode,
    ModuleFormat,
    PackageMetadata,
    Plugin,
    PluginContext,
    PluginHook,
    ResolveOptions,
    ServerOptions,
    SwcOptions,
    ValidatedConfig,
    WindpackConfig,
)
from .package_data import (
    PackageMetadataResolver,
    find_nearest_pyproject,
    read_package_metadata,
)


__all__ = [  # noqa: RUF022
    # config_format
    "detect_module_format",
    "make_candidate",
    # config_freeze
    "FrozenMapping",
    "freeze",
    "thaw",
    # config_loader
    "config_candidate_names",
    "find_config",
    "log_validation_summary",
    # config_schema
    "FIELD_EXAMPLES",
    "build_default_config",
    "define_config",
    "normalize_config",
    "parse_config",
    "resolve_strictness",
    "validate_config",
    # config_types
    "AppType",
    "Command",
    "ConfigCandidate",
    "Mode",
    "ModuleFormat",
    "PackageMetadata",
    "Plugin",
    "PluginContext",
    "PluginHook",
    "ResolveOptions",
    "ServerOptions",
    "SwcOptions",
    "ValidatedConfig",
    "WindpackConfig",
    # package_data
    "PackageMetadataResolver",
    "find_nearest_pyproject",
    "read_package_metadata",
]
