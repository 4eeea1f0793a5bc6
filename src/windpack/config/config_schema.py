# src/windpack/config/config_schema.py
"""Schema validation, defaults, and normalization of merged configs."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, get_args, get_origin

from typing_extensions import NotRequired

from windpack.constants import (
    DEFAULT_APP_TYPE,
    DEFAULT_BASE,
    DEFAULT_CACHE_DIR,
    DEFAULT_MODE,
    DEFAULT_PUBLIC_DIR,
    DEFAULT_RESOLVE_EXTENSIONS,
    DEFAULT_SERVER_PORT,
    DEFAULT_STRICT_CONFIG,
    DEFAULT_SWC_EXCLUDE,
    DEFAULT_SWC_INCLUDE,
)
from windpack.errors import ConfigValidationError
from windpack.logs import get_app_logger
from windpack.merge import merge_config
from windpack.utils import (
    ValidationSummary,
    check_schema_conformance,
    collect_msg,
    schema_from_typeddict,
)
from windpack.utils.utils_types import is_typeddict_like

from .config_freeze import FrozenMapping
from .config_types import ValidatedConfig, WindpackConfig


# example values appended to type errors
FIELD_EXAMPLES: dict[str, str] = {
    "plugins": "[react()]",
    "appType": '"spa"',
    "root": '"/path/to/project"',
    "base": '"/"',
    "mode": '"production"',
    "cacheDir": '"node_modules/.cache/windpack"',
    "define": '{"__APP_VERSION__": \'"1.0.0"\'}',
    "publicDir": '"public"',
    "clearScreen": "False",
    "resolve.extensions": '[".js", ".ts"]',
    "resolve.preserveSymlinks": "True",
    "server.port": "3000",
    "server.base": '"/"',
    "webpackConfig": '{"plugins": []}',
    "swc.include": 're.compile(r"\\.tsx?$")',
    "swc.exclude": '"node_modules"',
    "strictConfig": "True",
}


def define_config(config: WindpackConfig) -> WindpackConfig:
    """Identity helper that gives config files a typed entry point."""
    return config


def build_default_config(cwd: Path | None = None) -> dict[str, Any]:
    """Return a fresh tree holding every field's default."""
    root = cwd if cwd is not None else Path.cwd()
    return {
        "plugins": [],
        "appType": DEFAULT_APP_TYPE,
        "root": str(root),
        "base": DEFAULT_BASE,
        "mode": DEFAULT_MODE,
        "cacheDir": DEFAULT_CACHE_DIR,
        "define": {},
        "publicDir": DEFAULT_PUBLIC_DIR,
        "clearScreen": True,
        "resolve": {
            "extensions": list(DEFAULT_RESOLVE_EXTENSIONS),
            "preserveSymlinks": True,
        },
        "server": {
            "port": DEFAULT_SERVER_PORT,
            "base": DEFAULT_BASE,
        },
        "webpackConfig": {},
        "swc": {
            "include": DEFAULT_SWC_INCLUDE,
            "exclude": DEFAULT_SWC_EXCLUDE,
        },
        "strictConfig": DEFAULT_STRICT_CONFIG,
    }


def resolve_strictness(candidate: Any, strict: bool | None = None) -> bool:
    """Explicit argument, then the config's own `strictConfig`, then default."""
    if strict is not None:
        return strict
    if isinstance(candidate, Mapping):
        value = candidate.get("strictConfig")
        if isinstance(value, bool):
            return value
    return DEFAULT_STRICT_CONFIG


def validate_config(
    candidate: Any,
    *,
    strict: bool | None = None,
) -> ValidationSummary:
    """Check a merged config against the schema, collecting every problem.

    Never raises for bad input. Unknown keys are fatal in strict mode and
    plain warnings otherwise.
    """
    logger = get_app_logger()
    strict_config = resolve_strictness(candidate, strict)
    summary = ValidationSummary(valid=True, strict=strict_config)

    if not isinstance(candidate, Mapping):
        collect_msg(
            "Top-level configuration must be a mapping of settings,"
            f" got {type(candidate).__name__}",
            strict=strict_config,
            summary=summary,
            is_error=True,
        )
        return summary

    check_schema_conformance(
        candidate,
        WindpackConfig,
        strict_config=strict_config,
        summary=summary,
        field_examples=FIELD_EXAMPLES,
    )
    logger.trace(
        "[validate_config] valid=%s errors=%d warnings=%d",
        summary.valid,
        len(summary.problems),
        len(summary.warnings),
    )
    return summary


def _unwrap(tp: Any) -> Any:
    if get_origin(tp) is NotRequired:
        return get_args(tp)[0]
    return tp


def _strip_unknown(value: Mapping[str, Any], schema_cls: type[Any]) -> dict[str, Any]:
    schema = schema_from_typeddict(schema_cls)
    cleaned: dict[str, Any] = {}
    for key, item in value.items():
        if key not in schema:
            continue
        field_type = _unwrap(schema[key])
        if is_typeddict_like(field_type) and isinstance(item, Mapping):
            cleaned[key] = _strip_unknown(item, field_type)
        else:
            cleaned[key] = item
    return cleaned


def _seed_defaults(
    defaults: Mapping[str, Any],
    candidate: Mapping[str, Any],
) -> dict[str, Any]:
    """Drop list defaults the candidate supplies itself.

    List defaults are seeds: a user-supplied list replaces them instead of
    being appended to them.
    """
    seeded: dict[str, Any] = {}
    for key, default in defaults.items():
        supplied = candidate.get(key)
        if isinstance(default, list) and supplied is not None:
            continue
        if isinstance(default, Mapping) and isinstance(supplied, Mapping):
            seeded[key] = _seed_defaults(default, supplied)
        else:
            seeded[key] = default
    return seeded


def normalize_config(
    candidate: Mapping[str, Any],
    *,
    cwd: Path | None = None,
) -> ValidatedConfig:
    """Fill in defaults, drop unknown keys, and freeze a validated config."""
    known = _strip_unknown(candidate, WindpackConfig)
    defaults = _seed_defaults(build_default_config(cwd), known)
    return FrozenMapping(merge_config(defaults, known))


def parse_config(
    candidate: Any,
    *,
    cwd: Path | None = None,
    strict: bool | None = None,
    path: Path | None = None,
) -> ValidatedConfig:
    """Validate then normalize; raise ConfigValidationError when invalid."""
    summary = validate_config(candidate, strict=strict)
    if not summary.valid:
        raise ConfigValidationError(path, summary)
    return normalize_config(candidate, cwd=cwd)
