# src/windpack/module_loader.py
"""Execute a compiled config unit exactly once and pull out its export."""

from __future__ import annotations

import inspect
import secrets
import sys
import time
import traceback
from collections.abc import Mapping
from pathlib import Path
from types import ModuleType
from typing import Any

from .config import ConfigCandidate, PackageMetadataResolver
from .constants import DEFAULT_EXPORT_NAME, EPHEMERAL_MODULE_PREFIX
from .errors import ConfigEvaluationError, UnsupportedFormatError
from .logs import get_app_logger
from .stitch import CompiledConfigModule, read_source_map


def make_module_name() -> str:
    """A module name no earlier load can have used."""
    return f"{EPHEMERAL_MODULE_PREFIX}_{time.time_ns()}_{secrets.token_hex(4)}"


def ensure_supported_format(
    candidate: ConfigCandidate,
    *,
    resolver: PackageMetadataResolver | None = None,
) -> None:
    """Reject configs that would run as classic scripts, with remediation."""
    if candidate.format != "script":
        return
    metadata = (resolver or PackageMetadataResolver()).read_nearest(candidate.path)
    raise UnsupportedFormatError(
        candidate.path, manifest=metadata.path if metadata else None
    )


def _locate_failure(exc: BaseException, sources: set[str]) -> str | None:
    """Find the innermost `file:line` of the failure inside the config graph."""
    if isinstance(exc, SyntaxError) and exc.filename in sources:
        return f"{exc.filename}:{exc.lineno}"
    location = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename in sources:
            location = f"{frame.filename}:{frame.lineno}"
    return location


def extract_export(module: ModuleType, path: Path) -> Mapping[str, Any]:
    """Return the module's `config` value, which must be a plain mapping."""
    if not hasattr(module, DEFAULT_EXPORT_NAME):
        raise ConfigEvaluationError(
            path, f"it did not define `{DEFAULT_EXPORT_NAME}`"
        )

    value = getattr(module, DEFAULT_EXPORT_NAME)
    if inspect.isawaitable(value):
        if inspect.iscoroutine(value):
            value.close()
        raise ConfigEvaluationError(
            path,
            f"`{DEFAULT_EXPORT_NAME}` is awaitable; await it at module level"
            " so a plain value is exported",
        )
    if callable(value):
        raise ConfigEvaluationError(
            path,
            f"`{DEFAULT_EXPORT_NAME}` must be a value, not a callable;"
            " call it or wrap the settings in define_config({...})",
        )
    if not isinstance(value, Mapping):
        raise ConfigEvaluationError(
            path,
            f"`{DEFAULT_EXPORT_NAME}` must be a mapping of settings,"
            f" not {type(value).__name__}",
        )
    return value


async def load_config_module(compiled: CompiledConfigModule) -> Mapping[str, Any]:
    """Execute `compiled` under a fresh module identity and return its export.

    The unit is visible in sys.modules only while it runs; nothing about it
    survives for a later load to reuse.
    """
    logger = get_app_logger()
    if compiled.format == "script":
        raise UnsupportedFormatError(compiled.entry)
    if compiled.consumed:
        xmsg = f"Compiled config for {compiled.entry} was already executed"
        raise RuntimeError(xmsg)
    compiled.consumed = True

    name = make_module_name()
    module = ModuleType(name)
    module.__file__ = str(compiled.entry)
    source_map = read_source_map(compiled.code) or {}
    sources = set(source_map.get("sources", {}).values())

    logger.trace("[loader] executing %s as %s", compiled.entry.name, name)
    sys.modules[name] = module
    try:
        unit = compile(
            compiled.code, f"<windpack:{compiled.entry}>", "exec", dont_inherit=True
        )
        exec(unit, module.__dict__)  # noqa: S102
        graph = module.__dict__["__windpack_graph__"]
        with graph.session():
            await graph.run_entry(module)
    except ConfigEvaluationError:
        raise
    except Exception as e:
        location = _locate_failure(e, sources)
        raise ConfigEvaluationError(
            compiled.entry, f"{type(e).__name__}: {e}", location=location
        ) from e
    finally:
        sys.modules.pop(name, None)

    return extract_export(module, compiled.entry)
