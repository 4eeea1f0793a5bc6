# src/windpack/pipeline.py
"""Locate → detect → compile → load → plugins → validate → normalize."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import (
    ConfigCandidate,
    Mode,
    PackageMetadataResolver,
    ValidatedConfig,
    find_config,
    log_validation_summary,
    make_candidate,
    normalize_config,
    validate_config,
)
from .constants import DEFAULT_MODE
from .errors import ConfigValidationError
from .logs import get_app_logger
from .merge import merge_config
from .module_loader import ensure_supported_format, load_config_module
from .plugins import apply_plugins, resolve_mode
from .stitch import compile_config
from .utils import ValidationSummary


@dataclass
class LoadedConfig:
    """Everything one resolution produced."""

    candidate: ConfigCandidate
    config: ValidatedConfig
    mode: Mode
    summary: ValidationSummary
    # files whose change should trigger a new resolution
    watched: tuple[Path, ...] = field(default_factory=tuple)
    # mtimes of watched files as they were when this resolution read them
    mtimes: dict[Path, float | None] = field(default_factory=dict)


async def resolve_config(
    cwd: Path | None = None,
    *,
    mode: str | None = None,
    strict: bool | None = None,
    explicit: str | Path | None = None,
    missing_level: str = "error",
    default_mode: str = DEFAULT_MODE,
) -> LoadedConfig | None:
    """Run the whole pipeline once.

    `mode` overrides whatever the config says; `default_mode` only applies
    when the config sets none. Returns None when no config file exists
    (already logged). Every other failure raises one of the windpack errors;
    nothing is retried.
    """
    logger = get_app_logger()
    cwd = (cwd or Path.cwd()).resolve()
    if not cwd.exists():
        logger.warning("Working directory does not exist: %s", cwd)

    # --- locate ---
    config_path = find_config(cwd, explicit=explicit, missing_level=missing_level)
    if config_path is None:
        return None

    # --- detect format (manifest reads are cached for this run only) ---
    resolver = PackageMetadataResolver()
    candidate = make_candidate(config_path, resolver=resolver)
    logger.debug("Using config %s (%s format)", candidate.path, candidate.format)
    ensure_supported_format(candidate, resolver=resolver)

    # --- compile + load ---
    compiled = await compile_config(candidate, resolver=resolver)
    watched = (*compiled.sources, *_manifests(resolver, compiled.sources))
    raw = await load_config_module(compiled)

    config, effective_mode, summary = await _compose(
        raw,
        mode=mode,
        default_mode=default_mode,
        strict=strict,
        cwd=cwd,
        path=candidate.path,
    )
    return LoadedConfig(
        candidate=candidate,
        config=config,
        mode=effective_mode,
        summary=summary,
        watched=tuple(dict.fromkeys(watched)),
        mtimes={**resolver.mtimes, **compiled.mtimes},
    )


def _manifests(
    resolver: PackageMetadataResolver, sources: tuple[Path, ...]
) -> list[Path]:
    paths: list[Path] = []
    for source in sources:
        metadata = resolver.read_nearest(source)
        if metadata is not None:
            paths.append(metadata.path)
    return paths


async def _compose(
    raw: Mapping[str, Any],
    *,
    mode: str | None,
    default_mode: str = DEFAULT_MODE,
    strict: bool | None,
    cwd: Path,
    path: Path | None,
) -> tuple[ValidatedConfig, Mode, ValidationSummary]:
    effective_mode = resolve_mode(raw, mode, default_mode)
    merged = await apply_plugins(raw, effective_mode)
    if mode is not None or merged.get("mode") is None:
        # the mode plugins saw is the mode the config reports
        merged = merge_config(merged, {"mode": effective_mode})

    summary = validate_config(merged, strict=strict)
    log_validation_summary(summary, path)
    if not summary.valid:
        raise ConfigValidationError(path, summary)

    return normalize_config(merged, cwd=cwd), effective_mode, summary


async def resolve_config_object(
    raw: Mapping[str, Any],
    *,
    mode: str | None = None,
    strict: bool | None = None,
    cwd: Path | None = None,
) -> ValidatedConfig:
    """Plugins, validation and defaults for a config already in memory."""
    config, _mode, _summary = await _compose(
        raw, mode=mode, strict=strict, cwd=(cwd or Path.cwd()).resolve(), path=None
    )
    return config
