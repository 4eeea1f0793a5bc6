# src/windpack/config/config_format.py

from __future__ import annotations

from pathlib import Path

from windpack.constants import MODULE_EXTENSIONS, SCRIPT_EXTENSIONS
from windpack.logs import get_app_logger

from .config_types import ConfigCandidate, ModuleFormat
from .package_data import PackageMetadataResolver


def detect_module_format(
    path: Path,
    *,
    resolver: PackageMetadataResolver | None = None,
) -> ModuleFormat:
    """Decide whether a config file runs as a module or as a classic script.

    The extension decides when it is unambiguous (.pym / .pys). Otherwise the
    nearest pyproject.toml decides; no manifest, no declaration, or an
    unreadable manifest all mean "script".
    """
    logger = get_app_logger()
    suffix = path.suffix.lower()
    if suffix in MODULE_EXTENSIONS:
        return "module"
    if suffix in SCRIPT_EXTENSIONS:
        return "script"

    resolver = resolver or PackageMetadataResolver()
    metadata = resolver.read_nearest(path)
    if metadata is not None and metadata.is_module:
        logger.trace("[format] %s is a module per %s", path.name, metadata.path)
        return "module"

    logger.trace("[format] %s defaults to script", path.name)
    return "script"


def make_candidate(
    path: Path,
    *,
    resolver: PackageMetadataResolver | None = None,
) -> ConfigCandidate:
    return ConfigCandidate(
        path=path.resolve(),
        format=detect_module_format(path, resolver=resolver),
    )
