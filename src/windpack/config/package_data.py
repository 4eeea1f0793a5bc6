# src/windpack/config/package_data.py
"""Nearest-pyproject lookup.

The manifest only answers two questions for the pipeline: whether the project
declares itself a module (`[tool.windpack] type = "module"`), and which
dependencies it declares (used to explain resolution failures).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from windpack.constants import MANIFEST_NAME, MANIFEST_TOOL_TABLE
from windpack.logs import get_app_logger
from windpack.utils import file_mtime, load_toml

from .config_types import PackageMetadata


# name part of a PEP 508 requirement string
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(.*)$")


def normalize_dist_name(name: str) -> str:
    """PEP 503 normalization, also usable to compare against import names."""
    return re.sub(r"[-_.]+", "_", name).lower()


def _parse_dependencies(raw: Any) -> dict[str, str]:
    deps: dict[str, str] = {}
    if not isinstance(raw, list):
        return deps
    for item in raw:
        if not isinstance(item, str):
            continue
        match = _REQUIREMENT_NAME.match(item)
        if not match:
            continue
        name, rest = match.groups()
        deps[normalize_dist_name(name)] = rest.strip()
    return deps


def find_nearest_pyproject(path: Path) -> Path | None:
    """Walk from `path` (or its directory) up to the filesystem root."""
    current = path if path.is_dir() else path.parent
    current = current.resolve()
    while True:
        candidate = current / MANIFEST_NAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def read_package_metadata(pyproject_path: Path) -> PackageMetadata | None:
    """Parse a pyproject.toml into PackageMetadata.

    Unreadable or malformed files are treated as absent and yield None;
    fields of the wrong type are ignored.
    """
    logger = get_app_logger()
    try:
        data = load_toml(pyproject_path)
    except (FileNotFoundError, ValueError, OSError) as e:
        logger.debug("Ignoring unreadable %s: %s", pyproject_path, e)
        return None

    project: Any = data.get("project", {})
    if not isinstance(project, Mapping):
        project = {}
    tool: Any = data.get("tool", {})
    tool_cfg: Any = {}
    if isinstance(tool, Mapping):
        tool_cfg = tool.get(MANIFEST_TOOL_TABLE, {})
    if not isinstance(tool_cfg, Mapping):
        tool_cfg = {}

    name = project.get("name")
    version = project.get("version")
    declared_type = tool_cfg.get("type")

    return PackageMetadata(
        path=pyproject_path,
        name=name if isinstance(name, str) else None,
        version=version if isinstance(version, str) else None,
        type=declared_type if isinstance(declared_type, str) else None,
        dependencies=_parse_dependencies(project.get("dependencies")),
    )


class PackageMetadataResolver:
    """Caches nearest-manifest lookups for the duration of one resolution."""

    def __init__(self) -> None:
        self._cache: dict[Path, PackageMetadata | None] = {}
        # manifest → mtime seen just before it was parsed
        self.mtimes: dict[Path, float | None] = {}

    def read_nearest(self, path: Path) -> PackageMetadata | None:
        logger = get_app_logger()
        lookup_dir = (path if path.is_dir() else path.parent).resolve()
        if lookup_dir in self._cache:
            return self._cache[lookup_dir]

        pyproject = find_nearest_pyproject(lookup_dir)
        metadata: PackageMetadata | None = None
        if pyproject is not None:
            self.mtimes.setdefault(pyproject, file_mtime(pyproject))
            metadata = read_package_metadata(pyproject)
        logger.trace(
            "[package_data] %s → %s",
            lookup_dir,
            pyproject if metadata else "no manifest",
        )
        self._cache[lookup_dir] = metadata
        return metadata
