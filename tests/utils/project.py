# tests/utils/project.py
"""Helpers that lay out a project with a windpack config file."""

from pathlib import Path
from textwrap import dedent

import windpack.meta as mod_meta


MODULE_PYPROJECT = """\
[project]
name = "demo-app"
version = "0.1.0"
dependencies = ["react-tools>=1.0"]

[tool.windpack]
type = "module"
"""


def write_config_file(
    root: Path,
    content: str,
    *,
    ext: str = ".pym",
) -> Path:
    """Write windpack.config<ext> under `root` (content is dedented)."""
    root.mkdir(parents=True, exist_ok=True)
    path = root / f"{mod_meta.PROGRAM_CONFIG}{ext}"
    path.write_text(dedent(content), encoding="utf-8")
    return path


def make_config_project(
    root: Path,
    content: str,
    *,
    ext: str = ".py",
    pyproject: str | None = MODULE_PYPROJECT,
    **files: str,
) -> Path:
    """Create a project: optional pyproject.toml, config, extra files.

    Extra files are given as relative_path=content, with "/" spelled "__"
    (e.g. `lib__helpers_py="..."` → lib/helpers.py).
    Returns the config path.
    """
    root.mkdir(parents=True, exist_ok=True)
    if pyproject is not None:
        (root / "pyproject.toml").write_text(pyproject, encoding="utf-8")
    for key, text in files.items():
        rel = key.replace("__", "/")
        if rel.endswith("_py"):
            rel = rel.removesuffix("_py") + ".py"
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(dedent(text), encoding="utf-8")
    return write_config_file(root, content, ext=ext)
