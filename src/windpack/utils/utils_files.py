# src/windpack/utils/utils_files.py

import sys
from pathlib import Path
from typing import Any


if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib


def load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file cannot be parsed
    """
    if not path.exists():
        xmsg = f"TOML file not found: {path}"
        raise FileNotFoundError(xmsg)

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        xmsg = f"Invalid TOML in {path}: {e}"
        raise ValueError(xmsg) from e
    except UnicodeDecodeError as e:
        xmsg = f"Invalid encoding in {path}: {e}"
        raise ValueError(xmsg) from e


def file_mtime(path: Path) -> float | None:
    """Modification time of `path`, or None when it cannot be stat'ed."""
    try:
        return path.stat().st_mtime
    except OSError:
        return None
