# src/windpack/config/config_loader.py

from __future__ import annotations

from pathlib import Path

from windpack.constants import CONFIG_EXTENSIONS
from windpack.logs import get_app_logger
from windpack.meta import PROGRAM_CONFIG
from windpack.utils import ValidationSummary, plural


def config_candidate_names() -> list[str]:
    return [f"{PROGRAM_CONFIG}{ext}" for ext in CONFIG_EXTENSIONS]


def find_config(
    cwd: Path,
    *,
    explicit: str | Path | None = None,
    missing_level: str = "error",
) -> Path | None:
    """Locate the configuration file.

    missing_level: log-level for failing to find a configuration file.

    Search order:
      1. Explicit path (from --config), which must exist
      2. windpack.config.py, windpack.config.pym, windpack.config.pys
         in `cwd`; the first that exists wins

    Returns the chosen path, or None if nothing was found. Absence is a
    normal outcome and is only logged.
    """
    logger = get_app_logger()

    if logger.resolve_level_name(missing_level) is None:
        logger.error("Invalid log level name in find_config(): %s", missing_level)
        missing_level = "error"

    # --- 1. Explicit config path ---
    if explicit is not None:
        config = Path(explicit).expanduser().resolve()
        logger.trace(f"[find_config] Checking explicit path: {config}")
        if not config.exists():
            xmsg = f"Specified config file not found: {config}"
            raise FileNotFoundError(xmsg)
        if config.is_dir():
            xmsg = f"Specified config path is a directory, not a file: {config}"
            raise ValueError(xmsg)
        if config.suffix.lower() not in CONFIG_EXTENSIONS:
            xmsg = (
                f"Unsupported config file extension {config.suffix!r}"
                f" (expected one of {', '.join(CONFIG_EXTENSIONS)})"
            )
            raise ValueError(xmsg)
        return config

    # --- 2. Default candidates, in priority order ---
    found = [cwd / name for name in config_candidate_names() if (cwd / name).is_file()]

    if not found:
        logger.log_dynamic(
            missing_level,
            f"No {PROGRAM_CONFIG}.* file found in {cwd}"
            f" (looked for {', '.join(config_candidate_names())})",
        )
        return None

    if len(found) > 1:
        names = ", ".join(p.name for p in found)
        logger.warning(
            "Multiple config files detected (%s); using %s.",
            names,
            found[0].name,
        )
    logger.trace(f"[find_config] Using {found[0]}")
    return found[0]


def log_validation_summary(
    summary: ValidationSummary,
    config_path: Path | None,
) -> None:
    """Pretty-print a validation summary."""
    logger = get_app_logger()
    mode = "strict mode" if summary.strict else "lenient mode"
    name = config_path.name if config_path else "configuration"

    counts: list[str] = []
    if summary.errors:
        counts.append(f"{len(summary.errors)} error{plural(summary.errors)}")
    if summary.strict_warnings:
        counts.append(
            f"{len(summary.strict_warnings)} strict warning"
            f"{plural(summary.strict_warnings)}",
        )
    if summary.warnings:
        counts.append(
            f"{len(summary.warnings)} normal warning{plural(summary.warnings)}",
        )
    counts_msg = f"\nFound {', '.join(counts)}." if counts else ""

    if not summary.valid:
        logger.error(
            "Failed to validate configuration file %s (%s).%s",
            name,
            mode,
            counts_msg,
        )
    elif counts:
        logger.warning(
            "Validated configuration file %s (%s) with warnings.%s",
            name,
            mode,
            counts_msg,
        )
    else:
        logger.debug("Validated %s (%s) successfully.", name, mode)

    if summary.errors:
        msg_summary = "\n  • ".join(summary.errors)
        logger.error("\nErrors:\n  • %s", msg_summary)
    if summary.strict_warnings:
        msg_summary = "\n  • ".join(summary.strict_warnings)
        logger.error("\nStrict warnings (treated as errors):\n  • %s", msg_summary)
    if summary.warnings:
        msg_summary = "\n  • ".join(summary.warnings)
        logger.warning("\nWarnings (non-fatal):\n  • %s", msg_summary)
