# src/windpack/cli.py

import argparse
import asyncio
import os
import platform
import sys
from difflib import get_close_matches
from pathlib import Path
from typing import cast

from .actions import get_metadata, watch_config
from .config import Command, config_candidate_names
from .constants import DEFAULT_ENV_WATCH_INTERVAL, DEFAULT_WATCH_INTERVAL
from .engine import (
    build_engine_options,
    command_mode,
    dev_server_url,
    dump_engine_options,
)
from .errors import WindpackError
from .logs import LEVEL_ORDER, get_app_logger, safe_log
from .meta import DESCRIPTION, PROGRAM_CONFIG, PROGRAM_DISPLAY, PROGRAM_SCRIPT
from .pipeline import LoadedConfig, resolve_config


COMMANDS = ("dev", "build", "config")

# bare `--watch`: interval comes from the environment or the default
_WATCH_DEFAULT = object()


# --------------------------------------------------------------------------- #
# CLI setup and helpers
# --------------------------------------------------------------------------- #


class HintingArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        # Build known option strings: ["-v", "--verbose", "--log-level", ...]
        known_opts: list[str] = []
        for action in self._actions:
            known_opts.extend([s for s in action.option_strings if s])

        hint_lines: list[str] = []
        if "unrecognized arguments:" in message:
            bad = message.split("unrecognized arguments:", 1)[1].strip()
            bad_args = [tok for tok in bad.split() if tok.startswith("-")]
            for arg in bad_args:
                close = get_close_matches(arg, known_opts, n=1, cutoff=0.6)
                if close:
                    hint_lines.append(f"Hint: did you mean {close[0]}?")
        elif "invalid choice:" in message and "argument command" in message:
            bad = message.split("invalid choice:", 1)[1].split("(", 1)[0]
            close = get_close_matches(bad.strip(" '"), COMMANDS, n=1, cutoff=0.6)
            if close:
                hint_lines.append(f"Hint: did you mean {close[0]}?")

        self.print_usage(sys.stderr)
        full = f"{self.prog}: error: {message}"
        if hint_lines:
            full += "\n" + "\n".join(hint_lines)
        self.exit(2, full + "\n")


def _setup_parser() -> argparse.ArgumentParser:
    """Define and return the CLI argument parser."""
    parser = HintingArgumentParser(prog=PROGRAM_SCRIPT, description=DESCRIPTION)

    parser.add_argument(
        "command",
        nargs="?",
        choices=COMMANDS,
        default="dev",
        help=(
            "dev: engine options for the dev server (default). "
            "build: engine options for a production build. "
            "config: print the resolved configuration."
        ),
    )

    parser.add_argument(
        "--mode",
        choices=("development", "production"),
        help="Override the config's mode (build defaults to production).",
    )
    parser.add_argument(
        "-c",
        "--config",
        help=f"Path to the config file (default: {PROGRAM_CONFIG}.* in cwd).",
    )
    parser.add_argument(
        "-o",
        "--out",
        help="Write the JSON output to this file instead of stdout.",
    )
    parser.add_argument(
        "--watch",
        nargs="?",
        type=float,
        metavar="SECONDS",
        const=_WATCH_DEFAULT,
        default=None,
        help=(
            "Re-resolve whenever the config or its local imports change. "
            "Optionally specify interval in seconds"
            f" (default: ${DEFAULT_ENV_WATCH_INTERVAL} or {DEFAULT_WATCH_INTERVAL})."
        ),
    )

    # --- Strictness ---
    strict = parser.add_mutually_exclusive_group()
    strict.add_argument(
        "--strict",
        dest="strict",
        action="store_const",
        const=True,
        help="Treat unknown config keys as errors (default).",
    )
    strict.add_argument(
        "--no-strict",
        dest="strict",
        action="store_const",
        const=False,
        help="Warn about unknown config keys and drop them.",
    )
    strict.set_defaults(strict=None)

    # --- Color ---
    color = parser.add_mutually_exclusive_group()
    color.add_argument(
        "--no-color",
        dest="use_color",
        action="store_const",
        const=False,
        help="Disable ANSI color output.",
    )
    color.add_argument(
        "--color",
        dest="use_color",
        action="store_const",
        const=True,
        help="Force-enable ANSI color output (overrides auto-detect).",
    )
    color.set_defaults(use_color=None)

    # --- Version and verbosity ---
    parser.add_argument("--version", action="store_true", help="Show version info.")

    log_level = parser.add_mutually_exclusive_group()
    log_level.add_argument(
        "-q",
        "--quiet",
        action="store_const",
        const="warning",
        dest="log_level",
        help="Suppress non-critical output (same as --log-level warning).",
    )
    log_level.add_argument(
        "-v",
        "--verbose",
        action="store_const",
        const="debug",
        dest="log_level",
        help="Verbose output (same as --log-level debug).",
    )
    log_level.add_argument(
        "--debug",
        action="store_const",
        const="trace",
        dest="log_level",
        help="Trace every pipeline step (same as --log-level trace).",
    )
    log_level.add_argument(
        "--log-level",
        choices=LEVEL_ORDER,
        default=None,
        dest="log_level",
        help="Set log verbosity level.",
    )
    return parser


def _initialize_logger(args: argparse.Namespace) -> None:
    """Initialize logger with CLI args, env vars, and defaults."""
    logger = get_app_logger()
    log_level = logger.determine_log_level(args=args)
    logger.setLevel(log_level)
    use_color = getattr(args, "use_color", None)
    logger.enable_color = (
        use_color if use_color is not None else logger.determine_color_enabled()
    )
    logger.trace("[BOOT] log-level initialized: %s", logger.level_name)

    logger.debug(
        "Runtime: Python %s (%s)\n    %s",
        platform.python_version(),
        platform.python_implementation(),
        sys.version.replace("\n", " "),
    )


def _handle_early_exits(args: argparse.Namespace) -> int | None:
    """Handle --version and the interpreter check.

    Returns exit code if we should exit early, None otherwise.
    """
    logger = get_app_logger()

    if getattr(args, "version", None):
        meta = get_metadata()
        logger.info("%s %s (%s)", PROGRAM_DISPLAY, meta.version, meta.commit)
        return 0

    if sys.version_info < (3, 10):  # noqa: UP036
        logger.error("%s requires Python 3.10 or newer.", PROGRAM_DISPLAY)
        return 1

    return None


def render_output(loaded: LoadedConfig, command: Command) -> str:
    """JSON for the chosen command: engine options or the resolved config."""
    if command == "config":
        return dump_engine_options(loaded.config)
    return dump_engine_options(build_engine_options(loaded.config, command=command))


def _emit(loaded: LoadedConfig, args: argparse.Namespace) -> None:
    logger = get_app_logger()
    command = cast("Command", args.command)
    output = render_output(loaded, command)

    logger.info("🔧 Using config: %s", loaded.candidate.path.name)
    logger.info("🧭 Mode: %s", loaded.mode)
    if command == "dev":
        logger.info("🌐 Dev server: %s", dev_server_url(loaded.config))

    out = getattr(args, "out", None)
    if out:
        out_path = Path(out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(output + "\n", encoding="utf-8")
        logger.info("📝 Wrote %s", out_path)
    else:
        print(output)  # noqa: T201


def _resolve_watch_interval(args: argparse.Namespace) -> float | None:
    """--watch SECONDS → env → default; None when not watching."""
    logger = get_app_logger()
    watch = getattr(args, "watch", None)
    if watch is None:
        return None
    if watch is not _WATCH_DEFAULT:
        return cast("float", watch)

    env_watch = os.getenv(DEFAULT_ENV_WATCH_INTERVAL)
    if env_watch is None:
        return DEFAULT_WATCH_INTERVAL
    try:
        return float(env_watch)
    except ValueError:
        logger.warning(
            "Invalid %s=%r, using default.", DEFAULT_ENV_WATCH_INTERVAL, env_watch
        )
        return DEFAULT_WATCH_INTERVAL


def _initial_watch_paths(cwd: Path, explicit: str | None) -> tuple[Path, ...]:
    if explicit:
        return ((cwd / explicit).resolve(),)
    return tuple(cwd / name for name in config_candidate_names())


async def _run(args: argparse.Namespace) -> int:
    logger = get_app_logger()
    command = cast("Command", args.command)
    cwd = Path.cwd().resolve()
    default_mode = command_mode(command) or "development"

    async def resolve() -> LoadedConfig | None:
        return await resolve_config(
            cwd,
            mode=args.mode,
            strict=args.strict,
            explicit=args.config,
            missing_level="error" if args.config else "warning",
            default_mode=default_mode,
        )

    interval = _resolve_watch_interval(args)
    if interval is not None:
        logger.trace(f"[cli] Watch interval resolved to {interval}s")
        await watch_config(
            resolve,
            lambda loaded: _emit(loaded, args),
            paths=_initial_watch_paths(cwd, args.config),
            interval=interval,
        )
        return 0

    loaded = await resolve()
    if loaded is None:
        # nothing to do; already logged
        return 0
    _emit(loaded, args)
    return 0


# --------------------------------------------------------------------------- #
# Main entry
# --------------------------------------------------------------------------- #


def main(argv: list[str] | None = None) -> int:
    logger = get_app_logger()  # init (use env + defaults)

    try:
        parser = _setup_parser()
        args = parser.parse_args(argv)

        # --- Early runtime init (use CLI + env + defaults) ---
        _initialize_logger(args)

        early_exit_code = _handle_early_exits(args)
        if early_exit_code is not None:
            return early_exit_code

        return asyncio.run(_run(args))

    except KeyboardInterrupt:
        logger.info("\n🛑 Stopped.")
        return 0

    except (WindpackError, FileNotFoundError, ValueError, TypeError, RuntimeError) as e:
        # controlled termination
        silent = getattr(e, "silent", False)
        if not silent:
            try:
                logger.error_if_not_debug(str(e))
            except Exception:  # noqa: BLE001
                safe_log(f"[FATAL] Logging failed while reporting: {e}")
        return 1

    except Exception as e:  # noqa: BLE001
        # unexpected internal error
        try:
            logger.critical_if_not_debug("Unexpected internal error: %s", e)
        except Exception:  # noqa: BLE001
            safe_log(f"[FATAL] Logging failed while reporting: {e}")

        return 1
