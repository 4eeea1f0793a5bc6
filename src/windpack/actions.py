# src/windpack/actions.py
import asyncio
import re
import subprocess
from collections.abc import Awaitable, Callable
from contextlib import suppress
from importlib import metadata as importlib_metadata
from pathlib import Path

from .constants import DEFAULT_WATCH_INTERVAL
from .errors import WindpackError
from .logs import get_app_logger
from .meta import PROGRAM_PACKAGE, Metadata
from .pipeline import LoadedConfig
from .utils import file_mtime


ResolveFunc = Callable[[], Awaitable[LoadedConfig | None]]
ApplyFunc = Callable[[LoadedConfig], None]


def _snapshot(paths: tuple[Path, ...]) -> dict[Path, float | None]:
    return {path: file_mtime(path) for path in paths}


def _baseline(
    result: LoadedConfig, started: dict[Path, float | None]
) -> dict[Path, float | None]:
    """Mtimes later polls are compared against after `result` lands.

    What the resolution saw when reading a file comes first, then the snapshot
    taken when it started. Only paths unknown to both are stat'ed now.
    """
    baseline: dict[Path, float | None] = {}
    for path in result.watched:
        if path in result.mtimes:
            baseline[path] = result.mtimes[path]
        elif path in started:
            baseline[path] = started[path]
        else:
            baseline[path] = file_mtime(path)
    return baseline


def _changed(
    before: dict[Path, float | None], after: dict[Path, float | None]
) -> list[Path]:
    return [
        path
        for path, mtime in after.items()
        if path not in before or before[path] != mtime
    ]


async def watch_config(
    resolve: ResolveFunc,
    on_result: ApplyFunc,
    *,
    paths: tuple[Path, ...] = (),
    interval: float = DEFAULT_WATCH_INTERVAL,
    max_cycles: int | None = None,
) -> None:
    """Re-run `resolve` whenever a file of the config graph changes.

    Each resolution runs as its own task and polling continues meanwhile.
    When files change again before a task finishes, that task is cancelled
    and its result never reaches `on_result`, so the last change always
    wins. Failed resolutions are logged and watching continues with the
    previous file set.

    `paths` is watched until the first successful resolution reports the
    real file set. `max_cycles` bounds the number of polls (for tests); None
    polls forever.
    """
    logger = get_app_logger()
    logger.info(
        "👀 Watching config for changes (interval=%.2fs)... Press Ctrl+C to stop.",
        interval,
    )

    watched = paths
    mtimes = _snapshot(watched)
    task: asyncio.Task[LoadedConfig | None] = asyncio.ensure_future(resolve())
    handled = False

    def deliver() -> None:
        nonlocal handled, watched, mtimes
        handled = True
        result = _task_result(task)
        if result is not None:
            mtimes = _baseline(result, mtimes)
            watched = result.watched
            on_result(result)

    cycles = 0
    try:
        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            await asyncio.sleep(interval)

            if task.done() and not handled:
                deliver()

            current = _snapshot(watched)
            logger.trace(f"[watch] Checking {len(current)} files for changes")
            changed = _changed(mtimes, current)
            if not changed:
                continue

            logger.info(
                "\n🔁 Detected %d modified file(s). Reloading config...",
                len(changed),
            )
            mtimes = current
            if not task.done():
                logger.debug("[watch] cancelling superseded resolution")
                task.cancel()
            task = asyncio.ensure_future(resolve())
            handled = False

        # polling budget used up: let the latest resolution land
        if not handled:
            await asyncio.wait({task})
            deliver()
    except KeyboardInterrupt:
        logger.info("\n🛑 Watch stopped.")
    finally:
        if not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task


def _task_result(task: asyncio.Task[LoadedConfig | None]) -> LoadedConfig | None:
    logger = get_app_logger()
    if task.cancelled():
        return None
    exc = task.exception()
    if exc is None:
        return task.result()
    if isinstance(exc, (WindpackError, FileNotFoundError, ValueError, TypeError)):
        if not getattr(exc, "silent", False):
            logger.error_if_not_debug(str(exc), exc_info=exc)
        return None
    raise exc


def get_metadata() -> Metadata:
    """Return (version, commit) for this tool.

    - Installed → distribution metadata
    - Source checkout → pyproject.toml + git
    """
    logger = get_app_logger()
    version = "unknown"
    commit = "unknown"

    with suppress(importlib_metadata.PackageNotFoundError):
        version = importlib_metadata.version(PROGRAM_PACKAGE)
        logger.trace(f"got installed version {version}")

    # src/windpack/actions.py → repo root
    root = Path(__file__).resolve().parents[2]
    pyproject = root / "pyproject.toml"
    if version == "unknown" and pyproject.exists():
        logger.trace(f"trying to read metadata from {pyproject}")
        text = pyproject.read_text(encoding="utf-8")
        match = re.search(r'(?m)^\s*version\s*=\s*["\']([^"\']+)["\']', text)
        if match:
            version = match.group(1)

    with suppress(OSError, subprocess.SubprocessError):
        logger.trace("trying to get commit from git")
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            cwd=root,
            capture_output=True,
            text=True,
            check=True,
        )
        commit = result.stdout.strip() or "unknown"

    logger.trace(f"got package version {version} with commit {commit}")
    return Metadata(version, commit)
