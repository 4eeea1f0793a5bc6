# tests/5_core/test_watch_config.py

import asyncio
from dataclasses import replace
from pathlib import Path

import pytest

import windpack.actions as mod_actions
import windpack.config as mod_config
import windpack.errors as mod_errors
import windpack.logs as mod_logs
from tests.utils import force_mtime_advance, make_summary
from windpack.pipeline import LoadedConfig
from windpack.utils import file_mtime


INTERVAL = 0.01


def _loaded(path: Path, port: int = 3000) -> LoadedConfig:
    return LoadedConfig(
        candidate=mod_config.ConfigCandidate(path=path, format="module"),
        config=mod_config.FrozenMapping({"server": {"port": port}}),
        mode="development",
        summary=make_summary(),
        watched=(path,),
        mtimes={path: file_mtime(path)},
    )


def _watched_file(tmp_path: Path) -> Path:
    path = tmp_path / "windpack.config.pym"
    path.write_text("config = {}\n")
    return path


def test_watch_delivers_first_result(tmp_path: Path) -> None:
    # --- setup ---
    path = _watched_file(tmp_path)
    calls: list[int] = []
    results: list[LoadedConfig] = []

    async def resolve() -> LoadedConfig:
        calls.append(1)
        return _loaded(path)

    # --- execute ---
    asyncio.run(
        mod_actions.watch_config(
            resolve, results.append, interval=INTERVAL, max_cycles=3
        )
    )

    # --- verify ---
    assert len(calls) == 1
    assert len(results) == 1


def test_watch_final_result_lands_without_polling(tmp_path: Path) -> None:
    # --- setup ---
    path = _watched_file(tmp_path)
    results: list[LoadedConfig] = []

    async def resolve() -> LoadedConfig:
        return _loaded(path)

    # --- execute ---
    asyncio.run(
        mod_actions.watch_config(
            resolve, results.append, interval=INTERVAL, max_cycles=0
        )
    )

    # --- verify ---
    assert len(results) == 1


def test_watch_reresolves_on_change(tmp_path: Path) -> None:
    # --- setup ---
    path = _watched_file(tmp_path)
    results: list[LoadedConfig] = []

    async def resolve() -> LoadedConfig:
        return _loaded(path, port=3000 + len(results))

    def on_result(loaded: LoadedConfig) -> None:
        results.append(loaded)
        if len(results) == 1:
            force_mtime_advance(path)

    # --- execute ---
    asyncio.run(
        mod_actions.watch_config(
            resolve, on_result, interval=INTERVAL, max_cycles=5
        )
    )

    # --- verify ---
    assert [r.config["server"]["port"] for r in results] == [3000, 3001]


def test_watch_survives_failed_resolution(
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    """An error is reported and the next change is still picked up."""
    # --- setup ---
    path = _watched_file(tmp_path)
    calls: list[int] = []
    results: list[LoadedConfig] = []

    async def resolve() -> LoadedConfig:
        calls.append(1)
        if len(calls) == 1:
            force_mtime_advance(path)
            raise mod_errors.ConfigEvaluationError(path, "boom")
        return _loaded(path)

    # --- execute ---
    asyncio.run(
        mod_actions.watch_config(
            resolve,
            results.append,
            paths=(path,),
            interval=INTERVAL,
            max_cycles=4,
        )
    )

    # --- verify ---
    assert len(calls) == 2  # noqa: PLR2004
    assert len(results) == 1
    err = capsys.readouterr().err
    assert "boom" in err
    assert mod_logs.TAG_STYLES["ERROR"][1] in err


def test_watch_cancels_superseded_resolution(tmp_path: Path) -> None:
    """A change during a slow resolution cancels it; only the latest lands."""
    # --- setup ---
    path = _watched_file(tmp_path)
    calls: list[int] = []
    cancelled: list[bool] = []
    results: list[LoadedConfig] = []

    async def resolve() -> LoadedConfig:
        calls.append(1)
        if len(calls) == 1:
            force_mtime_advance(path)
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise
            return _loaded(path, port=1)
        return _loaded(path, port=2)

    # --- execute ---
    asyncio.run(
        mod_actions.watch_config(
            resolve,
            results.append,
            paths=(path,),
            interval=INTERVAL,
            max_cycles=3,
        )
    )

    # --- verify ---
    assert cancelled == [True]
    assert [r.config["server"]["port"] for r in results] == [2]


def test_watch_propagates_unexpected_errors(tmp_path: Path) -> None:
    # --- setup ---
    async def resolve() -> LoadedConfig:
        raise KeyError("internal")

    # --- execute and verify ---
    with pytest.raises(KeyError):
        asyncio.run(
            mod_actions.watch_config(
                resolve, lambda _loaded: None, interval=INTERVAL, max_cycles=2
            )
        )


def test_watch_picks_up_edit_made_while_resolving(tmp_path: Path) -> None:
    """A save after the files were read but before delivery is not lost."""
    # --- setup ---
    path = _watched_file(tmp_path)
    calls: list[int] = []
    results: list[LoadedConfig] = []

    async def resolve() -> LoadedConfig:
        calls.append(1)
        loaded = _loaded(path, port=3000 + len(calls))
        if len(calls) == 1:
            force_mtime_advance(path)
        return loaded

    # --- execute ---
    asyncio.run(
        mod_actions.watch_config(
            resolve, results.append, interval=INTERVAL, max_cycles=10
        )
    )

    # --- verify ---
    assert len(calls) == 2  # noqa: PLR2004
    assert [r.config["server"]["port"] for r in results] == [3001, 3002]


def test_watch_keeps_start_snapshot_when_result_has_no_mtimes(
    tmp_path: Path,
) -> None:
    # --- setup ---
    path = _watched_file(tmp_path)
    calls: list[int] = []

    async def resolve() -> LoadedConfig:
        calls.append(1)
        loaded = replace(_loaded(path), mtimes={})
        if len(calls) == 1:
            force_mtime_advance(path)
        return loaded

    # --- execute ---
    asyncio.run(
        mod_actions.watch_config(
            resolve,
            lambda _loaded: None,
            paths=(path,),
            interval=INTERVAL,
            max_cycles=10,
        )
    )

    # --- verify ---
    assert len(calls) == 2  # noqa: PLR2004
