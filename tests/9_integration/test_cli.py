# tests/9_integration/test_cli.py

import json
from pathlib import Path
from typing import Any

import pytest

import windpack.actions as mod_actions
import windpack.cli as mod_cli
import windpack.logs as mod_logs
import windpack.meta as mod_meta
from tests.utils import make_config_project, patch_everywhere


def test_config_command_writes_json(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, 'config = {"server": {"port": 3001}}\n')
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "out" / "config.json"

    # --- execute ---
    code = mod_cli.main(["config", "--out", str(out)])

    # --- verify ---
    assert code == 0
    data = json.loads(out.read_text())
    assert data["server"]["port"] == 3001  # noqa: PLR2004
    assert data["mode"] == "development"
    assert data["swc"]["exclude"] == "/node_modules/"


def test_build_defaults_to_production(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, "config = {}\n")
    monkeypatch.chdir(tmp_path)

    # --- execute ---
    code = mod_cli.main(["build", "-q"])

    # --- verify ---
    assert code == 0
    options = json.loads(capsys.readouterr().out)
    assert options["mode"] == "production"
    assert options["command"] == "build"
    assert "devServer" not in options


def test_mode_flag_overrides_config(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, 'config = {"mode": "development"}\n')
    monkeypatch.chdir(tmp_path)

    # --- execute ---
    code = mod_cli.main(["config", "-q", "--mode", "production"])

    # --- verify ---
    assert code == 0
    assert json.loads(capsys.readouterr().out)["mode"] == "production"


def test_dev_command_reports_server(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, 'config = {"server": {"port": 4100}}\n')
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "engine.json"

    # --- execute ---
    code = mod_cli.main(["--out", str(out)])

    # --- verify ---
    assert code == 0
    assert "http://localhost:4100" in capsys.readouterr().out
    options = json.loads(out.read_text())
    assert options["devServer"]["port"] == 4100  # noqa: PLR2004


def test_validation_failure_exits_1(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, 'config = {"server": {"port": "x"}}\n')
    monkeypatch.chdir(tmp_path)

    # --- execute ---
    code = mod_cli.main(["config"])

    # --- verify ---
    assert code == 1
    err = capsys.readouterr().err
    assert mod_logs.TAG_STYLES["ERROR"][1] in err
    assert "`server.port` expected int" in err


def test_script_config_exits_1(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, "config = {}\n", pyproject=None)
    monkeypatch.chdir(tmp_path)

    # --- execute ---
    code = mod_cli.main(["config"])

    # --- verify ---
    assert code == 1
    assert "windpack.config.pym" in capsys.readouterr().err


def test_no_config_is_not_an_error(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    monkeypatch.chdir(tmp_path)

    # --- execute ---
    code = mod_cli.main(["config"])

    # --- verify ---
    assert code == 0
    err = capsys.readouterr().err
    assert f"No {mod_meta.PROGRAM_CONFIG}.* file found" in err


def test_missing_explicit_config_exits_1(
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    monkeypatch.chdir(tmp_path)

    # --- execute ---
    code = mod_cli.main(["config", "-c", "missing.pym"])

    # --- verify ---
    assert code == 1
    assert "not found" in capsys.readouterr().err


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    # --- execute ---
    code = mod_cli.main(["--version"])

    # --- verify ---
    assert code == 0
    assert mod_meta.PROGRAM_DISPLAY in capsys.readouterr().out


def test_watch_flag_hands_off_to_watcher(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, "config = {}\n")
    monkeypatch.chdir(tmp_path)
    seen: dict[str, Any] = {}

    async def fake_watch(resolve: Any, on_result: Any, **kwargs: Any) -> None:
        seen.update(kwargs)
        seen["loaded"] = await resolve()

    patch_everywhere(monkeypatch, mod_actions, "watch_config", fake_watch)

    # --- execute ---
    code = mod_cli.main(["config", "--watch", "0.5"])

    # --- verify ---
    assert code == 0
    assert seen["interval"] == 0.5  # noqa: PLR2004
    assert tmp_path.resolve() / "windpack.config.py" in seen["paths"]
    assert seen["loaded"].config["mode"] == "development"


@pytest.mark.parametrize(
    ("argv", "hint"),
    [
        (["--strcit"], "Hint: did you mean --strict?"),
        (["biuld"], "Hint: did you mean build?"),
    ],
)
def test_bad_arguments_get_hints(
    capsys: pytest.CaptureFixture[str],
    argv: list[str],
    hint: str,
) -> None:
    # --- execute ---
    with pytest.raises(SystemExit) as excinfo:
        mod_cli.main(argv)

    # --- verify ---
    assert excinfo.value.code == 2  # noqa: PLR2004
    assert hint in capsys.readouterr().err


def test_bare_watch_reads_interval_from_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    # --- setup ---
    make_config_project(tmp_path, "config = {}\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WATCH_INTERVAL", "0.25")
    seen: dict[str, Any] = {}

    async def fake_watch(resolve: Any, on_result: Any, **kwargs: Any) -> None:
        seen.update(kwargs)

    patch_everywhere(monkeypatch, mod_actions, "watch_config", fake_watch)

    # --- execute ---
    code = mod_cli.main(["config", "--watch"])

    # --- verify ---
    assert code == 0
    assert seen["interval"] == 0.25  # noqa: PLR2004
