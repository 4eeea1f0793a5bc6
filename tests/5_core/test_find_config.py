# tests/5_core/test_find_config.py

from pathlib import Path

import pytest

import windpack.config as mod_config
import windpack.logs as mod_logs
import windpack.meta as mod_meta


def test_find_config_raises_for_missing_explicit_file(tmp_path: Path) -> None:
    """Explicit --config path that doesn't exist should raise FileNotFoundError."""
    # --- execute and verify ---
    with pytest.raises(FileNotFoundError, match="not found"):
        mod_config.find_config(tmp_path, explicit=tmp_path / "nope.py")


def test_find_config_rejects_explicit_directory(tmp_path: Path) -> None:
    """A directory is not a config file."""
    # --- execute and verify ---
    with pytest.raises(ValueError, match="directory"):
        mod_config.find_config(tmp_path, explicit=tmp_path)


def test_find_config_rejects_explicit_unknown_extension(tmp_path: Path) -> None:
    """Only .py/.pym/.pys configs can be executed."""
    # --- setup ---
    cfg = tmp_path / "windpack.config.json"
    cfg.write_text("{}")

    # --- execute and verify ---
    with pytest.raises(ValueError, match="Unsupported config file extension"):
        mod_config.find_config(tmp_path, explicit=cfg)


def test_find_config_returns_explicit_file(tmp_path: Path) -> None:
    """Should return the explicit file path when it exists."""
    # --- setup ---
    cfg = tmp_path / "custom.pym"
    cfg.write_text("config = {}\n")

    # --- execute ---
    result = mod_config.find_config(tmp_path, explicit=cfg)

    # --- verify ---
    assert result == cfg.resolve()


def test_find_config_logs_and_returns_none_when_missing(
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    """Should log an error and return None when no config file exists."""
    # --- execute ---
    result = mod_config.find_config(tmp_path)

    # --- verify ---
    assert result is None
    out = capsys.readouterr().err
    assert mod_logs.TAG_STYLES["ERROR"][1] in out
    assert f"No {mod_meta.PROGRAM_CONFIG}.* file found" in out


def test_find_config_missing_level_warning(
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    """missing_level controls how loudly absence is reported."""
    # --- execute ---
    result = mod_config.find_config(tmp_path, missing_level="warning")

    # --- verify ---
    assert result is None
    out = capsys.readouterr().err
    assert mod_logs.TAG_STYLES["WARNING"][1] in out
    assert mod_logs.TAG_STYLES["ERROR"][1] not in out


def test_find_config_priority_and_warning(
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    """With several candidates the first in extension order wins, with a warning."""
    # --- setup ---
    prefix = mod_meta.PROGRAM_CONFIG
    py = tmp_path / f"{prefix}.py"
    pym = tmp_path / f"{prefix}.pym"
    pys = tmp_path / f"{prefix}.pys"
    for f in (pys, pym, py):
        f.write_text("config = {}\n")

    # --- execute ---
    result = mod_config.find_config(tmp_path)

    # --- verify ---
    assert result == py
    out = capsys.readouterr().err
    assert mod_logs.TAG_STYLES["WARNING"][1] in out
    assert "Multiple config files detected" in out
    assert f"using {py.name}" in out


def test_find_config_single_module_file(tmp_path: Path) -> None:
    """A lone .pym config is found."""
    # --- setup ---
    pym = tmp_path / f"{mod_meta.PROGRAM_CONFIG}.pym"
    pym.write_text("config = {}\n")

    # --- execute and verify ---
    assert mod_config.find_config(tmp_path) == pym
