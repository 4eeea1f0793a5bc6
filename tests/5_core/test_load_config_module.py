# tests/5_core/test_load_config_module.py

import asyncio
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

import windpack.config as mod_config
import windpack.constants as mod_constants
import windpack.errors as mod_errors
import windpack.module_loader as mod_loader
import windpack.stitch as mod_stitch
from tests.utils import make_config_project, write_config_file


def _load(path: Path) -> Mapping[str, Any]:
    compiled = mod_stitch.stitch_config(mod_config.make_candidate(path))
    return asyncio.run(mod_loader.load_config_module(compiled))


def test_load_returns_exported_mapping(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(tmp_path, 'config = {"mode": "production"}\n')

    # --- execute ---
    result = _load(cfg)

    # --- verify ---
    assert result == {"mode": "production"}


def test_each_load_evaluates_afresh(tmp_path: Path) -> None:
    """Identical content loaded twice runs twice, with fresh local modules."""
    # --- setup ---
    cfg = make_config_project(
        tmp_path,
        """\
        from pathlib import Path

        from .helper import CALLS

        CALLS.append(1)
        with Path(__file__).with_name("runs.log").open("a") as fh:
            fh.write("run\\n")

        config = {"define": {"CALLS": len(CALLS), "NAME": __name__}}
        """,
        helper_py="CALLS = []\n",
    )

    # --- execute ---
    first = _load(cfg)
    second = _load(cfg)

    # --- verify ---
    assert first["define"]["CALLS"] == 1
    assert second["define"]["CALLS"] == 1
    assert (tmp_path / "runs.log").read_text().splitlines() == ["run", "run"]
    assert first["define"]["NAME"] != second["define"]["NAME"]
    assert first["define"]["NAME"].startswith(mod_constants.EPHEMERAL_MODULE_PREFIX)


def test_load_leaves_no_modules_behind(tmp_path: Path) -> None:
    """Project modules imported by the config are forgotten after the load."""
    # --- setup ---
    cfg = make_config_project(
        tmp_path,
        """\
        import windpack_sibling_cfg

        config = {"define": {"V": windpack_sibling_cfg.VALUE}}
        """,
        windpack_sibling_cfg_py="VALUE = 1\n",
    )

    # --- execute ---
    result = _load(cfg)

    # --- verify ---
    assert result["define"]["V"] == 1
    assert "windpack_sibling_cfg" not in sys.modules
    assert str(tmp_path) not in sys.path
    assert str(tmp_path.resolve()) not in sys.path


def test_load_sees_edited_helper(tmp_path: Path) -> None:
    # --- setup ---
    cfg = make_config_project(
        tmp_path,
        "from .helper import PORT\nconfig = {'server': {'port': PORT}}\n",
        helper_py="PORT = 1\n",
    )
    first = _load(cfg)
    (tmp_path / "helper.py").write_text("PORT = 2\n")

    # --- execute ---
    second = _load(cfg)

    # --- verify ---
    assert first["server"]["port"] == 1
    assert second["server"]["port"] == 2  # noqa: PLR2004


def test_compiled_unit_is_single_use(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(tmp_path, "config = {}\n")
    compiled = mod_stitch.stitch_config(mod_config.make_candidate(cfg))
    asyncio.run(mod_loader.load_config_module(compiled))

    # --- execute and verify ---
    assert compiled.consumed
    with pytest.raises(RuntimeError, match="already executed"):
        asyncio.run(mod_loader.load_config_module(compiled))


def test_script_format_is_rejected(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(tmp_path, "config = {}\n", ext=".pys")
    compiled = mod_stitch.stitch_config(mod_config.make_candidate(cfg))

    # --- execute and verify ---
    with pytest.raises(mod_errors.UnsupportedFormatError):
        asyncio.run(mod_loader.load_config_module(compiled))


def test_ensure_supported_format_explains_remediation(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(tmp_path, "config = {}\n", ext=".py")
    candidate = mod_config.make_candidate(cfg)

    # --- execute ---
    with pytest.raises(mod_errors.UnsupportedFormatError) as excinfo:
        mod_loader.ensure_supported_format(candidate)

    # --- verify ---
    msg = str(excinfo.value)
    assert "windpack.config.pym" in msg
    assert 'type = "module"' in msg


def test_runtime_error_reports_location(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(
        tmp_path,
        """\
        config = {}
        x = 1
        raise ValueError("boom")
        """,
    )

    # --- execute ---
    with pytest.raises(mod_errors.ConfigEvaluationError) as excinfo:
        _load(cfg)

    # --- verify ---
    err = excinfo.value
    assert err.location == f"{cfg.resolve()}:3"
    assert "ValueError: boom" in str(err)
    assert isinstance(err.__cause__, ValueError)


def test_runtime_error_in_helper_points_at_helper(tmp_path: Path) -> None:
    # --- setup ---
    cfg = make_config_project(
        tmp_path,
        "from .helper import X\nconfig = {}\n",
        helper_py="A = 1\nX = 1 / 0\n",
    )

    # --- execute ---
    with pytest.raises(mod_errors.ConfigEvaluationError) as excinfo:
        _load(cfg)

    # --- verify ---
    assert excinfo.value.location == f"{(tmp_path / 'helper.py').resolve()}:2"


def test_optional_import_falls_back_at_runtime(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(
        tmp_path,
        """\
        try:
            import windpack_optional_xyz
        except ImportError:
            windpack_optional_xyz = None

        config = {"define": {"HAS": windpack_optional_xyz is not None}}
        """,
    )

    # --- execute ---
    result = _load(cfg)

    # --- verify ---
    assert result["define"]["HAS"] is False


@pytest.mark.parametrize(
    ("source", "fragment"),
    [
        ("def config():\n    return {}\n", "not a callable"),
        (
            "async def make():\n    return {}\n\nconfig = make()\n",
            "is awaitable",
        ),
        ("config = [1, 2]\n", "must be a mapping"),
        ("settings = {}\n", "did not define `config`"),
    ],
)
def test_bad_exports_are_rejected(
    tmp_path: Path,
    source: str,
    fragment: str,
) -> None:
    # --- setup ---
    cfg = write_config_file(tmp_path, source)

    # --- execute and verify ---
    with pytest.raises(mod_errors.ConfigEvaluationError, match=fragment):
        _load(cfg)


def test_top_level_await(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(
        tmp_path,
        """\
        import asyncio


        async def pick_port():
            await asyncio.sleep(0)
            return 5173

        config = {"server": {"port": await pick_port()}}
        """,
    )

    # --- execute ---
    result = _load(cfg)

    # --- verify ---
    assert result["server"]["port"] == 5173  # noqa: PLR2004


def test_config_can_use_windpack_helpers(tmp_path: Path) -> None:
    # --- setup ---
    cfg = write_config_file(
        tmp_path,
        """\
        from windpack import define_config, define_plugin

        banner = define_plugin("banner")
        config = define_config({"plugins": [banner]})
        """,
    )

    # --- execute ---
    result = _load(cfg)

    # --- verify ---
    assert [p.name for p in result["plugins"]] == ["banner"]
