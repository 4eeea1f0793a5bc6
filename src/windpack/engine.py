# src/windpack/engine.py
"""Translate a validated config into bundling-engine options.

The engine itself lives outside windpack; this module only produces the
plain data it is started with, plus a JSON rendering for `windpack config`.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .config import Command, ValidatedConfig, thaw
from .constants import COMMAND_MODES


CSS_RULE_TEST = re.compile(r"\.css$", re.IGNORECASE)
VENDOR_CHUNK_TEST = re.compile(r"[\\/]node_modules[\\/]")


def dev_server_url(config: ValidatedConfig) -> str:
    server = config["server"]
    base = server["base"] if server["base"] != "/" else ""
    return f"http://localhost:{server['port']}{base}"


def _define_constants(config: ValidatedConfig) -> dict[str, Any]:
    mode = config["mode"]
    return {
        "process.env.NODE_ENV": json.dumps(mode),
        "import.meta.env.MODE": json.dumps(mode),
        "import.meta.env.BASE_URL": json.dumps(config["base"]),
        "import.meta.env.PROD": mode == "production",
        "import.meta.env.DEV": mode == "development",
        **thaw(config["define"]),
    }


def _engine_plugins(config: ValidatedConfig) -> list[Any]:
    plugins: list[Any] = []
    if config["appType"] == "spa":
        plugins.append(
            {
                "name": "html",
                "options": {
                    "publicPath": "/",
                    "template": str(Path(config["publicDir"]) / "index.html"),
                },
            }
        )
    plugins.append({"name": "define", "options": _define_constants(config)})
    plugins.extend(config["webpackConfig"].get("plugins") or ())
    return plugins


def _module_rules(config: ValidatedConfig) -> list[Any]:
    development = config["mode"] == "development"
    module = config["webpackConfig"].get("module") or {}
    user_rules = (module.get("rules") or ()) if isinstance(module, Mapping) else ()
    return [
        {
            "test": config["swc"]["include"],
            "exclude": config["swc"]["exclude"],
            "use": {
                "loader": "swc-loader",
                "options": {
                    "jsc": {
                        "transform": {
                            "react": {
                                "runtime": "automatic",
                                "development": development,
                                "refresh": development,
                            }
                        },
                        "experimental": {"keepImportAssertions": True},
                    }
                },
            },
        },
        {
            "test": CSS_RULE_TEST,
            "use": ["style-loader", "css-loader", "postcss-loader"],
        },
        {"assert": {"type": "url"}, "type": "asset/resource"},
        {"assert": {"type": "raw"}, "type": "asset/source"},
        *(thaw(rule) for rule in user_rules),
    ]


def build_engine_options(
    config: ValidatedConfig,
    *,
    command: Command = "dev",
) -> dict[str, Any]:
    """Return the options a bundling engine would be started with.

    `webpackConfig` is only consulted for `entry`, `plugins` and
    `module.rules`; everything else comes from the validated fields.
    """
    root = Path(config["root"])
    options: dict[str, Any] = {
        "command": command,
        "mode": config["mode"],
        "context": str(root),
        "entry": thaw(config["webpackConfig"].get("entry")),
        "cache": {
            "type": "filesystem",
            "cacheDirectory": str(root / config["cacheDir"]),
            "store": "pack",
        },
        "resolve": {
            "extensions": list(config["resolve"]["extensions"]),
            "symlinks": config["resolve"]["preserveSymlinks"],
        },
        "plugins": _engine_plugins(config),
        "module": {"rules": _module_rules(config)},
        "infrastructureLogging": {"level": "none"},
        "stats": "none",
        "output": {
            "clean": True,
            "assetModuleFilename": "assets/[name]-[contenthash][ext]",
            "filename": "assets/[name]-[contenthash].js",
            "pathinfo": False,
        },
        "optimization": {
            "moduleIds": "deterministic",
            "runtimeChunk": True,
            "removeAvailableModules": False,
            "removeEmptyChunks": False,
            "splitChunks": {
                "cacheGroups": {
                    "vendor": {
                        "test": VENDOR_CHUNK_TEST,
                        "name": "vendors",
                        "chunks": "all",
                    }
                }
            },
        },
    }
    if command != "build":
        options["devServer"] = {
            "hot": True,
            "port": config["server"]["port"],
            "historyApiFallback": config["appType"] == "spa",
        }
        options["url"] = dev_server_url(config)
    return options


def command_mode(command: Command) -> str | None:
    """The mode a command implies when the config does not set one."""
    return COMMAND_MODES.get(command)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    if isinstance(value, Mapping):
        return {str(key): _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, Path):
        return str(value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return f"<plugin {name}>"
    return repr(value)


def dump_engine_options(options: Mapping[str, Any], *, indent: int = 2) -> str:
    """Serialize engine options (or a config) to JSON for display."""
    return json.dumps(_to_jsonable(options), indent=indent)
