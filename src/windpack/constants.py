# src/windpack/constants.py
"""Central constants used across the project."""

import re


# --- env keys ---
DEFAULT_ENV_LOG_LEVEL: str = "LOG_LEVEL"
DEFAULT_ENV_WATCH_INTERVAL: str = "WATCH_INTERVAL"

# --- program defaults ---
DEFAULT_LOG_LEVEL: str = "info"
DEFAULT_WATCH_INTERVAL: float = 1.0  # seconds

# --- config file discovery ---
# ambiguous first; the manifest decides its format
CONFIG_EXTENSIONS: tuple[str, ...] = (".py", ".pym", ".pys")
MODULE_EXTENSIONS: frozenset[str] = frozenset({".pym"})
SCRIPT_EXTENSIONS: frozenset[str] = frozenset({".pys"})
MANIFEST_NAME: str = "pyproject.toml"
MANIFEST_TOOL_TABLE: str = "windpack"
MANIFEST_MODULE_TYPE: str = "module"

# --- loader ---
DEFAULT_EXPORT_NAME: str = "config"
EPHEMERAL_MODULE_PREFIX: str = "windpack_config"
SOURCE_MAP_MARKER: str = "# windpackSourceMap=data:application/json;base64,"

# --- config defaults ---
DEFAULT_MODE: str = "development"
DEFAULT_STRICT_CONFIG: bool = True
DEFAULT_APP_TYPE: str = "spa"
DEFAULT_BASE: str = "/"
DEFAULT_CACHE_DIR: str = "node_modules/.cache/windpack"
DEFAULT_PUBLIC_DIR: str = "public"
DEFAULT_SERVER_PORT: int = 3000
DEFAULT_RESOLVE_EXTENSIONS: list[str] = [".mjs", ".js", ".mts", ".ts", ".jsx", ".tsx"]
DEFAULT_SWC_INCLUDE: re.Pattern[str] = re.compile(r"\.(ts|jsx|tsx)$")
DEFAULT_SWC_EXCLUDE: re.Pattern[str] = re.compile("node_modules")

# --- engine hand-off ---
COMMAND_MODES: dict[str, str] = {
    "dev": "development",
    "build": "production",
}
