# src/windpack/utils/__init__.py

from .utils_files import file_mtime, load_toml
from .utils_schema import (
    ValidationSummary,
    check_schema_conformance,
    collect_msg,
)
from .utils_text import plural
from .utils_types import (
    cast_hint,
    literal_to_set,
    safe_isinstance,
    schema_from_typeddict,
)


__all__ = [  # noqa: RUF022
    # utils_files
    "file_mtime",
    "load_toml",
    # utils_schema
    "ValidationSummary",
    "check_schema_conformance",
    "collect_msg",
    # utils_text
    "plural",
    # utils_types
    "cast_hint",
    "literal_to_set",
    "safe_isinstance",
    "schema_from_typeddict",
]
