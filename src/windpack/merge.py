# src/windpack/merge.py
"""Deep merge of a partial config onto an accumulated one.

Rules, per key of `overrides`:
  1. an override of None keeps the default
  2. a missing or None default takes the override
  3. if either side is a list/tuple, both are concatenated (default first)
  4. if both are mappings, they are merged recursively
  5. otherwise the override wins

Neither argument is mutated; the result is a fresh dict at every mapping
level that was touched.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from .errors import MergeError
from .logs import get_app_logger


def arraify(value: Any) -> list[Any]:
    """Return `value` as a list; non-sequences become a one-item list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _merge_recursively(
    defaults: Mapping[str, Any],
    overrides: Mapping[str, Any],
    root_path: str,
) -> dict[str, Any]:
    logger = get_app_logger()
    merged: dict[str, Any] = dict(defaults)

    for key, value in overrides.items():
        if value is None:
            continue

        existing = merged.get(key)
        if existing is None:
            merged[key] = value
            continue

        if isinstance(existing, (list, tuple)) or isinstance(value, (list, tuple)):
            merged[key] = [*arraify(existing), *arraify(value)]
            continue

        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            path = f"{root_path}.{key}" if root_path else str(key)
            logger.test("[merge] descending into %s", path)
            merged[key] = _merge_recursively(existing, value, path)
            continue

        merged[key] = value

    return merged


def merge_config(
    defaults: Mapping[str, Any],
    overrides: Mapping[str, Any],
) -> dict[str, Any]:
    """Merge `overrides` onto `defaults` and return a new dict.

    Raises:
        MergeError: if either operand is a callable (a config "factory")
            or is not a mapping at all.
    """
    if inspect.isroutine(defaults) or inspect.isroutine(overrides):
        xmsg = "Cannot merge config in form of callback"
        raise MergeError(xmsg)
    for side, operand in (("defaults", defaults), ("overrides", overrides)):
        if not isinstance(operand, Mapping):
            xmsg = (
                f"Cannot merge config: {side} must be a mapping,"
                f" got {type(operand).__name__}"
            )
            raise MergeError(xmsg)

    return _merge_recursively(defaults, overrides, "")
