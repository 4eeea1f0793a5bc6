# src/windpack/utils/utils_schema.py
"""Aggregate schema checking against TypedDict declarations.

Nothing here raises for bad input: every problem is collected into a
ValidationSummary so the user sees all of them at once.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from difflib import get_close_matches
from types import UnionType
from typing import Any, Literal, Union, get_args, get_origin

from typing_extensions import NotRequired

from .utils_text import plural
from .utils_types import (
    cast_hint,
    is_typeddict_like,
    safe_isinstance,
    schema_from_typeddict,
)


# --- constants ----------------------------------------------------------

DEFAULT_HINT_CUTOFF: float = 0.75
ROOT_LABEL: str = "top-level configuration"


# --- dataclasses --------------------------------------------------------


@dataclass
class ValidationSummary:
    valid: bool
    errors: list[str] = field(default_factory=list)
    strict_warnings: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    strict: bool = True
    # dotted paths of keys that are not part of the schema
    unknown_keys: list[str] = field(default_factory=list)

    @property
    def problems(self) -> list[str]:
        """Everything that makes the summary invalid."""
        return [*self.errors, *self.strict_warnings]


# --- helpers ------------------------------------------------------------


def collect_msg(
    msg: str,
    *,
    strict: bool,
    summary: ValidationSummary,  # modified in function, not returned
    is_error: bool = False,
) -> None:
    """Route a message to the appropriate bucket.
    Errors are always fatal.
    Warnings escalate to strict_warnings in strict mode.
    """
    if is_error:
        summary.errors.append(msg)
        summary.valid = False
    elif strict:
        summary.strict_warnings.append(msg)
        summary.valid = False
    else:
        summary.warnings.append(msg)


def _join_path(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


def _describe(path: str) -> str:
    return f"`{path}`" if path else ROOT_LABEL


def _infer_type_label(expected_type: Any) -> str:
    """Return a readable label (e.g. 'list[str]', '"spa" | "custom"')."""
    origin = get_origin(expected_type)
    args = get_args(expected_type)

    if origin is NotRequired and args:
        return _infer_type_label(args[0])
    if origin is Literal:
        return " | ".join(repr(a) for a in args)
    if origin in {Union, UnionType}:
        return " | ".join(_infer_type_label(a) for a in args)
    if origin is list and args:
        return f"list[{_infer_type_label(args[0])}]"
    if isinstance(expected_type, type):
        return expected_type.__name__
    return str(expected_type)


def _type_error(
    path: str,
    val: Any,
    expected_type: Any,
    *,
    strict: bool,
    summary: ValidationSummary,
    field_examples: dict[str, str] | None,
) -> None:
    example = (field_examples or {}).get(path)
    exmsg = f" (e.g. {example})" if example else ""
    msg = (
        f"{_describe(path)} expected {_infer_type_label(expected_type)}{exmsg},"
        f" got {type(val).__name__}"
    )
    collect_msg(msg, strict=strict, summary=summary, is_error=True)


# ---------------------------------------------------------------------------
# granular schema validator helpers (private and testable)
# ---------------------------------------------------------------------------


def _validate_scalar_value(
    path: str,
    val: Any,
    expected_type: Any,
    *,
    strict: bool,
    summary: ValidationSummary,  # modified in function, not returned
    field_examples: dict[str, str] | None = None,
) -> bool:
    """Validate a single non-container value against its expected type."""
    if safe_isinstance(val, expected_type):
        return True
    _type_error(
        path,
        val,
        expected_type,
        strict=strict,
        summary=summary,
        field_examples=field_examples,
    )
    return False


def _validate_list_value(
    path: str,
    val: Any,
    subtype: Any,
    *,
    strict: bool,
    summary: ValidationSummary,  # modified in function, not returned
    field_examples: dict[str, str] | None = None,
) -> bool:
    """Validate a homogeneous list, delegating each item."""
    if not isinstance(val, (list, tuple)):
        _type_error(
            path,
            val,
            list[subtype],  # type: ignore[valid-type]
            strict=strict,
            summary=summary,
            field_examples=field_examples,
        )
        return False

    items = cast_hint(list[Any], val)
    valid = True
    for i, item in enumerate(items):
        item_path = f"{path}[{i}]"
        if is_typeddict_like(subtype):
            valid &= _validate_typed_dict(
                item_path,
                item,
                subtype,
                strict=strict,
                summary=summary,
                field_examples=field_examples,
            )
        else:
            valid &= _validate_scalar_value(
                item_path,
                item,
                subtype,
                strict=strict,
                summary=summary,
                field_examples=field_examples,
            )
    return valid


def _dict_unknown_keys(
    path: str,
    val: Mapping[str, Any],
    schema: dict[str, Any],
    *,
    strict: bool,
    summary: ValidationSummary,  # modified in function, not returned
) -> bool:
    unknown: list[str] = [k for k in val if k not in schema]
    if not unknown:
        return True

    summary.unknown_keys.extend(_join_path(path, str(k)) for k in unknown)
    joined = ", ".join(f"`{u}`" for u in unknown)
    msg = f"Unknown key{plural(unknown)} {joined} in {_describe(path)}."

    hints: list[str] = []
    for k in unknown:
        close = get_close_matches(
            str(k), list(schema), n=1, cutoff=DEFAULT_HINT_CUTOFF
        )
        if close:
            hints.append(f"'{k}' → '{close[0]}'")
    if hints:
        msg += "\nHint: did you mean " + ", ".join(hints) + "?"

    collect_msg(msg, strict=strict, summary=summary)
    return not strict


def _dict_fields(
    path: str,
    val: Mapping[str, Any],
    schema: dict[str, Any],
    *,
    strict: bool,
    summary: ValidationSummary,  # modified in function, not returned
    field_examples: dict[str, str] | None = None,
) -> bool:
    valid = True

    for key, expected_type in schema.items():
        if key not in val:
            # optional or defaulted
            continue

        inner_val = val[key]
        inner_path = _join_path(path, key)
        origin = get_origin(expected_type)
        args = get_args(expected_type)
        if origin is NotRequired and args:
            expected_type = args[0]
            origin = get_origin(expected_type)
            args = get_args(expected_type)

        if origin is list:
            valid &= _validate_list_value(
                inner_path,
                inner_val,
                args[0] if args else Any,
                strict=strict,
                summary=summary,
                field_examples=field_examples,
            )
        elif is_typeddict_like(expected_type):
            valid &= _validate_typed_dict(
                inner_path,
                inner_val,
                expected_type,
                strict=strict,
                summary=summary,
                field_examples=field_examples,
            )
        else:
            valid &= _validate_scalar_value(
                inner_path,
                inner_val,
                expected_type,
                strict=strict,
                summary=summary,
                field_examples=field_examples,
            )

    return valid


def _validate_typed_dict(
    path: str,
    val: Any,
    typedict_cls: type[Any],
    *,
    strict: bool,
    summary: ValidationSummary,  # modified in function, not returned
    field_examples: dict[str, str] | None = None,
) -> bool:
    """Validate a mapping against a TypedDict schema recursively.

    - Return False if val is not a mapping
    - Recurse into its fields
    - Report unknown keys (fatal under strict=True)
    """
    if not isinstance(val, Mapping):
        collect_msg(
            f"{_describe(path)} expected an object with named keys for"
            f" {typedict_cls.__name__}, got {type(val).__name__}",
            strict=strict,
            summary=summary,
            is_error=True,
        )
        return False

    schema = schema_from_typeddict(typedict_cls)
    fields_ok = _dict_fields(
        path,
        val,
        schema,
        strict=strict,
        summary=summary,
        field_examples=field_examples,
    )
    keys_ok = _dict_unknown_keys(path, val, schema, strict=strict, summary=summary)
    return fields_ok and keys_ok


# ---------------------------------------------------------------------------
# public entry
# ---------------------------------------------------------------------------


def check_schema_conformance(
    cfg: Any,
    schema: type[Any],
    *,
    strict_config: bool,
    summary: ValidationSummary,  # modified in function, not returned
    base_path: str = "",
    field_examples: dict[str, str] | None = None,
) -> bool:
    """Thin wrapper around _validate_typed_dict for root-level schema checks."""
    return _validate_typed_dict(
        base_path,
        cfg,
        schema,
        strict=strict_config,
        summary=summary,
        field_examples=field_examples,
    )
