# src/windpack/utils/utils_types.py


from collections.abc import Mapping
from types import UnionType
from typing import (
    Any,
    Literal,
    TypeVar,
    Union,
    cast,
    get_args,
    get_origin,
    get_type_hints,
)

from typing_extensions import NotRequired


T = TypeVar("T")


def cast_hint(typ: type[T], value: Any) -> T:  # noqa: ARG001
    """Explicit cast that documents intent but is purely for type hinting.

    Use it where a narrowing is intentional and `typing.cast` would read as
    redundant. Performs *no runtime checks*.
    """
    return cast("T", value)


def schema_from_typeddict(td: type[Any]) -> dict[str, Any]:
    """Extract field names and their annotated types from a TypedDict."""
    return get_type_hints(td, include_extras=True)


def is_typeddict_like(tp: Any) -> bool:
    return (
        isinstance(tp, type)
        and hasattr(tp, "__annotations__")
        and hasattr(tp, "__total__")
    )


def literal_to_set(literal_type: Any) -> set[Any]:
    """Extract values from a Literal type as a set.

    Example:
        Mode = Literal["development", "production"]
        literal_to_set(Mode)  # {"development", "production"}

    Raises:
        TypeError: If the input is not a Literal type
    """
    origin = get_origin(literal_type)
    if origin is not Literal:
        msg = f"Expected Literal type, got {literal_type}"
        raise TypeError(msg)
    return set(get_args(literal_type))


# frozen config views carry tuples and read-only mappings
_READ_ONLY_FORMS: dict[Any, Any] = {list: (list, tuple), dict: Mapping}


def _isinstance_generics(  # noqa: PLR0911
    value: Any,
    origin: Any,
    args: tuple[Any, ...],
) -> bool:
    if not isinstance(value, _READ_ONLY_FORMS.get(origin, origin)):
        return False

    if not args:
        return True

    # list[str]
    if origin is list:
        subtype = args[0]
        items = cast_hint(list[Any], value)
        return all(safe_isinstance(v, subtype) for v in items)

    # dict[str, int]
    if origin is dict:
        key_t, val_t = args if len(args) == 2 else (Any, Any)  # noqa: PLR2004
        dct = cast_hint(Mapping[Any, Any], value)
        return all(
            safe_isinstance(k, key_t) and safe_isinstance(v, val_t)
            for k, v in dct.items()
        )

    # tuple[str, int] / tuple[str, ...]
    if origin is tuple and isinstance(value, tuple):
        tup = cast_hint(tuple[Any, ...], value)
        if len(args) == 2 and args[1] is Ellipsis:  # noqa: PLR2004
            return all(safe_isinstance(v, args[0]) for v in tup)
        if len(args) == len(tup):
            return all(safe_isinstance(v, t) for v, t in zip(tup, args, strict=True))
        return False

    return True  # e.g. re.Pattern[str], Iterable[]


def safe_isinstance(value: Any, expected_type: Any) -> bool:  # noqa: PLR0911
    """Like isinstance(), but safe for TypedDicts and typing generics.

    Handles Any, NotRequired, Literal, Union/Optional, TypedDict subclasses
    (checked as mappings), and list/dict/tuple generics; `list[...]` also
    accepts tuples and `dict[...]` any mapping. `bool` is never
    accepted where an `int` is expected.
    """
    if expected_type is Any:
        return True

    origin = get_origin(expected_type)
    args = get_args(expected_type)

    if origin is NotRequired:
        if args:
            return safe_isinstance(value, args[0])
        return True

    if origin is Literal:
        return value in args

    if origin in {Union, UnionType}:
        return any(safe_isinstance(value, t) for t in args)

    if is_typeddict_like(expected_type):
        return isinstance(value, Mapping)

    if origin:
        return _isinstance_generics(value, origin, args)

    if expected_type is int and isinstance(value, bool):
        return False

    try:
        return isinstance(value, expected_type)
    except TypeError:
        # Non-type or strange typing construct
        return False
