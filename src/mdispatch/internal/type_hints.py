from __future__ import annotations

import inspect
from collections.abc import Callable
from types import GenericAlias, UnionType
from typing import (
    Annotated,
    Any,
    TypeGuard,
    TypeVar,
    Union,
    cast,
    get_args,
    get_origin,
    get_type_hints,
)

NoneType = cast(type, type(None))  # mypy otherwise treats type(None) as an object


def _check_issubclass(klass: Any, check_type: type) -> bool:
    # If a hint is Annotated, we want to unwrap the underlying type and discard the rest of the
    # metadata.
    klass = discard_Annotated(klass)
    klass_origin, klass_args = get_origin(klass), get_args(klass)
    if isinstance(klass, TypeVar):
        klass = cast(type, Any) if klass.__bound__ is None else klass.__bound__
        klass_origin, klass_args = get_origin(klass), get_args(klass)
    check_type = discard_Annotated(check_type)
    check_type_origin, check_type_args = get_origin(check_type), get_args(check_type)
    if isinstance(check_type, TypeVar):
        check_type = cast(type, Any) if check_type.__bound__ is None else check_type.__bound__
        check_type_origin, check_type_args = get_origin(check_type), get_args(check_type)
    if klass is Any:
        return check_type is Any or check_type is object
    if check_type is Any:
        return True
    if check_type is None:
        return klass is NoneType
    # eg: issubclass(tuple, tuple)
    if klass_origin is None and check_type_origin is None:
        return issubclass(klass, check_type)
    # eg: issubclass(tuple[int], tuple)
    if klass_origin is not None and check_type_origin is None:
        return issubclass(klass_origin, check_type)
    # eg: issubclass(tuple, tuple[int])
    if klass_origin is None and check_type_origin is not None:
        return issubclass(klass, check_type_origin) and not check_type_args
    # eg: issubclass(tuple[int], tuple[int])
    if klass_origin is not None and check_type_origin is not None:
        # NOTE: Considering all container types covariant for simplicity.
        if check_type_args and not (
            len(klass_args) == len(check_type_args)
            and all(
                # check subclass OR things like "..."
                lenient_issubclass(klass_arg, check_type_arg) or klass_arg is check_type_arg
                for (klass_arg, check_type_arg) in zip(klass_args, check_type_args, strict=False)
            )
        ):
            return False
        return lenient_issubclass(klass_origin, check_type_origin)
    # Shouldn't happen, but need to explicitly say "x is not None" to narrow mypy types.
    raise NotImplementedError("The origin conditions don't cover all cases!")


def discard_Annotated(type_: Any) -> Any:
    return get_args(type_)[0] if is_annotated_hint(type_) else type_


_T = TypeVar("_T", bound="type | tuple[type, ...]")


def lenient_issubclass(klass: Any, class_or_tuple: _T) -> TypeGuard[_T]:
    if not (
        isinstance(klass, type | GenericAlias | TypeVar) or is_annotated_hint(klass) or klass is Any
    ):
        return False
    if isinstance(class_or_tuple, tuple):
        return any(lenient_issubclass(klass, subtype) for subtype in class_or_tuple)
    check_type = discard_Annotated(class_or_tuple)
    # NOTE: py 3.10 supports issubclass with Unions (eg: `issubclass(str, str | int)`)
    if is_union_hint(check_type):
        return any(lenient_issubclass(klass, subtype) for subtype in get_args(check_type))
    return _check_issubclass(klass, check_type)


def is_subtype(klass: Any, check_type: Any) -> bool:
    """Check if `klass` is assignable to `check_type`.

    Extends `lenient_issubclass` with unions on the left hand side, which are a subtype only if
    every member is.
    """
    klass = discard_Annotated(klass)
    if is_union_hint(klass):
        return all(is_subtype(member, check_type) for member in get_args(klass))
    if klass is None:
        klass = NoneType
    return lenient_issubclass(klass, check_type)


def narrowing_types(type_: Any) -> tuple[type, ...] | None:
    """Return the classes an `isinstance` check against `type_` should use.

    `None` means any value is acceptable (eg: `object` or `Any`). Subscripted generics are checked
    against their origin as the parameters cannot be verified without inspecting the contents.
    """
    type_ = discard_Annotated(type_)
    if type_ is Any or type_ is object:
        return None
    if type_ is None:
        return (NoneType,)
    if is_union_hint(type_):
        types: list[type] = []
        for member in get_args(type_):
            member_types = narrowing_types(member)
            if member_types is None:
                return None
            types.extend(member_types)
        return tuple(types)
    if isinstance(type_, TypeVar):
        return None if type_.__bound__ is None else narrowing_types(type_.__bound__)
    if (origin := get_origin(type_)) is not None:
        return narrowing_types(origin)
    if isinstance(type_, type):
        return (type_,)
    raise TypeError(f"Unable to check values against {type_!r}")


def is_runtime_checkable(type_: type) -> bool:
    """Check if `isinstance`/`issubclass` may be used with `type_`.

    Only `typing.Protocol` subclasses without `@runtime_checkable` are rejected.
    """
    return not getattr(type_, "_is_protocol", False) or getattr(
        type_, "_is_runtime_protocol", False
    )


def tidy_signature(fn: Callable[..., Any], sig: inspect.Signature) -> inspect.Signature:
    type_hints = get_type_hints(fn, include_extras=True)
    return sig.replace(
        parameters=[
            p.replace(annotation=type_hints.get(p.name, p.annotation))
            for p in sig.parameters.values()
        ],
        return_annotation=type_hints.get("return", sig.return_annotation),
    )


def signature(fn: Callable[..., Any]) -> inspect.Signature:
    """Convenience wrapper around `inspect.signature`.

    Annotations are resolved with `get_type_hints`, so string (or `from __future__ import
    annotations`) hints are returned as the real types.
    """
    return tidy_signature(fn=fn, sig=inspect.signature(fn))


#############################################
# Helpers for typing across python versions #
#############################################
#
# Focusing on  3.12+ (for now)


def is_annotated(type_: Any) -> bool:
    return type_ is Annotated


def is_annotated_hint(type_: Any) -> bool:
    return is_annotated(get_origin(type_))


def is_union(type_: Any) -> bool:
    # `Union[int, str]` or `int | str`
    return type_ is Union or type_ is UnionType


def is_union_hint(type_: Any) -> bool:
    return is_union(get_origin(type_))
