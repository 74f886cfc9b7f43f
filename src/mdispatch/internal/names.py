from __future__ import annotations

from types import GenericAlias, UnionType
from typing import Any, get_args, get_origin

from multimethod import multidispatch

from mdispatch.internal.type_hints import NoneType, is_annotated_hint, is_union_hint


@multidispatch
def type_name(type_: Any) -> str:
    """Return a short, human readable name for a type hint, such as `list[int]` or `A | None`."""
    if type_ is Ellipsis:
        return "..."
    if is_annotated_hint(type_):
        return type_name(get_args(type_)[0])
    if is_union_hint(type_):
        return _join_union(get_args(type_))
    if (origin := get_origin(type_)) is not None:
        return _subscripted(origin, get_args(type_))
    return repr(type_)


@type_name.register
def _type_name_class(type_: type) -> str:
    if type_ is NoneType:
        return "None"
    return type_.__name__


@type_name.register
def _type_name_generic(type_: GenericAlias) -> str:
    return _subscripted(get_origin(type_), get_args(type_))


@type_name.register
def _type_name_union(type_: UnionType) -> str:
    return _join_union(get_args(type_))


def _join_union(members: tuple[Any, ...]) -> str:
    return " | ".join(type_name(member) for member in members)


def _subscripted(origin: Any, args: tuple[Any, ...]) -> str:
    if not args:
        return type_name(origin)
    return f"{type_name(origin)}[{', '.join(type_name(arg) for arg in args)}]"


def type_names(types: tuple[Any, ...] | list[Any]) -> str:
    """Join the names of an ordered list of types, as used in error messages."""
    return ", ".join(type_name(type_) for type_ in types)
