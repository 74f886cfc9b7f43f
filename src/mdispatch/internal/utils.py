from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar, cast


class ClassName:
    def __get__(self, obj: Any, type_: type[Any]) -> str:
        return type_.__name__


class_name = cast(Callable[[], str], ClassName)


class _int(int):
    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"

    def __str__(self) -> str:
        return str(int(self))


class int64(_int):
    _min, _max = -(2**63), (2**63) - 1

    def __new__(cls, i: int | int64 | uint64) -> int64:
        if i > cls._max:
            if isinstance(i, uint64):
                i = int(i) - uint64._max - 1
            else:
                raise ValueError(f"{i} is too large for int64. Hint: cast to uint64 first.")
        if i < cls._min:
            raise ValueError(f"{i} is too small for int64.")
        return super().__new__(cls, i)


class uint64(_int):
    _min, _max = 0, (2**64) - 1

    def __new__(cls, i: int | int64 | uint64) -> uint64:
        if i > cls._max:
            raise ValueError(f"{i} is too large for uint64.")
        if i < cls._min:
            if isinstance(i, int64):
                i = int(i) + cls._max + 1
            else:
                raise ValueError(f"{i} is negative. Hint: cast to int64 first.")
        return super().__new__(cls, i)


def wrap_int64(x: int) -> int64:
    """Truncate an arbitrary int to 64 bits and reinterpret it as a signed int64."""
    return int64(uint64(x & uint64._max))


_K = TypeVar("_K")
_V = TypeVar("_V")


def register(registry: dict[_K, _V], key: _K, value: _V) -> _V:
    if key in registry:
        raise ValueError(f"{key} is already registered with: {registry[key]}!")
    registry[key] = value
    return value
