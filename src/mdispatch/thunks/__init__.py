from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mdispatch.handlers import CandidateHandler
from mdispatch.internal.names import type_name
from mdispatch.internal.type_hints import narrowing_types


class IncompatibleSignatureError(TypeError):
    """Raised when a handler does not fit the thunk shape a resolver was configured with.

    This indicates a setup error (eg: a resolver expecting 2 arguments used with 1 argument
    handlers) rather than a missing handler, so it is raised by every lookup method.
    """


def expected_signature(arity: int, *, returns: bool) -> str:
    """Describe the weakly typed thunk shape for a handler taking `arity` arguments.

    Thunks take the receiver as their first argument, so they accept one more `object` than the
    handler's parameters.
    """
    parameters = ", ".join(["object"] * (arity + 1))
    return f"Callable[[{parameters}], {'object' if returns else 'None'}]"


class Thunk:
    """Thunk is a reusable, type erased callable invoking exactly one handler.

    Calling `thunk(receiver, *args)` checks the receiver and arguments against the types the
    handler was resolved for and calls it. Thunks are immutable and may be shared across threads.
    """

    __slots__ = ("_call", "handler", "receiver_type", "returns")

    handler: CandidateHandler
    receiver_type: type
    returns: bool

    def __init__(
        self,
        receiver_type: type,
        handler: CandidateHandler,
        call: Callable[..., Any],
        *,
        returns: bool = True,
    ) -> None:
        object.__setattr__(self, "receiver_type", receiver_type)
        object.__setattr__(self, "handler", handler)
        object.__setattr__(self, "returns", returns)
        object.__setattr__(self, "_call", call)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def arity(self) -> int:
        return self.handler.arity

    def __call__(self, receiver: Any, *args: Any) -> Any:
        return self._call(receiver, *args)

    def __repr__(self) -> str:
        return f"Thunk({type_name(self.receiver_type)} -> {self.handler!r})"


class ThunkCompiler:
    """ThunkCompiler turns a resolved handler into a Thunk.

    All type introspection happens in `compile`; the returned thunk only runs `isinstance` checks
    (skipped for `object` parameters) before calling the handler.
    """

    def __init__(self, *, arity: int | None = None, returns: bool = True) -> None:
        self.arity = arity
        self.returns = returns

    def check_shape(self, handler: CandidateHandler) -> None:
        if self.arity is not None and self.arity != handler.arity:
            raise IncompatibleSignatureError(
                f"{handler!r} is incompatible with thunks taking {self.arity} argument(s). "
                f"Expected thunk signature is: {expected_signature(handler.arity, returns=self.returns)}"
            )

    def compile(self, receiver_type: type, handler: CandidateHandler) -> Thunk:
        self.check_shape(handler)
        func, arity, returns = handler.func, handler.arity, self.returns
        checks = tuple(
            (index, expected)
            for index, parameter_type in enumerate(handler.parameter_types)
            if (expected := narrowing_types(parameter_type)) is not None
        )
        receiver_name = type_name(receiver_type)

        def call(receiver: Any, *args: Any) -> Any:
            if not isinstance(receiver, receiver_type):
                raise TypeError(
                    f"Expected the receiver to be a {receiver_name} instance, got {type_name(type(receiver))}"
                )
            if len(args) != arity:
                raise TypeError(f"{handler!r} takes {arity} argument(s), got {len(args)}")
            for index, expected in checks:
                if not isinstance(args[index], expected):
                    raise TypeError(
                        f"Expected argument {index} of {handler!r} to be a {type_name(handler.parameter_types[index])} instance, got {type_name(type(args[index]))}"
                    )
            result = func(receiver, *args)
            return result if returns else None

        return Thunk(receiver_type, handler, call, returns=returns)
