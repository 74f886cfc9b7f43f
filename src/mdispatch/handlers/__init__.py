from __future__ import annotations

import inspect
import threading
from collections.abc import Callable, Iterator
from functools import cached_property, partial
from typing import TYPE_CHECKING, Any, cast

from mdispatch.internal import wrap_exc
from mdispatch.internal.models import Model
from mdispatch.internal.names import type_name, type_names
from mdispatch.internal.type_hints import (
    discard_Annotated,
    is_runtime_checkable,
    is_subtype,
    narrowing_types,
    signature,
)
from mdispatch.internal.utils import register

if TYPE_CHECKING:
    from mdispatch.resolvers import DispatchResolver

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


class CandidateHandler(Model):
    """CandidateHandler is one member of an overload family declared on a class.

    `parameter_types` excludes the receiver (`self`) parameter. Unannotated and `Any` parameters
    are recorded as `object`, the most generic type.
    """

    name: str
    owner: type
    func: Callable[..., Any]
    parameter_types: tuple[Any, ...]

    @classmethod
    def from_function(cls, owner: type, name: str, func: Callable[..., Any]) -> CandidateHandler:
        with wrap_exc(TypeError, prefix=func.__qualname__):
            parameters = list(signature(func).parameters.values())
            if not parameters or parameters[0].kind not in _POSITIONAL:
                raise TypeError("handlers must accept the receiver as the first positional parameter")
            for parameter in parameters[1:]:
                if parameter.kind not in _POSITIONAL:
                    raise TypeError(
                        f"the `{parameter.name}` parameter must be positional, got {parameter.kind.description}"
                    )
                # Thunks narrow arguments with isinstance, which plain Protocols do not support.
                for type_ in narrowing_types(_parameter_type(parameter)) or ():
                    if not is_runtime_checkable(type_):
                        raise TypeError(
                            f"the `{parameter.name}` parameter is annotated with {type_name(type_)}, which must be @runtime_checkable"
                        )
        return cls(
            name=name,
            owner=owner,
            func=func,
            parameter_types=tuple(_parameter_type(p) for p in parameters[1:]),
        )

    @property
    def arity(self) -> int:
        return len(self.parameter_types)

    def accepts(self, argument_types: tuple[Any, ...]) -> bool:
        return len(argument_types) == self.arity and all(
            is_subtype(argument_type, parameter_type)
            for argument_type, parameter_type in zip(argument_types, self.parameter_types)
        )

    def is_more_specific(self, other: CandidateHandler) -> bool:
        """Check if every parameter is the same as or a subtype of `other`'s, and at least one is
        a strict subtype.
        """
        if self.arity != other.arity:
            return False
        pairs = list(zip(self.parameter_types, other.parameter_types))
        return all(is_subtype(mine, theirs) for mine, theirs in pairs) and any(
            not is_subtype(theirs, mine) for mine, theirs in pairs
        )

    def __repr__(self) -> str:
        return f"{type_name(self.owner)}.{self.name}({type_names(self.parameter_types)})"


def _parameter_type(parameter: inspect.Parameter) -> Any:
    annotation = discard_Annotated(parameter.annotation)
    if annotation is parameter.empty or annotation is Any:
        return object
    return annotation


class HandlerSet:
    """HandlerSet collects the overloads of a handler declared with `@handler` in a class body.

    Parameter annotations are only evaluated when the candidates are first needed, so handlers may
    refer to classes that are not defined yet (including the owner).

    Accessed from an instance, the set returns a callable that dispatches on the runtime types of
    its arguments.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.owner: type | None = None
        self.functions: list[Callable[..., Any]] = []
        self._lock = threading.Lock()
        self._resolver: DispatchResolver | None = None

    def add(self, func: Callable[..., Any]) -> None:
        self.functions.append(func)
        # Rebuild the candidates in case they were already accessed.
        self.__dict__.pop("candidates", None)

    def __set_name__(self, owner: type, name: str) -> None:
        self.owner = owner

    @cached_property
    def candidates(self) -> tuple[CandidateHandler, ...]:
        if self.owner is None:
            raise TypeError(f"The `{self.name}` handlers must be declared in a class body.")
        by_parameters: dict[tuple[Any, ...], CandidateHandler] = {}
        for func in self.functions:
            candidate = CandidateHandler.from_function(self.owner, self.name, func)
            with wrap_exc(ValueError, prefix=func.__qualname__):
                register(by_parameters, candidate.parameter_types, candidate)
        return tuple(by_parameters.values())

    @property
    def resolver(self) -> DispatchResolver:
        from mdispatch.resolvers import DispatchResolver

        with self._lock:
            if self._resolver is None:
                self._resolver = DispatchResolver(self.name, thread_safe=True)
            return self._resolver

    def dispatch(self, instance: Any, *args: Any) -> Any:
        """Call the most specific handler for the runtime types of `args`.

        Handlers are resolved from the class declaring this set rather than `type(instance)`, so
        `super().handle(...)` in an override reaches the base class's handlers.
        """
        if self.owner is None:
            raise TypeError(f"The `{self.name}` handlers must be declared in a class body.")
        thunk = self.resolver.get_thunk(self.owner, tuple(type(arg) for arg in args))
        return thunk(instance, *args)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return partial(self.dispatch, instance)

    def __call__(self, instance: Any, *args: Any) -> Any:
        return self.dispatch(instance, *args)

    def __repr__(self) -> str:
        owner = "?" if self.owner is None else self.owner.__qualname__
        return f"<HandlerSet {owner}.{self.name} ({len(self.functions)} handlers)>"


def handler(func: Callable[..., Any]) -> HandlerSet:
    """Declare `func` as one overload of the handler named `func.__name__`.

    Repeated definitions of the same name in a class body are collected into a single `HandlerSet`:

        class Dispatcher:
            @handler
            def handle(self, op: AddOp) -> str: ...

            @handler
            def handle(self, op: object) -> str: ...

    Handlers must be instance methods; the most specific overload for the argument types is
    selected at dispatch time.
    """
    if isinstance(func, staticmethod | classmethod):
        raise TypeError(
            f"`{func.__func__.__qualname__}` must be an instance method to be used as a handler."
        )
    # Look up an existing set of the same name in the caller's namespace (ie: the class body, whose
    # code object is named after the class).
    existing = None
    frame = inspect.currentframe()
    if frame is not None and (caller := frame.f_back) is not None:
        existing = caller.f_locals.get(_mangle(caller.f_code.co_name, func.__name__))
    handlers = existing if isinstance(existing, HandlerSet) else HandlerSet(func.__name__)
    handlers.add(func)
    return handlers


def _mangle(class_name: str, name: str) -> str:
    # Private names are mangled with the (stripped) name of the class defining them.
    if name.startswith("__") and not name.endswith("__") and class_name.strip("_"):
        return f"_{class_name.lstrip('_')}{name}"
    return name


def iter_candidates(receiver_type: type, name: str) -> Iterator[CandidateHandler]:
    """Yield the candidates named `name` on `receiver_type` and its bases, in MRO order.

    Both `@handler` sets and plain functions are candidates. Static and class methods are not bound
    to a receiver and are skipped.
    """
    for owner in inspect.getmro(receiver_type):
        member = owner.__dict__.get(_mangle(owner.__name__, name))
        if isinstance(member, HandlerSet):
            yield from member.candidates
        elif inspect.isfunction(member):
            yield CandidateHandler.from_function(owner, name, cast(Callable[..., Any], member))
