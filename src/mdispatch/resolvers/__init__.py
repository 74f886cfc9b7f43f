from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import Field, field_validator

from mdispatch.caches import DispatchCache, SynchronizedDispatchCache
from mdispatch.internal.models import Model
from mdispatch.internal.names import type_name, type_names
from mdispatch.resolution import OverloadResolver
from mdispatch.signatures import Signature, compute_signature
from mdispatch.thunks import Thunk, ThunkCompiler


class HandlerNotFoundError(LookupError):
    """Raised when no handler accepts the requested receiver and argument types."""

    def __init__(self, handler_name: str, receiver_type: type, argument_types: Sequence[Any]) -> None:
        self.handler_name = handler_name
        self.receiver_type = receiver_type
        self.argument_types = tuple(argument_types)
        super().__init__(
            f"No `{handler_name}` handler accepting ({type_names(self.argument_types)}) was found on {type_name(receiver_type)}"
        )


class ResolverConfig(Model):
    handler_name: str
    thread_safe: bool = False
    # The number of arguments (excluding the receiver) every thunk must take, if fixed.
    arity: int | None = Field(default=None, ge=0)
    # When False, thunks discard the handler's result and return None.
    returns: bool = True

    @field_validator("handler_name")
    @classmethod
    def check_handler_name(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"`{value}` is not a valid method name")
        return value


class DispatchResolver:
    """DispatchResolver finds, compiles and caches the handler to call for a set of types.

    Handlers are methods named `handler_name` (or `routing_key + handler_name`) on the receiver type
    or its bases, usually declared with `@handler`. The most specific handler accepting the argument
    types is compiled into a Thunk once per distinct (receiver type, argument types, routing key)
    and reused afterwards.

    With `thread_safe=False` (the default), the resolver must not be used from several threads
    at once.
    """

    def __init__(
        self,
        handler_name: str,
        *,
        thread_safe: bool = False,
        arity: int | None = None,
        returns: bool = True,
        overload_resolver: OverloadResolver | None = None,
    ) -> None:
        self.config = ResolverConfig(
            handler_name=handler_name, thread_safe=thread_safe, arity=arity, returns=returns
        )
        self.cache = SynchronizedDispatchCache() if thread_safe else DispatchCache()
        self.compiler = ThunkCompiler(arity=arity, returns=returns)
        self.overload_resolver = overload_resolver or OverloadResolver()

    @property
    def handler_name(self) -> str:
        return self.config.handler_name

    def get_thunk(
        self, receiver_type: type, argument_types: Sequence[Any], routing_key: str | None = None
    ) -> Thunk:
        found, thunk = self.try_get_thunk(receiver_type, argument_types, routing_key)
        if not found or thunk is None:
            raise HandlerNotFoundError(
                self._method_name(routing_key), receiver_type, argument_types
            )
        return thunk

    def try_get_thunk(
        self, receiver_type: type, argument_types: Sequence[Any], routing_key: str | None = None
    ) -> tuple[bool, Thunk | None]:
        """Like `get_thunk`, but return `(False, None)` instead of raising if no handler is found.

        Configuration errors (eg: `IncompatibleSignatureError`) and ambiguous handlers still raise.
        """
        argument_types = tuple(argument_types)
        signature = compute_signature(receiver_type, argument_types, routing_key)
        thunk = self.cache.get_or_compile(
            signature, lambda: self._compile(signature, receiver_type, argument_types, routing_key)
        )
        return thunk is not None, thunk

    def dispatch(self, receiver: Any, *args: Any, routing_key: str | None = None) -> Any:
        """Call the handler for the runtime types of `receiver` and `args`."""
        thunk = self.get_thunk(type(receiver), tuple(type(arg) for arg in args), routing_key)
        return thunk(receiver, *args)

    def _compile(
        self,
        signature: Signature,
        receiver_type: type,
        argument_types: tuple[Any, ...],
        routing_key: str | None,
    ) -> Thunk | None:
        method_name = self._method_name(routing_key)
        handler = self.overload_resolver.resolve(receiver_type, method_name, argument_types)
        if handler is None:
            logging.debug(
                f"No `{method_name}` handler on {type_name(receiver_type)} for ({type_names(argument_types)})"
            )
            return None
        thunk = self.compiler.compile(receiver_type, handler)
        logging.debug(
            f"Compiled {thunk!r} for ({type_names(argument_types)}) with signature {signature}"
        )
        return thunk

    def _method_name(self, routing_key: str | None) -> str:
        if routing_key is None:
            return self.handler_name
        return f"{routing_key}{self.handler_name}"

    def __len__(self) -> int:
        return len(self.cache)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config!r})"
