import re

import pytest

from mdispatch import AmbiguousHandlerError, OverloadResolver, handler
from tests.mdispatch.dummies import (
    AddOp,
    Base,
    Derived,
    Dispatcher,
    Hierarchy,
    Other,
    Pairs,
    RemoveOp,
    UnknownOp,
    WithFallback,
)


@pytest.fixture()
def resolver() -> OverloadResolver:
    return OverloadResolver()


def test_resolve_most_specific(resolver: OverloadResolver) -> None:
    derived = resolver.resolve(Hierarchy, "handle", [Derived])
    assert derived is not None
    assert derived.parameter_types == (Derived,)
    base = resolver.resolve(Hierarchy, "handle", [Base])
    assert base is not None
    assert base.parameter_types == (Base,)
    assert resolver.resolve(Hierarchy, "handle", [Other]) is None


def test_resolve_fallback(resolver: OverloadResolver) -> None:
    fallback = resolver.resolve(WithFallback, "handle", [Other])
    assert fallback is not None
    assert fallback.parameter_types == (object,)
    derived = resolver.resolve(WithFallback, "handle", [Derived])
    assert derived is not None
    assert derived.parameter_types == (Derived,)
    # Base is not a Derived, so only the fallback applies.
    base = resolver.resolve(WithFallback, "handle", [Base])
    assert base is not None
    assert base.parameter_types == (object,)


def test_resolve_dispatcher(resolver: OverloadResolver) -> None:
    for argument_type, expected in [
        (AddOp, (AddOp,)),
        (RemoveOp, (RemoveOp,)),
        (UnknownOp, (object,)),
    ]:
        candidate = resolver.resolve(Dispatcher, "handle", [argument_type])
        assert candidate is not None
        assert candidate.parameter_types == expected


def test_resolve_multiple_arguments(resolver: OverloadResolver) -> None:
    for argument_types, expected in [
        ((Base, Base), (Base, Base)),
        ((Base, Derived), (Base, Base)),
        ((Derived, Base), (Derived, Base)),
        ((Derived, Derived), (Derived, Derived)),
    ]:
        candidate = resolver.resolve(Pairs, "combine", argument_types)
        assert candidate is not None
        assert candidate.parameter_types == expected
    # Arity must match
    assert resolver.resolve(Pairs, "combine", [Derived]) is None
    assert resolver.resolve(Pairs, "combine", [Derived, Derived, Derived]) is None
    assert resolver.resolve(Pairs, "combine", [Derived, Other]) is None


def test_resolve_ambiguous(resolver: OverloadResolver) -> None:
    class Ambiguous:
        @handler
        def combine(self, a: Derived, b: Base) -> str:
            return "derived-base"

        @handler
        def combine(self, a: Base, b: Derived) -> str:
            return "base-derived"

    with pytest.raises(
        AmbiguousHandlerError,
        match=re.escape("Ambiguous `combine` handlers on Ambiguous for (Derived, Derived)"),
    ) as exc_info:
        resolver.resolve(Ambiguous, "combine", [Derived, Derived])
    assert isinstance(exc_info.value, TypeError)
    assert {c.parameter_types for c in exc_info.value.candidates} == {
        (Derived, Base),
        (Base, Derived),
    }
    # Unambiguous requests still resolve.
    candidate = resolver.resolve(Ambiguous, "combine", [Derived, Base])
    assert candidate is not None
    assert candidate.parameter_types == (Derived, Base)


def test_resolve_unrelated_interfaces(resolver: OverloadResolver) -> None:
    class Readable:
        pass

    class Writable:
        pass

    class File(Readable, Writable):
        pass

    class Handlers:
        @handler
        def handle(self, value: Readable) -> str:
            return "readable"

        @handler
        def handle(self, value: Writable) -> str:
            return "writable"

    with pytest.raises(AmbiguousHandlerError):
        resolver.resolve(Handlers, "handle", [File])


def test_resolve_override(resolver: OverloadResolver) -> None:
    class Child(Dispatcher):
        @handler
        def handle(self, op: AddOp) -> str:
            return "child-add"

    candidate = resolver.resolve(Child, "handle", [AddOp])
    assert candidate is not None
    assert candidate.owner is Child
    inherited = resolver.resolve(Child, "handle", [RemoveOp])
    assert inherited is not None
    assert inherited.owner is Dispatcher
    assert inherited.parameter_types == (RemoveOp,)


def test_resolve_inherited_more_specific(resolver: OverloadResolver) -> None:
    # A more specific inherited handler beats a generic one on the subclass.
    class Child(Hierarchy):
        @handler
        def handle(self, value: object) -> str:
            return "object"

    candidate = resolver.resolve(Child, "handle", [Derived])
    assert candidate is not None
    assert candidate.owner is Hierarchy
    assert candidate.parameter_types == (Derived,)
    candidate = resolver.resolve(Child, "handle", [Other])
    assert candidate is not None
    assert candidate.owner is Child


def test_resolve_unions_and_generics(resolver: OverloadResolver) -> None:
    class Values:
        @handler
        def handle(self, value: int | str) -> str:
            return "int-or-str"

        @handler
        def handle(self, value: int) -> str:
            return "int"

        @handler
        def handle(self, value: list[int]) -> str:
            return "list"

    for argument_type, expected in [
        (int, (int,)),
        (bool, (int,)),
        (str, (int | str,)),
        (list[int], (list[int],)),
    ]:
        candidate = resolver.resolve(Values, "handle", [argument_type])
        assert candidate is not None, argument_type
        assert candidate.parameter_types == expected
    # Bare containers are not assignable to parametrized ones.
    assert resolver.resolve(Values, "handle", [list]) is None
    assert resolver.resolve(Values, "handle", [float]) is None
    assert resolver.resolve(Values, "handle", [list[str]]) is None


def test_resolve_private(resolver: OverloadResolver) -> None:
    class Private:
        @handler
        def __handle(self, op: AddOp) -> str:
            return "add"

    class Child(Private):
        pass

    candidate = resolver.resolve(Child, "__handle", [AddOp])
    assert candidate is not None
    assert candidate.owner is Private
