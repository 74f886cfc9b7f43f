from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, ClassVar, dataclass_transform

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from mdispatch.internal.utils import class_name


# Create a `Model` base class that can be used for (most of) our internal classes. Notably, our
# models:
# - are frozen by default, which encourages (not guarantees!) more functional / testable code.
# - perform strict runtime type checking, which helps provide early call-site feedback for users.
#
# Pydantic models are not frozen by default, but we override `Model` (and thus subclasses) to be
# frozen with the `model_config`. However, type checkers do not understand `model_config` and
# instead infer hints from the `dataclass_transform` set on Pydantic's  metaclass. We can't just
# mark `Model` as frozen as subclass would continue getting the metaclass's default
# `dataclass_transform` hints. Instead, we need to "replace" the metaclass with one that has the
# correct defaults (or at least trick type checkers that we have). Teaching type checkers that
# our models are immutable allows hashability[1], meaning they can be dict/set elements.
#
# 1: https://github.com/microsoft/pyright/issues/6481
#
# Unfortunately, we cannot override a single transform, so copy others from Pydantic.
@dataclass_transform(
    field_specifiers=(Field, PrivateAttr), frozen_default=True, kw_only_default=True
)
class ModelMeta(type(BaseModel)):  # type: ignore[misc]
    pass


class Model(BaseModel, metaclass=ModelMeta):
    _abstract_: ClassVar[bool] = True  # Prevent instantiation; defaults to False in subclasses
    _type_key_: ClassVar[str] = class_name()

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        strict=True,
        validate_assignment=True,  # Unused with frozen, unless that is overridden in subclass.
        validate_default=True,
    )

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        # Default _abstract_ to False if not set explicitly on the class.
        cls._abstract_ = cls.__dict__.get("_abstract_", False)

    if not TYPE_CHECKING:

        def __new__(cls, *args, **kwargs):
            if cls._abstract_:
                raise TypeError(f"{cls._type_key_} cannot be instantiated directly.")
            return super().__new__(cls)

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        # Verify the model is hashable, ie: approximately immutable. Instances are used as dict
        # keys and shared between threads, so catch mutable field values early.
        hash(self)

    def __repr_args__(self) -> Iterable[tuple[str | None, Any]]:
        return [(k, v) for k, v in super().__repr_args__() if k in self.model_fields_set]

    def __str__(self) -> str:
        return repr(self)
