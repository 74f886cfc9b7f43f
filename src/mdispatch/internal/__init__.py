from collections.abc import Iterator
from contextlib import contextmanager


@contextmanager
def wrap_exc(*error_types: type[Exception], prefix: str) -> Iterator[None]:
    """Re-raise exceptions of `error_types` with a message prefix, preserving the type.

    Each error type must be initializable with a single string message argument. Nested wrapping
    keeps the chain short by linking the outermost error directly to the original one.
    """
    try:
        yield
    except error_types as e:
        msg = str(e)
        if getattr(e, "wrapped", False) and e.__cause__ is not None:
            src = e.__cause__
        else:
            msg = f" - {msg}"
            src = e
        error = type(e)(f"{prefix}{msg}")
        error.wrapped = True  # type: ignore[attr-defined]
        raise error from src
