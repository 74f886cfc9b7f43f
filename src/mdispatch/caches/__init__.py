from __future__ import annotations

import threading
from collections.abc import Callable

from mdispatch.signatures import Signature
from mdispatch.thunks import Thunk


class DispatchCache:
    """DispatchCache maps Signatures to compiled Thunks.

    Entries are never evicted or invalidated, so the size is bounded by the distinct type
    combinations actually dispatched.

    This cache is *not* synchronized: callers must not share it across threads without their own
    locking. Use `SynchronizedDispatchCache` otherwise.
    """

    def __init__(self) -> None:
        self._thunks: dict[Signature, Thunk] = {}

    def lookup(self, signature: Signature) -> Thunk | None:
        return self._thunks.get(signature)

    def insert(self, signature: Signature, thunk: Thunk) -> None:
        self._thunks[signature] = thunk

    def get_or_compile(
        self, signature: Signature, compute: Callable[[], Thunk | None]
    ) -> Thunk | None:
        """Return the cached Thunk, or call `compute` and cache its result.

        A `None` result (no handler found) is not cached. If `compute` raises, the cache is left
        unchanged.
        """
        if (thunk := self.lookup(signature)) is not None:
            return thunk
        if (thunk := compute()) is not None:
            self.insert(signature, thunk)
        return thunk

    def __contains__(self, signature: object) -> bool:
        return (
            isinstance(signature, int)
            and Signature._min <= signature <= Signature._max
            and self.lookup(Signature(signature)) is not None
        )

    def __len__(self) -> int:
        return len(self._thunks)


class SynchronizedDispatchCache(DispatchCache):
    """DispatchCache guarding every read and write with a lock.

    The lock is *not* held while computing missing Thunks, so threads missing the same signature at
    the same time may each compile an (equivalent) Thunk, with the last insert kept.
    """

    def __init__(self) -> None:
        super().__init__()
        self._lock = threading.Lock()

    def lookup(self, signature: Signature) -> Thunk | None:
        with self._lock:
            return super().lookup(signature)

    def insert(self, signature: Signature, thunk: Thunk) -> None:
        with self._lock:
            super().insert(signature, thunk)

    def __len__(self) -> int:
        with self._lock:
            return super().__len__()
