from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import farmhash

from mdispatch.internal.utils import int64, uint64, wrap_int64

# boost::hash_combine's magic number (the golden ratio), extended to 64 bits.
_GOLDEN_RATIO = 0x9E3779B97F4A7C15


class Signature(int64):
    """Signature identifies a dispatch request as an int64 value.

    A Signature is built from the receiver type, each argument type (in order) and an optional
    routing key. Unlike XOR-style fingerprints, combining is *order sensitive*: overload resolution
    depends on the position of each argument, so `(A, B)` and `(B, A)` must not share a signature.

    Distinct requests could theoretically collide. With 64 bits and one value per dispatched type
    combination, the probability is negligible and collisions are not detected.
    """

    def combine(self, *others: int) -> Signature:
        """Mix each of `others` into this Signature, in order.

        Uses boost's `hash_combine` step (`seed ^= h + K + (seed << 6) + (seed >> 2)`), wrapping to
        64 bits after each step.
        """
        seed = int(self)
        for other in others:
            seed = int(wrap_int64(seed ^ (int(other) + _GOLDEN_RATIO + (seed << 6) + (seed >> 2))))
        return Signature(seed)

    @classmethod
    def from_string(cls, x: str, /) -> Signature:
        """Hash an arbitrary string.

        Uses Farmhash Fingerprint64 (stable across processes, unlike `hash(str)`), converted to
        int64 via two's complement.
        """
        return cls(int64(uint64(farmhash.fingerprint64(x))))

    @classmethod
    def from_type(cls, type_: Any, /) -> Signature:
        """Use the identity hash of a type (or other hashable type hint, like `list[int]`).

        Identity hashes are stable for the lifetime of the process, but not across processes.
        """
        return cls(wrap_int64(hash(type_)))


def compute_signature(
    receiver_type: Any, argument_types: Iterable[Any], routing_key: str | None = None
) -> Signature:
    signature = Signature.from_type(receiver_type)
    for argument_type in argument_types:
        signature = signature.combine(Signature.from_type(argument_type))
    if routing_key is not None:
        signature = signature.combine(Signature.from_string(routing_key))
    return signature
