from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from mdispatch.handlers import CandidateHandler, iter_candidates
from mdispatch.internal.names import type_name, type_names


class AmbiguousHandlerError(TypeError):
    """Raised when several candidates match equally well and none is more specific than the others.

    Dispatch never guesses between tied candidates; declare a more specific handler covering the
    overlap to resolve the ambiguity.
    """

    def __init__(self, message: str, candidates: Sequence[CandidateHandler] = ()) -> None:
        super().__init__(message)
        self.candidates = tuple(candidates)


class OverloadResolver:
    """OverloadResolver selects the most specific candidate handler for some argument types.

    This is the slow path of dispatch: it walks the receiver's MRO and compares every candidate, so
    results are expected to be cached by the caller.
    """

    def resolve(
        self, receiver_type: type, handler_name: str, argument_types: Sequence[Any]
    ) -> CandidateHandler | None:
        argument_types = tuple(argument_types)
        matches = self.matching_candidates(receiver_type, handler_name, argument_types)
        if not matches:
            return None
        best = [
            candidate
            for candidate in matches
            if not any(other.is_more_specific(candidate) for other in matches)
        ]
        if len(best) > 1:
            raise AmbiguousHandlerError(
                f"Ambiguous `{handler_name}` handlers on {type_name(receiver_type)} for ({type_names(argument_types)}): {best}",
                best,
            )
        return best[0]

    def matching_candidates(
        self, receiver_type: type, handler_name: str, argument_types: tuple[Any, ...]
    ) -> list[CandidateHandler]:
        """Return the candidates accepting `argument_types`, in MRO order.

        Candidates are overridden by ones with identical parameter types on more derived classes.
        """
        matches: dict[tuple[Any, ...], CandidateHandler] = {}
        for candidate in iter_candidates(receiver_type, handler_name):
            if candidate.accepts(argument_types):
                matches.setdefault(candidate.parameter_types, candidate)
        return list(matches.values())
