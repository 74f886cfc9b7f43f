from __future__ import annotations

import importlib.metadata

__version__ = importlib.metadata.version("mdispatch")

from mdispatch.caches import DispatchCache, SynchronizedDispatchCache
from mdispatch.handlers import CandidateHandler, HandlerSet, handler, iter_candidates
from mdispatch.resolution import AmbiguousHandlerError, OverloadResolver
from mdispatch.resolvers import DispatchResolver, HandlerNotFoundError, ResolverConfig
from mdispatch.signatures import Signature, compute_signature
from mdispatch.thunks import IncompatibleSignatureError, Thunk, ThunkCompiler

# Export all interfaces.
__all__ = [
    "AmbiguousHandlerError",
    "CandidateHandler",
    "DispatchCache",
    "DispatchResolver",
    "HandlerNotFoundError",
    "HandlerSet",
    "IncompatibleSignatureError",
    "OverloadResolver",
    "ResolverConfig",
    "Signature",
    "SynchronizedDispatchCache",
    "Thunk",
    "ThunkCompiler",
    "compute_signature",
    "handler",
    "iter_candidates",
]
