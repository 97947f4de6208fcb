"""Runtime library resolution for FFI consumers."""

from __future__ import annotations

from framepack_core.runtime.host import detect_host
from framepack_core.runtime.resolver import (
    LibraryHandle,
    LibraryResolver,
    get_resolver,
    reset_resolvers,
    resolve_library,
)
from framepack_core.runtime.strategies import (
    DEFAULT_STRATEGIES,
    LoadingStrategy,
    LoadMode,
    strategy_for,
)

__all__ = [
    "detect_host",
    "LibraryHandle",
    "LibraryResolver",
    "get_resolver",
    "resolve_library",
    "reset_resolvers",
    "LoadMode",
    "LoadingStrategy",
    "DEFAULT_STRATEGIES",
    "strategy_for",
]
