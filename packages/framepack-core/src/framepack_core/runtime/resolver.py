"""Runtime library resolution.

Resolves, once per process, the handle through which FFI symbol lookups for
a library are performed. Concurrent first-use calls converge on a single
library-open operation; later calls return the cached handle.

Example:
    >>> handle = resolve_library("h3")
    >>> degs_to_rads = handle.lookup("degsToRads")
"""

from __future__ import annotations

import ctypes
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog

from framepack_core.errors import LibraryLoadError, SymbolNotFoundError
from framepack_core.runtime.host import detect_host
from framepack_core.runtime.strategies import LoadingStrategy, LoadMode, strategy_for

logger = structlog.get_logger(__name__)

# Opens a library by file name, or the process namespace when given None
Opener = Callable[[str | None], Any]


def _default_opener(name: str | None) -> ctypes.CDLL:
    return ctypes.CDLL(name)


class LibraryHandle:
    """Opaque handle for symbol-by-name lookups.

    Obtained once from a LibraryResolver and passed explicitly to the code
    that binds FFI routines.

    Attributes:
        library: Library base name.
        strategy: Strategy the handle was obtained with.
    """

    def __init__(self, library: str, strategy: LoadingStrategy, native: Any) -> None:
        self.library = library
        self.strategy = strategy
        self._native = native

    @property
    def mode(self) -> LoadMode:
        return self.strategy.mode

    def lookup(self, symbol: str) -> Any:
        """Look a routine up by name.

        Raises:
            SymbolNotFoundError: If the symbol is not exported.
        """
        try:
            return getattr(self._native, symbol)
        except AttributeError as e:
            raise SymbolNotFoundError([symbol], self.library) from e

    def has_symbol(self, symbol: str) -> bool:
        return hasattr(self._native, symbol)

    def require(self, symbols: Iterable[str]) -> None:
        """Ensure every routine of an FFI contract resolves.

        Raises:
            SymbolNotFoundError: Listing every missing symbol.
        """
        missing = [s for s in symbols if not self.has_symbol(s)]
        if missing:
            raise SymbolNotFoundError(missing, self.library)

    def __repr__(self) -> str:
        return f"LibraryHandle({self.library!r}, {self.strategy.describe(self.library)!r})"


class LibraryResolver:
    """Selects a loading strategy and caches the resulting handle.

    Attributes:
        library: Library base name.
        host: Normalized host name.
    """

    def __init__(
        self,
        library: str,
        *,
        host: str | None = None,
        strategies: Mapping[str, LoadingStrategy] | None = None,
        opener: Opener | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            library: Library base name (``h3``).
            host: Host name override (default: detected).
            strategies: Strategy table override.
            opener: Library-open function (default: ``ctypes.CDLL``).
        """
        self.library = library
        self.host = host or detect_host()
        self._strategies = strategies
        self._opener: Opener = opener or _default_opener
        self._handle: LibraryHandle | None = None
        self._lock = threading.Lock()
        self._log = logger.bind(component="library_resolver", library=library, host=self.host)

    @property
    def resolved(self) -> bool:
        return self._handle is not None

    def strategy(self) -> LoadingStrategy:
        """Strategy for this host.

        Raises:
            UnsupportedPlatformError: If no strategy matches the host.
        """
        return strategy_for(self.host, self._strategies)

    def resolve(self) -> LibraryHandle:
        """Return the library handle, opening the library on first use.

        Returns:
            Cached LibraryHandle.

        Raises:
            UnsupportedPlatformError: If the host has no strategy; nothing is
                probed on disk.
            LibraryLoadError: If the strategy's open operation fails.
        """
        handle = self._handle
        if handle is not None:
            return handle

        with self._lock:
            if self._handle is not None:
                return self._handle

            strategy = self.strategy()
            file_name = strategy.file_name(self.library)
            try:
                native = self._opener(file_name)
            except OSError as e:
                self._log.error("library_load_failed", strategy=strategy.mode.value)
                raise LibraryLoadError(
                    file_name or self.library,
                    strategy.mode.value,
                    internal_details=str(e),
                ) from e

            self._handle = LibraryHandle(self.library, strategy, native)
            self._log.info(
                "library_resolved",
                strategy=strategy.mode.value,
                file_name=file_name,
            )
            return self._handle


_resolvers: dict[str, LibraryResolver] = {}
_resolvers_lock = threading.Lock()


def get_resolver(library: str) -> LibraryResolver:
    """Process-wide resolver of a library."""
    with _resolvers_lock:
        resolver = _resolvers.get(library)
        if resolver is None:
            resolver = LibraryResolver(library)
            _resolvers[library] = resolver
        return resolver


def resolve_library(library: str) -> LibraryHandle:
    """Resolve a library once per process.

    Args:
        library: Library base name.

    Returns:
        Cached LibraryHandle.
    """
    return get_resolver(library).resolve()


def reset_resolvers() -> None:
    """Forget every cached resolver (test isolation)."""
    with _resolvers_lock:
        _resolvers.clear()
