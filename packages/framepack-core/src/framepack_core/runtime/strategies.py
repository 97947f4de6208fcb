"""Library loading strategies.

Exactly one strategy applies per host:

- SYSTEM: the host ships the library as a system shared object; open it by
  its well-known name and let the dynamic loader search its paths.
- BUNDLED: the application bundles a shared object; open it by its
  conventional file name.
- PROCESS: the library is linked into the application (framework bundles on
  iOS and macOS); do not open anything by file name, look symbols up in
  the process's global namespace instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from framepack_core.errors import UnsupportedPlatformError
from framepack_core.runtime import host as hosts


class LoadMode(str, Enum):
    SYSTEM = "system"
    BUNDLED = "bundled"
    PROCESS = "process"


@dataclass(frozen=True)
class LoadingStrategy:
    """How to obtain a library handle on one host.

    Attributes:
        mode: Loading mode.
        file_name_template: ``str.format`` template taking ``library``
            (unused by PROCESS mode).
    """

    mode: LoadMode
    file_name_template: str | None = None

    def file_name(self, library: str) -> str | None:
        """File name to open, or None for process-namespace lookup."""
        if self.mode is LoadMode.PROCESS or self.file_name_template is None:
            return None
        return self.file_name_template.format(library=library)

    def describe(self, library: str) -> str:
        name = self.file_name(library)
        return f"{self.mode.value}:{name}" if name else self.mode.value


DEFAULT_STRATEGIES: Mapping[str, LoadingStrategy] = {
    hosts.LINUX: LoadingStrategy(LoadMode.SYSTEM, "lib{library}.so"),
    hosts.ANDROID: LoadingStrategy(LoadMode.BUNDLED, "lib{library}.so"),
    hosts.WINDOWS: LoadingStrategy(LoadMode.BUNDLED, "{library}.dll"),
    hosts.IOS: LoadingStrategy(LoadMode.PROCESS),
    hosts.MACOS: LoadingStrategy(LoadMode.PROCESS),
}


def strategy_for(
    host: str,
    strategies: Mapping[str, LoadingStrategy] | None = None,
) -> LoadingStrategy:
    """Select the loading strategy of a host.

    Args:
        host: Normalized host name (see ``detect_host``).
        strategies: Strategy table (default: DEFAULT_STRATEGIES).

    Returns:
        The host's LoadingStrategy.

    Raises:
        UnsupportedPlatformError: If no strategy matches the host.
    """
    table = DEFAULT_STRATEGIES if strategies is None else strategies
    strategy = table.get(host)
    if strategy is None:
        raise UnsupportedPlatformError(host, list(table))
    return strategy
