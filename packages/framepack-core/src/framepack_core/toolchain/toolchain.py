"""Toolchain probing and SDK resolution.

The pipeline checks for every required tool before doing any build work,
so a missing Xcode component is reported once, up front, instead of as a
confusing failure halfway through a run.
"""

from __future__ import annotations

import shutil
import threading
from collections.abc import Callable, Iterable

import structlog

from framepack_core.errors import BuildEnvironmentError
from framepack_core.toolchain.runner import ToolError, ToolRunner

logger = structlog.get_logger(__name__)

# Tools needed to compile, merge, assemble, sign, and verify
BUILD_TOOLS: tuple[str, ...] = (
    "cmake",
    "xcrun",
    "lipo",
    "install_name_tool",
    "codesign",
    "nm",
    "otool",
)

# Tools needed only to verify an existing package
VERIFY_TOOLS: tuple[str, ...] = ("lipo", "nm", "otool", "codesign")

# Needed when the source tree has to be fetched
SOURCE_TOOLS: tuple[str, ...] = ("git",)


class Toolchain:
    """Locates build tools and resolves platform SDKs.

    Attributes:
        runner: ToolRunner used for every external command.

    Example:
        >>> toolchain = Toolchain()
        >>> toolchain.require(*BUILD_TOOLS)
        >>> toolchain.sdk_path("iphoneos")
        '/Applications/Xcode.app/.../iPhoneOS.sdk'
    """

    def __init__(
        self,
        runner: ToolRunner | None = None,
        *,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        """Initialize the toolchain.

        Args:
            runner: ToolRunner for external commands (default: subprocess).
            which: Executable lookup function (default: shutil.which).
        """
        self.runner = runner or ToolRunner()
        self._which = which
        self._sdk_paths: dict[str, str] = {}
        self._sdk_lock = threading.Lock()
        self._log = logger.bind(component="toolchain")

    def locate(self, tool: str) -> str | None:
        """Return the absolute path of a tool, or None if absent."""
        return self._which(tool)

    def probe(self, tools: Iterable[str] = BUILD_TOOLS) -> dict[str, str | None]:
        """Locate several tools.

        Args:
            tools: Tool names to look up.

        Returns:
            Mapping of tool name to path (None when absent), in input order.
        """
        return {tool: self.locate(tool) for tool in tools}

    def require(self, *tools: str) -> dict[str, str]:
        """Ensure every named tool is available.

        Args:
            *tools: Tool names (defaults to BUILD_TOOLS when empty).

        Returns:
            Mapping of tool name to absolute path.

        Raises:
            BuildEnvironmentError: Listing every missing tool.
        """
        found = self.probe(tools or BUILD_TOOLS)
        missing = [name for name, path in found.items() if path is None]
        if missing:
            self._log.error("tools_missing", missing=missing)
            raise BuildEnvironmentError(missing_tools=missing)

        self._log.debug("tools_found", tools=list(found))
        return {name: path for name, path in found.items() if path is not None}

    def sdk_path(self, sdk: str) -> str:
        """Resolve the filesystem path of a platform SDK.

        Results are cached per SDK name.

        Args:
            sdk: SDK name (iphoneos, iphonesimulator, macosx, ...).

        Returns:
            SDK root path reported by ``xcrun``.

        Raises:
            BuildEnvironmentError: If the SDK is not installed.
        """
        with self._sdk_lock:
            cached = self._sdk_paths.get(sdk)
            if cached is not None:
                return cached

            try:
                result = self.runner.run(["xcrun", "--sdk", sdk, "--show-sdk-path"])
            except ToolError as e:
                raise BuildEnvironmentError(
                    f"SDK '{sdk}' is not available",
                    missing_tools=[sdk],
                    internal_details=e.diagnostic,
                ) from e

            path = result.stdout.strip()
            if not path:
                raise BuildEnvironmentError(
                    f"SDK '{sdk}' is not available",
                    missing_tools=[sdk],
                    internal_details="xcrun returned an empty SDK path",
                )

            self._sdk_paths[sdk] = path
            self._log.debug("sdk_resolved", sdk=sdk, path=path)
            return path
