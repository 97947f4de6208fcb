"""Custom exception hierarchy for framepack-core.

This module defines the exception classes raised by the build pipeline and
the runtime resolver:
- FramepackError: Base exception for all framepack errors
- BuildEnvironmentError: Required toolchain component or source tree absent
- CompilationError: Native source fails to build for a target
- ConsistencyError: Architecture slices disagree on exported symbols
- AssemblyError: Bundle layout, path rewrite, or signing failed for a target
- PackagingError: Configured targets and assembled bundles do not line up
- VerificationError: An integrity check failed on the finished package
- ResolutionError: Runtime library resolution or symbol lookup failed

User-facing messages are short and name the target, check, or symbol involved.
Raw tool output (compiler diagnostics, codesign stderr) travels in
``internal_details`` and is logged via structlog.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class FramepackError(Exception):
    """Base exception for framepack.

    Args:
        user_message: Message to display to the user.
        internal_details: Optional technical details (raw tool output) for logging.

    Example:
        >>> raise FramepackError(
        ...     "Build failed",
        ...     internal_details="cmake exited with status 1",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize FramepackError with user message and optional internal details.

        Args:
            user_message: Message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details

        if internal_details:
            logger.error(
                "framepack_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(FramepackError):
    """Raised when framepack.yaml cannot be loaded or is invalid.

    Attributes:
        file_path: Path to the configuration file (if known).
        field_path: Dot-separated path to the invalid field.
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        context_parts: list[str] = []
        if file_path:
            context_parts.append(f"in {file_path}")
        if field_path:
            context_parts.append(f"field '{field_path}'")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.file_path = file_path
        self.field_path = field_path


class BuildEnvironmentError(FramepackError):
    """Raised when a required toolchain component is absent.

    Reported before any build work starts.

    Attributes:
        missing_tools: Names of tools that could not be found on PATH.

    Example:
        >>> raise BuildEnvironmentError(missing_tools=["lipo", "codesign"])
        # User sees: "Required tools not found: lipo, codesign"
    """

    def __init__(
        self,
        user_message: str | None = None,
        *,
        missing_tools: list[str] | None = None,
        internal_details: str | None = None,
    ) -> None:
        self.missing_tools = list(missing_tools or [])
        if user_message is None:
            user_message = f"Required tools not found: {', '.join(self.missing_tools)}"
        super().__init__(user_message, internal_details=internal_details)


class SourceError(BuildEnvironmentError):
    """Raised when the native source tree cannot be located or fetched."""


class CompilationError(FramepackError):
    """Raised when native source fails to build for a target.

    Fatal to the whole pipeline run. Carries the target identifier and the
    raw compiler diagnostic.

    Attributes:
        target: PlatformTarget identifier (e.g. "ios-arm64").
        architecture: Architecture being compiled when the failure happened.
        diagnostic: Raw compiler output.
    """

    def __init__(
        self,
        target: str,
        diagnostic: str,
        *,
        architecture: str | None = None,
        user_message: str | None = None,
    ) -> None:
        self.target = target
        self.architecture = architecture
        self.diagnostic = diagnostic
        if user_message is None:
            where = f"{target} ({architecture})" if architecture else target
            user_message = f"Compilation failed for target '{where}'"
        super().__init__(user_message, internal_details=diagnostic or None)


class ConsistencyError(FramepackError):
    """Raised when architecture-merge inputs disagree.

    Prevents producing a silently broken universal binary.

    Attributes:
        target: PlatformTarget identifier.
        differences: Mapping of architecture to symbols that differ from the
            reference slice (prefixed with "+" when extra, "-" when missing).
    """

    def __init__(
        self,
        target: str,
        user_message: str,
        *,
        differences: dict[str, list[str]] | None = None,
        internal_details: str | None = None,
    ) -> None:
        self.target = target
        self.differences = dict(differences or {})
        super().__init__(
            f"Cannot merge architectures for target '{target}': {user_message}",
            internal_details=internal_details,
        )


class AssemblyError(FramepackError):
    """Raised when bundle assembly fails for one target.

    Isolated to that target, but still fails the overall run.

    Attributes:
        target: PlatformTarget identifier.
        step: Assembly step that failed (e.g. "rewrite_self_reference").
        related: Failures of other targets collected during the same run.
    """

    def __init__(
        self,
        target: str,
        step: str,
        *,
        internal_details: str | None = None,
        related: list[AssemblyError] | None = None,
    ) -> None:
        self.target = target
        self.step = step
        self.related = list(related or [])
        super().__init__(
            f"Bundle assembly failed for target '{target}' at step '{step}'",
            internal_details=internal_details,
        )


class PackagingError(FramepackError):
    """Raised when configured targets and assembled bundles do not line up.

    Attributes:
        missing: Configured targets without a bundle.
        orphaned: Bundles for targets that are not configured.
        duplicated: Targets with more than one bundle.
    """

    def __init__(
        self,
        user_message: str,
        *,
        missing: list[str] | None = None,
        orphaned: list[str] | None = None,
        duplicated: list[str] | None = None,
        internal_details: str | None = None,
    ) -> None:
        self.missing = list(missing or [])
        self.orphaned = list(orphaned or [])
        self.duplicated = list(duplicated or [])
        super().__init__(user_message, internal_details=internal_details)


class VerificationError(FramepackError):
    """Raised when an integrity check fails on the finished package.

    Attributes:
        check: Name of the failing check (structure, symbol_export,
            signature, install_name).
        target: PlatformTarget identifier the check failed for.
        missing_symbols: Symbols absent from the dynamic symbol table.

    Example:
        >>> raise VerificationError("symbol_export", "ios-arm64", detail="...")
        # User sees: "Verification check 'symbol_export' failed for target 'ios-arm64': ..."
    """

    def __init__(
        self,
        check: str,
        target: str,
        *,
        detail: str = "",
        missing_symbols: list[str] | None = None,
        internal_details: str | None = None,
    ) -> None:
        self.check = check
        self.target = target
        self.detail = detail
        self.missing_symbols = list(missing_symbols or [])
        message = f"Verification check '{check}' failed for target '{target}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, internal_details=internal_details)


class ResolutionError(FramepackError):
    """Raised when the runtime library cannot be resolved or used."""


class UnsupportedPlatformError(ResolutionError):
    """Raised when the host platform matches no loading strategy.

    Attributes:
        host: Normalized host platform name.
        supported: Hosts that do have a loading strategy.
    """

    def __init__(self, host: str, supported: list[str]) -> None:
        self.host = host
        self.supported = list(supported)
        supported_str = ", ".join(sorted(supported)) if supported else "none"
        super().__init__(f"Platform '{host}' is not supported. Supported: {supported_str}")


class LibraryLoadError(ResolutionError):
    """Raised when the selected loading strategy cannot open the library.

    Attributes:
        library: Library name or file name that was opened.
        strategy: Loading strategy that was attempted.
    """

    def __init__(
        self,
        library: str,
        strategy: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        self.library = library
        self.strategy = strategy
        super().__init__(
            f"Unable to load library '{library}' using strategy '{strategy}'",
            internal_details=internal_details,
        )


class SymbolNotFoundError(ResolutionError):
    """Raised when a symbol-by-name lookup fails against a resolved handle.

    Attributes:
        symbols: Names that could not be resolved.
        library: Library the lookup was performed against.
    """

    def __init__(self, symbols: list[str], library: str) -> None:
        self.symbols = list(symbols)
        self.library = library
        super().__init__(f"Symbol(s) not found in '{library}': {', '.join(self.symbols)}")
