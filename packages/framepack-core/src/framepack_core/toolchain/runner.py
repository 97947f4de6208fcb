"""External tool invocation.

Every command the pipeline runs (cmake, lipo, nm, otool, install_name_tool,
codesign, xcrun, git) goes through a ToolRunner so that output capture,
logging, and failure reporting behave the same everywhere.
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from framepack_core.errors import FramepackError

logger = structlog.get_logger(__name__)

# Exit status reported when the executable itself cannot be started
EXIT_NOT_FOUND = 127


@dataclass(frozen=True)
class ToolResult:
    """Completed tool invocation.

    Attributes:
        args: Command line that was executed.
        returncode: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Standard output followed by standard error."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class ToolError(FramepackError):
    """Raised when an external tool exits with a non-zero status.

    Callers translate ToolError into the domain error of their component
    (CompilationError, AssemblyError, ...).

    Attributes:
        command: Command line that failed.
        returncode: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        *,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        tool = Path(self.command[0]).name if self.command else "<empty>"
        super().__init__(f"{tool} exited with status {returncode}")

    @property
    def diagnostic(self) -> str:
        """Raw tool output, stderr first."""
        return "\n".join(part for part in (self.stderr, self.stdout) if part).strip()


class ToolRunner:
    """Runs external tools with captured text output.

    Example:
        >>> runner = ToolRunner()
        >>> result = runner.run(["lipo", "-archs", "libh3.dylib"])
        >>> result.stdout.split()
        ['x86_64', 'arm64']
    """

    def __init__(self) -> None:
        self._log = logger.bind(component="tool_runner")

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> ToolResult:
        """Run a command and capture its output.

        Args:
            args: Command line (executable first).
            cwd: Working directory.
            env: Full environment for the child process (inherits when None).
            check: Raise ToolError on a non-zero exit status.

        Returns:
            ToolResult with exit status and captured output.

        Raises:
            ToolError: If ``check`` is set and the command fails, or if the
                executable cannot be started.
        """
        command = tuple(str(a) for a in args)
        self._log.debug("tool_started", command=" ".join(command), cwd=str(cwd) if cwd else None)

        try:
            completed = subprocess.run(  # noqa: S603
                command,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise ToolError(command, EXIT_NOT_FOUND, stderr=str(e)) from e

        result = ToolResult(
            args=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        self._log.debug("tool_completed", tool=command[0], returncode=result.returncode)

        if check and not result.ok:
            raise ToolError(command, result.returncode, stdout=result.stdout, stderr=result.stderr)
        return result
