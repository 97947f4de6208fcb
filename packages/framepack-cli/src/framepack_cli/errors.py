"""CLI error handling for framepack-cli.

This module provides CLI-specific error handling that wraps
framepack-core exceptions and provides user-friendly messages
with appropriate exit codes.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import click
import yaml
from pydantic import ValidationError as PydanticValidationError

from framepack_cli.output import error

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

    from framepack_core import FramepackError, PipelineSpec


# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Pipeline or validation failure
EXIT_SYSTEM_ERROR = 2  # Environment or file system failure


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        """Initialize CLIError.

        Args:
            message: User-facing error message.
            exit_code: Exit code for the CLI.
        """
        super().__init__(message)
        self.exit_code = exit_code

    def show(self, file: object = None) -> None:
        """Display the error message using Rich formatting.

        Args:
            file: Output file (unused, for Click compatibility).
        """
        error(self.format_message())


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format Pydantic validation error into user-friendly message.

    Args:
        err: Pydantic ValidationError instance.

    Returns:
        Formatted error message with field paths and issues.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - source.ref: Value error, Source ref 'main' is a floating..."
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]

    for e in errors:
        loc = ".".join(str(x) for x in e["loc"])
        msg = e["msg"]
        lines.append(f"  - {loc}: {msg}" if loc else f"  - {msg}")

    return "\n".join(lines)


def handle_yaml_error(err: yaml.YAMLError, file_path: str) -> NoReturn:
    """Handle YAML parsing errors with line number information.

    Raises:
        CLIError: Always raises with formatted error message.
    """
    error_msg = str(err)
    mark = getattr(err, "problem_mark", None)
    if mark is not None:
        line = mark.line + 1
        col = mark.column + 1
        error_msg = f"YAML syntax error at line {line}, column {col}: {getattr(err, 'problem', '')}"

    raise CLIError(f"Invalid YAML in {file_path}: {error_msg}")


def handle_file_not_found(file_path: str) -> NoReturn:
    """Handle file not found errors with helpful suggestions.

    Raises:
        CLIError: Always raises with formatted error message.
    """
    raise CLIError(
        f"File not found: {file_path}\n\n"
        "Create a framepack.yaml, use --file to specify a path, "
        "or set FRAMEPACK_CONFIG.",
        exit_code=EXIT_SYSTEM_ERROR,
    )


def load_pipeline_spec(file_path: str | None) -> PipelineSpec:
    """Load framepack.yaml, converting load failures into CLIErrors.

    Args:
        file_path: Explicit --file value (None uses FRAMEPACK_CONFIG or
            ./framepack.yaml).

    Returns:
        Validated PipelineSpec.

    Raises:
        CLIError: If the file is missing, malformed, or invalid.
    """
    from framepack_core.schemas import PipelineSpec, resolve_config_path

    path = resolve_config_path(file_path)
    if not path.exists():
        handle_file_not_found(str(path))

    try:
        return PipelineSpec.from_yaml(path)
    except yaml.YAMLError as e:
        handle_yaml_error(e, str(path))
    except PydanticValidationError as e:
        raise CLIError(f"Invalid configuration in {path}:\n{format_pydantic_error(e)}") from None
    except PermissionError:
        handle_permission_error(str(path), "read")


def handle_framepack_error(err: FramepackError) -> NoReturn:
    """Convert a framepack-core error into a CLIError.

    Environment errors (missing tools, SDKs, or source) exit with
    EXIT_SYSTEM_ERROR; every other pipeline failure exits with
    EXIT_USER_ERROR.

    Raises:
        CLIError: Always raises with the error's user message.
    """
    from framepack_core.errors import BuildEnvironmentError

    exit_code = EXIT_SYSTEM_ERROR if isinstance(err, BuildEnvironmentError) else EXIT_USER_ERROR
    raise CLIError(err.user_message, exit_code=exit_code)


def handle_permission_error(path: str, operation: str = "access") -> NoReturn:
    """Handle permission errors.

    Raises:
        CLIError: Always raises with formatted error message.
    """
    raise CLIError(
        f"Permission denied: Cannot {operation} {path}",
        exit_code=EXIT_SYSTEM_ERROR,
    )


def require_path(path: Path, what: str) -> None:
    """Fail with EXIT_SYSTEM_ERROR when a path does not exist."""
    if not path.exists():
        raise CLIError(f"{what} not found: {path}", exit_code=EXIT_SYSTEM_ERROR)
