"""framepack build command - Build, package, and verify."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError as PydanticValidationError
from rich.table import Table

from framepack_cli import output
from framepack_cli.errors import (
    CLIError,
    format_pydantic_error,
    handle_framepack_error,
    load_pipeline_spec,
)
from framepack_cli.output import format_size, info, success

if TYPE_CHECKING:
    from framepack_core import PipelineResult

_LOG_LEVELS = {0: "WARNING", 1: "INFO"}


def _print_summary(result: PipelineResult) -> None:
    """Per-target summary of the published package."""
    sizes = result.binary_sizes()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Target", no_wrap=True)
    table.add_column("Architectures", no_wrap=True)
    table.add_column("Platform")
    table.add_column("Binary size", justify="right")

    for entry in result.package.entries:
        platform = entry.platform if not entry.variant else f"{entry.platform} ({entry.variant})"
        table.add_row(
            entry.identifier,
            ", ".join(entry.architectures),
            platform,
            format_size(sizes[entry.identifier]),
        )

    output.console.print(table)


@click.command()
@click.option(
    "-f",
    "--file",
    "file_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to framepack.yaml [default: $FRAMEPACK_CONFIG or ./framepack.yaml]",
)
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(),
    default=None,
    help="Output directory (overrides the configured output)",
)
@click.option(
    "-t",
    "--target",
    "targets",
    multiple=True,
    help="Build only this target identifier (repeatable)",
)
@click.option(
    "--linkage",
    type=click.Choice(["dynamic", "static"]),
    default=None,
    help="Override the configured linkage",
)
@click.option(
    "--keep-build",
    is_flag=True,
    default=False,
    help="Keep the build directory after the run",
)
@click.option(
    "--json-logs",
    is_flag=True,
    default=False,
    help="Emit structured logs as JSON",
)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv)")
def build(
    file_path: str | None,
    output_path: str | None,
    targets: tuple[str, ...],
    linkage: str | None,
    keep_build: bool,
    json_logs: bool,
    verbose: int,
) -> None:
    """Build the native library and publish a verified package.

    Compiles every target, merges architectures, assembles framework
    bundles, packages them, and runs the integrity gate. Nothing is
    published unless every check passes.

    Examples:

        framepack build

        framepack build --target ios-arm64 --keep-build

        framepack build --output darwin/Libs -v
    """
    from framepack_core import FramepackError, Linkage, Pipeline, configure_logging

    configure_logging(log_level=_LOG_LEVELS.get(verbose, "DEBUG"), json_format=json_logs)

    spec = load_pipeline_spec(file_path)
    updates: dict[str, object] = {}
    if output_path is not None:
        updates["output"] = Path(output_path).resolve()
    if linkage is not None:
        updates["linkage"] = Linkage(linkage)
    if updates:
        try:
            spec = spec.override(**updates)
        except PydanticValidationError as e:
            raise CLIError(f"Invalid options:\n{format_pydantic_error(e)}") from None

    try:
        spec = spec.select_targets(targets)
        info(f"Building {spec.library} for {len(spec.targets)} target(s)...")
        result = Pipeline(spec).run(keep_build=keep_build)
    except FramepackError as e:
        handle_framepack_error(e)

    _print_summary(result)
    success(f"Package written to {result.package.path} ({result.duration_ms}ms)")
