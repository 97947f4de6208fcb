"""framepack inspect command - Show a package manifest."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from framepack_cli import output
from framepack_cli.errors import handle_framepack_error, require_path
from framepack_cli.output import print_json


@click.command("inspect")
@click.argument("package_path", type=click.Path(exists=False))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format [default: table]",
)
def inspect_cmd(package_path: str, output_format: str) -> None:
    """List the libraries of a multi-platform package.

    Examples:

        framepack inspect darwin/Libs/h3.xcframework

        framepack inspect darwin/Libs/h3.xcframework --format json
    """
    from framepack_core import FramepackError, MultiPlatformPackage

    path = Path(package_path)
    require_path(path, "Package")

    try:
        package = MultiPlatformPackage.load(path)
    except FramepackError as e:
        handle_framepack_error(e)

    if output_format == "json":
        print_json(package.to_manifest())
        return

    table = Table(title=str(package.path), show_header=True, header_style="bold")
    table.add_column("Identifier", no_wrap=True)
    table.add_column("Platform")
    table.add_column("Variant")
    table.add_column("Architectures", no_wrap=True)
    table.add_column("Binary")

    for entry in package.entries:
        table.add_row(
            entry.identifier,
            entry.platform,
            entry.variant or "-",
            ", ".join(entry.architectures),
            entry.binary_path,
        )
    output.console.print(table)
