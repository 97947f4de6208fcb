"""framepack validate command - Validate framepack.yaml configuration."""

from __future__ import annotations

import click
from rich.markup import escape

from framepack_cli.errors import load_pipeline_spec
from framepack_cli.output import info, success


@click.command()
@click.option(
    "-f",
    "--file",
    "file_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to framepack.yaml [default: $FRAMEPACK_CONFIG or ./framepack.yaml]",
)
def validate(file_path: str | None) -> None:
    """Validate framepack.yaml configuration.

    Validates the configuration file against the PipelineSpec schema and
    lists the targets it would build.

    Examples:

        framepack validate

        framepack validate --file path/to/framepack.yaml
    """
    spec = load_pipeline_spec(file_path)

    success("Configuration valid")
    info(f"Library: {spec.library} ({spec.linkage.value})")
    for target in spec.targets:
        layout = escape(f"[{target.layout.value}]")
        info(f"  {target.identifier}  min {target.min_os_version}  {layout}")
