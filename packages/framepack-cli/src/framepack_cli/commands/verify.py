"""framepack verify command - Run the integrity gate on a package."""

from __future__ import annotations

from pathlib import Path

import click

from framepack_cli import output
from framepack_cli.errors import (
    EXIT_USER_ERROR,
    CLIError,
    handle_framepack_error,
    load_pipeline_spec,
    require_path,
)
from framepack_cli.output import success


@click.command()
@click.argument("package_path", type=click.Path(exists=False))
@click.option(
    "-f",
    "--file",
    "file_path",
    type=click.Path(exists=False),
    default=None,
    help="framepack.yaml providing expected targets and required symbols",
)
@click.option(
    "-s",
    "--symbol",
    "symbols",
    multiple=True,
    help="Symbol that must be exported (repeatable; adds to the configured ones)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format [default: table]",
)
def verify(
    package_path: str,
    file_path: str | None,
    symbols: tuple[str, ...],
    output_format: str,
) -> None:
    """Verify structure, symbol export, signature, and install names.

    Targets are read from the package manifest unless a framepack.yaml is
    given, in which case every configured target must be present.

    Exits 0 when every check passes, 1 naming the first failing check and
    target otherwise.

    Examples:

        framepack verify darwin/Libs/h3.xcframework --symbol degsToRads

        framepack verify darwin/Libs/h3.xcframework -f framepack.yaml --format json
    """
    from framepack_core import FramepackError, MultiPlatformPackage
    from framepack_core.toolchain import VERIFY_TOOLS, BinaryInspector, Toolchain
    from framepack_core.verify import IntegrityVerifier, print_result, raise_for_result

    path = Path(package_path)
    require_path(path, "Package")

    required: list[str] = []
    expected: tuple[str, ...] | None = None
    if file_path is not None:
        spec = load_pipeline_spec(file_path)
        required.extend(spec.required_symbols)
        expected = spec.target_ids
    required.extend(s for s in symbols if s not in required)

    if not required:
        raise CLIError("No symbols to check: pass --symbol or --file")

    try:
        toolchain = Toolchain()
        toolchain.require(*VERIFY_TOOLS)
        package = MultiPlatformPackage.load(path)
        verifier = IntegrityVerifier(
            package,
            BinaryInspector(toolchain.runner),
            required_symbols=required,
            expected_targets=expected,
        )
        result = verifier.run()
    except FramepackError as e:
        handle_framepack_error(e)

    print_result(result, output_format=output_format, console=output.console)

    if result.passed:
        if output_format == "table":
            success("All checks passed")
        return

    if output_format == "json":
        raise SystemExit(EXIT_USER_ERROR)
    try:
        raise_for_result(result)
    except FramepackError as e:
        handle_framepack_error(e)
