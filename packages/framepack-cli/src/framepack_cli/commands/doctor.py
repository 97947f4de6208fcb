"""framepack doctor command - Check the build toolchain."""

from __future__ import annotations

import click

from framepack_cli.errors import EXIT_SYSTEM_ERROR, CLIError
from framepack_cli.output import error, info, success


@click.command()
@click.option(
    "--git/--no-git",
    "check_git",
    default=True,
    help="Also check for git (needed when the source tree must be fetched)",
)
def doctor(check_git: bool) -> None:
    """Report which required build tools are installed.

    Exits with status 2 when any tool is missing.

    Examples:

        framepack doctor

        framepack doctor --no-git
    """
    from framepack_core.toolchain import BUILD_TOOLS, SOURCE_TOOLS, Toolchain

    tools = BUILD_TOOLS + (SOURCE_TOOLS if check_git else ())
    found = Toolchain().probe(tools)

    for tool, path in found.items():
        if path is None:
            error(f"{tool}: not found")
        else:
            success(f"{tool}: {path}")

    missing = [tool for tool, path in found.items() if path is None]
    if missing:
        raise CLIError(
            f"Missing tools: {', '.join(missing)}. Install the Xcode command-line tools and CMake.",
            exit_code=EXIT_SYSTEM_ERROR,
        )
    info("All required tools found")
