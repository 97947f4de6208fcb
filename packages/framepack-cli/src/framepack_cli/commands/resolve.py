"""framepack resolve command - Resolve the library on this host."""

from __future__ import annotations

import click

from framepack_cli.errors import handle_framepack_error
from framepack_cli.output import error, info, success


@click.command()
@click.option(
    "-l",
    "--library",
    default="h3",
    show_default=True,
    help="Library base name",
)
@click.option(
    "-s",
    "--symbol",
    "symbols",
    multiple=True,
    help="Symbol to look up through the handle (repeatable)",
)
def resolve(library: str, symbols: tuple[str, ...]) -> None:
    """Resolve the library the way an FFI consumer would.

    Selects the loading strategy for the current host, obtains the handle,
    and looks each symbol up by name.

    Examples:

        framepack resolve --library h3 --symbol degsToRads
    """
    from framepack_core import FramepackError, LibraryResolver

    resolver = LibraryResolver(library)
    try:
        strategy = resolver.strategy()
        info(f"Host: {resolver.host}  strategy: {strategy.describe(library)}")
        handle = resolver.resolve()
    except FramepackError as e:
        handle_framepack_error(e)

    success(f"Resolved {handle!r}")

    missing = [s for s in symbols if not handle.has_symbol(s)]
    for symbol in symbols:
        if symbol in missing:
            error(f"{symbol}: not found")
        else:
            success(f"{symbol}: found")

    if missing:
        try:
            handle.require(missing)
        except FramepackError as e:
            handle_framepack_error(e)
