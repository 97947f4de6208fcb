"""CLI entry point for framepack.

This module defines the main CLI group using LazyGroup pattern.
Command modules defer their framepack_core imports to invocation time, so
`framepack --help` never imports the build pipeline.
"""

from __future__ import annotations

import importlib
from typing import Any

import click
import rich_click as rclick

from framepack_cli import __version__
from framepack_cli.output import set_no_color

# Configure rich-click for better help formatting
rclick.rich_click.TEXT_MARKUP = "markdown"
rclick.rich_click.SHOW_ARGUMENTS = True
rclick.rich_click.GROUP_ARGUMENTS_OPTIONS = True


class LazyGroup(rclick.RichGroup):
    """Click group that loads commands lazily.

    Command modules are imported on first lookup (help or invocation),
    never when this module is imported.

    Attributes:
        lazy_subcommands: Mapping of command names to module paths.
    """

    def __init__(
        self,
        *args: Any,
        lazy_subcommands: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize LazyGroup.

        Args:
            *args: Positional arguments for parent class.
            lazy_subcommands: Mapping of command name to module path.
                Format: {"build": "framepack_cli.commands.build.build"}
            **kwargs: Keyword arguments for parent class.
        """
        super().__init__(*args, **kwargs)
        self.lazy_subcommands: dict[str, str] = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return sorted command names, lazy and directly registered."""
        commands = set(super().list_commands(ctx))
        commands.update(self.lazy_subcommands.keys())
        return sorted(commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, loading lazily if needed.

        Args:
            ctx: Click context.
            cmd_name: Name of the command to get.

        Returns:
            Click Command instance, or None if not found.
        """
        cmd = super().get_command(ctx, cmd_name)  # type: ignore[arg-type]
        if cmd is not None:
            return cmd

        if cmd_name not in self.lazy_subcommands:
            return None

        module_path = self.lazy_subcommands[cmd_name]
        module_name, attr_name = module_path.rsplit(".", 1)
        mod = importlib.import_module(module_name)
        return getattr(mod, attr_name)  # type: ignore[no-any-return]


LAZY_COMMANDS = {
    "validate": "framepack_cli.commands.validate.validate",
    "doctor": "framepack_cli.commands.doctor.doctor",
    "build": "framepack_cli.commands.build.build",
    "verify": "framepack_cli.commands.verify.verify",
    "inspect": "framepack_cli.commands.inspect.inspect_cmd",
    "resolve": "framepack_cli.commands.resolve.resolve",
}


@click.command(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.version_option(version=__version__, prog_name="framepack")
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable colored output.",
    is_eager=True,
    expose_value=False,
    callback=lambda ctx, param, value: set_no_color(value) if value else None,
)
def cli() -> None:
    """framepack - Build and package native libraries for FFI consumers.

    Compiles a CMake library for every Apple platform target, merges
    architectures into universal binaries, wraps them in framework bundles,
    and packages the bundles into one verified multi-platform package.

    **Getting Started:**

    - `framepack doctor` - Check the build toolchain
    - `framepack validate` - Validate framepack.yaml
    - `framepack build` - Build, package, and verify
    - `framepack verify` - Re-run the integrity gate on a package
    """


if __name__ == "__main__":
    cli()
