"""Custom Click group with automatic help display on errors."""

from typing import Any

import click


class AzprovGroup(click.Group):
    """Click group that shows the relevant help text on usage errors."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except (
            click.exceptions.UsageError,
            click.exceptions.BadParameter,
            click.exceptions.MissingParameter,
        ) as e:
            click.echo(f"Error: {e.format_message()}", err=True)

            # Get the most specific context for help (the subcommand context if available)
            error_ctx = e.ctx if e.ctx else ctx
            click.echo("")
            click.echo(error_ctx.get_help())

            # Use ctx.exit() for Click testing compatibility
            error_ctx.exit(e.exit_code)

    def resolve_command(self, ctx: click.Context, args: list[str]) -> Any:
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError:
            # Command not found - show help and exit
            click.echo(ctx.get_help())
            ctx.exit(1)
