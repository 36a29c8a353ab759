"""Command registry for the todoist CLI.

Centralized registration of all command groups.
"""

import click

from todoist_cli.cli.config import CLIContext


def get_context(ctx: click.Context) -> CLIContext:
    """Get the CLI context stored on the root Click context."""
    return ctx.find_root().obj["cli_context"]


def register_all_commands(cli: click.Group) -> None:
    """Register all command groups with the CLI.

    Command groups are imported lazily to avoid circular imports.
    """
    from todoist_cli.cli.commands import (
        activity,
        comments,
        completed,
        find,
        karma,
        labels,
        projects,
        search,
        sections,
        tasks,
    )

    cli.add_command(projects)
    cli.add_command(sections)
    cli.add_command(tasks)
    cli.add_command(search)
    cli.add_command(find)
    cli.add_command(labels)
    cli.add_command(comments)
    cli.add_command(activity)
    cli.add_command(completed)
    cli.add_command(karma)

    @cli.command("version")
    @click.pass_context
    def version(ctx: click.Context) -> None:
        """Show CLI version information."""
        from todoist_cli import __version__
        from todoist_cli.cli.output import emit_success

        cli_ctx = get_context(ctx)
        emit_success(
            {
                "name": "todoist-cli",
                "version": __version__,
                "rest_url": cli_ctx.config.rest_url,
                "sync_url": cli_ctx.config.sync_url,
            },
            text=lambda data: [f"{data['name']} {data['version']}"],
        )
