"""todoist CLI entry point."""

from typing import Optional

import click

from todoist_cli.cli.config import CLIContext, create_context
from todoist_cli.cli.registry import register_all_commands
from todoist_cli.cli.resilience import report_exception
from todoist_cli.config import ConfigError


@click.group()
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Emit response envelopes as JSON instead of text.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="Path to a todoist-cli.toml config file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging on stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    config_file: Optional[str],
    verbose: bool,
) -> None:
    """Manage Todoist projects, sections, tasks, labels and comments.

    Projects, sections and tasks can be named by ID, by full project path
    ("Work » Sprint"), or by a unique fragment of their name.
    """
    ctx.ensure_object(dict)
    ctx.obj["cli_context"] = CLIContext(json_output=json_output)
    try:
        cli_ctx = create_context(
            config_file=config_file,
            json_output=json_output,
            verbose=verbose,
            client_factory=ctx.obj.get("client_factory"),
        )
    except ConfigError as exc:
        report_exception(exc)
        raise
    ctx.obj["cli_context"] = cli_ctx
    ctx.call_on_close(cli_ctx.close)


# Register all command groups
register_all_commands(cli)


if __name__ == "__main__":
    cli()
