"""Enables running the CLI via: python -m todoist_cli.cli"""

from todoist_cli.cli.main import cli

if __name__ == "__main__":
    cli()
