"""CLI command groups."""

from todoist_cli.cli.commands.activity import activity, completed, karma
from todoist_cli.cli.commands.comments import comments
from todoist_cli.cli.commands.labels import labels
from todoist_cli.cli.commands.projects import projects
from todoist_cli.cli.commands.search import find, search
from todoist_cli.cli.commands.sections import sections
from todoist_cli.cli.commands.tasks import tasks

__all__ = [
    "activity",
    "comments",
    "completed",
    "find",
    "karma",
    "labels",
    "projects",
    "search",
    "sections",
    "tasks",
]
