"""todoist-cli - command-line utilities for the Todoist REST and Sync APIs."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("todoist-cli")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.3.0"

__all__ = ["__version__"]
