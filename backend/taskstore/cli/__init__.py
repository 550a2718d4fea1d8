"""Command-line interface for the task store."""

import rich_click as click

from .. import __version__
from ..core import configure_logging
from .schema import schema_command
from .validate import validate_command

# Configure rich-click styling
click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.STYLE_OPTION = "bold cyan"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_COMMAND = "bold green"
click.rich_click.STYLE_SWITCH = "bold blue"


@click.group(name="taskstore")
@click.version_option(version=__version__, prog_name="taskstore")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level for store diagnostics (written to stderr)",
)
def main(log_level: str) -> None:
    """🗂️ **Task Store** - Validated records for users, tasks, projects and tags.

    Inspect entity schemas and check record files against them before they
    reach an application.
    """
    configure_logging(environment="development", log_level=log_level)


# Add commands to the group
main.add_command(schema_command)
main.add_command(validate_command)


if __name__ == "__main__":
    main()


__all__ = ["main"]
