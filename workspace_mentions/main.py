"""workspace-mentions CLI - inspect @file context injected ahead of a message."""

import logging

import click

from .commands.mentions import compose_cmd
from .commands.mentions import context_cmd
from .commands.mentions import limits_cmd
from .commands.mentions import set_limit_cmd
from .logging_setup import init_json_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="workspace-mentions")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    envvar="WORKSPACE_MENTIONS_LOG_PATH",
    default=None,
    help="Write JSONL logs to this file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    envvar="WORKSPACE_MENTIONS_LOG_LEVEL",
    default=None,
    help="Log level for the JSONL sink",
)
def cli(log_file: str | None, log_level: str | None):
    """Resolve @file mentions in a message against a sandboxed workspace."""
    if log_file or log_level:
        init_json_logging(log_file, log_level)
        logger.debug("JSONL logging initialized")


cli.add_command(context_cmd)
cli.add_command(compose_cmd)
cli.add_command(limits_cmd)
cli.add_command(set_limit_cmd)


def main():
    """Entry point for the console script."""
    cli()


if __name__ == "__main__":
    main()
