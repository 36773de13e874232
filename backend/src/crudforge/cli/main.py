"""crudforge CLI entry point."""

import logging

import click

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="warning",
    show_default=True,
    help="Logging level for crudforge messages.",
)
def cli(log_level: str):
    """crudforge: schema-driven CRUD resource framework CLI."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from crudforge.cli.inspect_cmd import routes, schema  # noqa: E402
from crudforge.cli.serve_cmd import serve  # noqa: E402

cli.add_command(routes)
cli.add_command(schema)
cli.add_command(serve)
