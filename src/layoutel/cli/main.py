"""layoutel CLI entry point."""

import logging

import click

from layoutel.config import TemplatingConfig


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (defaults to LAYOUTEL_LOG_LEVEL or WARNING).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None):
    """Layout expression and substitution tools."""
    config = TemplatingConfig.from_env()
    if log_level:
        config.log_level = log_level.upper()
    logging.basicConfig(
        level=config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config


# Register subcommands
from layoutel.cli.expression_cmd import eval_cmd, resolve_cmd  # noqa: E402
from layoutel.cli.template_cmd import nvp  # noqa: E402

cli.add_command(eval_cmd)
cli.add_command(resolve_cmd)
cli.add_command(nvp)
