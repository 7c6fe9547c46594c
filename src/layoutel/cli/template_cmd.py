"""Template CLI commands: nvp."""

import click

from layoutel.template.reader import TemplateReader, TemplateSyntaxError


@click.command()
@click.argument("text")
@click.option("--default-name", default=None, help="Name used when TEXT has only a value.")
@click.option(
    "--require-quotes/--no-require-quotes",
    default=True,
    help="Whether values must be quoted (unquoted values run up to a closing '>').",
)
def nvp(text: str, default_name: str | None, require_quotes: bool):
    """Parse TEXT as a name/value pair."""
    try:
        with TemplateReader(text) as reader:
            pair = reader.get_nvp(default_name, require_quotes)
    except TemplateSyntaxError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"name: {pair.name}")
    if isinstance(pair.value, (list, tuple)):
        kind = "list" if isinstance(pair.value, list) else "array"
        click.echo(f"value ({kind}): {', '.join(pair.value)}")
    else:
        click.echo(f"value: {pair.value}")
    if pair.is_output_mapping:
        click.echo(f"target: {pair.target}")
