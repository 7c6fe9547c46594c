"""Expression CLI commands: eval and resolve."""

from pathlib import Path

import click

from layoutel.config import TemplatingConfig, load_scope_file
from layoutel.el.conditions import compile_condition
from layoutel.el.context import ResolutionContext
from layoutel.el.resolver import ResolutionError, resolve_value
from layoutel.expressions.compiler import ExpressionSyntaxError
from layoutel.expressions.evaluator import EvaluationError, StackEvaluator
from layoutel.expressions.functions import to_string

scope_file_option = click.option(
    "--scope-file",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with attributes, session, templateParams, ... to resolve against.",
)


def _load_context(config: TemplatingConfig, scope_file: Path | None) -> ResolutionContext:
    try:
        if scope_file is not None:
            return load_scope_file(scope_file, config)
        return config.create_context()
    except (OSError, ValueError) as e:
        click.echo(f"Error: Unable to load scope file: {e}", err=True)
        raise SystemExit(1)


@click.command("eval")
@click.argument("expression")
@scope_file_option
@click.option(
    "--explain",
    is_flag=True,
    default=False,
    help="Also print the compiled infix = postfix form.",
)
@click.pass_obj
def eval_cmd(config: TemplatingConfig, expression: str, scope_file: Path | None, explain: bool):
    """Evaluate a condition and print true or false."""
    context = _load_context(config, scope_file)
    try:
        compiled = compile_condition(context, expression)
        result = StackEvaluator().evaluate(compiled)
        if explain:
            click.echo(str(compiled))
    except (ExpressionSyntaxError, ResolutionError, EvaluationError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(to_string(result))


@click.command("resolve")
@click.argument("text")
@scope_file_option
@click.pass_obj
def resolve_cmd(config: TemplatingConfig, text: str, scope_file: Path | None):
    """Resolve $type{key} and #{key} substitutions in TEXT."""
    context = _load_context(config, scope_file)
    try:
        value = resolve_value(context, text)
    except (ExpressionSyntaxError, EvaluationError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(to_string(value))
