"""Conditions evaluated against a resolution context.

Operands of a condition are resolved through the context, so
"$attribute{admin}|hasParam(editable)" sees the context's attributes,
template parameters and registered functions.
"""

from typing import Any

from layoutel.el.context import ResolutionContext
from layoutel.el.resolver import resolve_value
from layoutel.expressions.compiler import CompiledExpression, ExpressionCompiler
from layoutel.expressions.evaluator import StackEvaluator


def compile_condition(context: ResolutionContext, infix: str | None) -> CompiledExpression:
    """Compile a condition whose operands resolve against context."""

    def resolve(raw: str) -> Any:
        return resolve_value(context, raw)

    return ExpressionCompiler(context.functions, resolve).compile(infix)


def check_condition(context: ResolutionContext, infix: str | None) -> bool:
    """Compile and evaluate a condition against context."""
    return StackEvaluator().evaluate(compile_condition(context, infix))


def evaluate_condition(infix: str | None, context: ResolutionContext | None = None) -> bool:
    """Evaluate a condition, using a default context when none is given.

    Example:
        evaluate_condition("!$escape{}")
        # True
    """
    if context is None:
        context = ResolutionContext()
    return check_condition(context, infix)
