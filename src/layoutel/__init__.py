"""layoutel: expression and substitution runtime for layout templates.

Usage:
    from layoutel import ResolutionContext, evaluate_condition, resolve_value

    context = ResolutionContext(attributes={"user": "admin"})
    resolve_value(context, "Hello $attribute{user}")
    # "Hello admin"
    evaluate_condition("$attribute{user}=admin", context)
    # True
"""

from layoutel.config import TemplatingConfig, load_scope_file
from layoutel.el import (
    DataSourceRegistry,
    ResolutionContext,
    ResolutionError,
    check_condition,
    compile_condition,
    evaluate_condition,
    resolve_value,
    resolve_variables,
)
from layoutel.expressions import (
    CompiledExpression,
    EvaluationError,
    ExpressionCompiler,
    ExpressionSyntaxError,
    FunctionRegistrationError,
    FunctionRegistry,
    NamedFunction,
    StackEvaluator,
)
from layoutel.template import NameValuePair, TemplateReader, TemplateSyntaxError

__all__ = [
    # Config
    "TemplatingConfig",
    "load_scope_file",
    # Substitution
    "DataSourceRegistry",
    "ResolutionContext",
    "ResolutionError",
    "check_condition",
    "compile_condition",
    "evaluate_condition",
    "resolve_value",
    "resolve_variables",
    # Expressions
    "CompiledExpression",
    "EvaluationError",
    "ExpressionCompiler",
    "ExpressionSyntaxError",
    "FunctionRegistrationError",
    "FunctionRegistry",
    "NamedFunction",
    "StackEvaluator",
    # Template
    "NameValuePair",
    "TemplateReader",
    "TemplateSyntaxError",
]
