"""Expression language for layout conditions.

This module provides:
- FunctionRegistry: Named functions available to expressions
- ExpressionCompiler: Compiles infix expressions to postfix form
- StackEvaluator: Evaluates compiled expressions to a boolean
"""

from layoutel.expressions.builtins import (
    BUILTIN_FUNCTIONS,
    default_functions,
    register_builtin_functions,
)
from layoutel.expressions.compiler import (
    CompiledExpression,
    ExpressionCompiler,
    ExpressionSyntaxError,
    Instruction,
    compile_expression,
    split_arguments,
)
from layoutel.expressions.evaluator import (
    EvaluationError,
    StackEvaluator,
    evaluate,
    evaluate_expression,
)
from layoutel.expressions.functions import (
    FALSE_FUNCTION,
    TRUE_FUNCTION,
    Function,
    FunctionRegistrationError,
    FunctionRegistry,
    LiteralFunction,
    NamedFunction,
    ValueFunction,
    is_truthy,
    to_string,
)

__all__ = [
    # Builtins
    "BUILTIN_FUNCTIONS",
    "default_functions",
    "register_builtin_functions",
    # Compiler
    "CompiledExpression",
    "ExpressionCompiler",
    "ExpressionSyntaxError",
    "Instruction",
    "compile_expression",
    "split_arguments",
    # Evaluator
    "EvaluationError",
    "StackEvaluator",
    "evaluate",
    "evaluate_expression",
    # Functions
    "FALSE_FUNCTION",
    "TRUE_FUNCTION",
    "Function",
    "FunctionRegistrationError",
    "FunctionRegistry",
    "LiteralFunction",
    "NamedFunction",
    "ValueFunction",
    "is_truthy",
    "to_string",
]
