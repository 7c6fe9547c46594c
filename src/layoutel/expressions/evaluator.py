"""Stack evaluator for compiled layout expressions.

Walks the postfix instruction sequence of a CompiledExpression and
computes a boolean. The stack starts with a single "false" entry so that a
degenerate expression such as "!" still has an operand; that entry may be
left over at the end without error.
"""

import re
from typing import Iterator

from layoutel.expressions.compiler import (
    CompiledExpression,
    ExpressionCompiler,
    Instruction,
)
from layoutel.expressions.functions import (
    FALSE_FUNCTION,
    TRUE_FUNCTION,
    Function,
    FunctionRegistry,
    Resolver,
    ValueFunction,
)


class EvaluationError(RuntimeError):
    """Error while evaluating a compiled expression."""

    def __init__(self, message: str, expression: CompiledExpression | None = None):
        self.expression = expression
        super().__init__(message)


def _literal(value: bool) -> Function:
    return TRUE_FUNCTION if value else FALSE_FUNCTION


def _truncating_divide(dividend: int, divisor: int) -> int:
    quotient = abs(dividend) // abs(divisor)
    return quotient if (dividend < 0) == (divisor < 0) else -quotient


def _truncating_modulus(dividend: int, divisor: int) -> int:
    return dividend - divisor * _truncating_divide(dividend, divisor)


class StackEvaluator:
    """Evaluates CompiledExpressions.

    Usage:
        compiled = ExpressionCompiler(registry).compile("true&!false")
        result = StackEvaluator().evaluate(compiled)
    """

    def evaluate(self, expression: CompiledExpression) -> bool:
        """Evaluate an expression to a boolean.

        Raises:
            EvaluationError: On stack underflow, a FUNCTION marker without a
                function, values left on the stack, or bad operands
        """
        stack: list[Function] = [FALSE_FUNCTION]
        functions = iter(expression.functions)

        for instruction in expression.instructions:
            if instruction is Instruction.TRUE:
                stack.append(TRUE_FUNCTION)
            elif instruction is Instruction.FALSE:
                stack.append(FALSE_FUNCTION)
            elif instruction is Instruction.FUNCTION:
                stack.append(self._next_function(functions, expression))
            elif instruction in (Instruction.LEFT_PAREN, Instruction.RIGHT_PAREN):
                # Only an unmatched '(' can reach the output; it has no effect
                continue
            else:
                method = getattr(self, f"_op_{instruction.name.lower()}")
                method(stack, expression)

        result = self._pop(stack, expression).evaluate()
        if len(stack) > 1:
            raise EvaluationError(
                f"Unable to evaluate: '{self._describe(expression)}' "
                f"-- values left on the stack.",
                expression,
            )
        return result

    # -------------------------------------------------------------------------
    # Stack helpers
    # -------------------------------------------------------------------------

    def _describe(self, expression: CompiledExpression) -> str:
        return f"{expression.infix} = {expression.postfix}"

    def _next_function(
        self, functions: Iterator[Function], expression: CompiledExpression
    ) -> Function:
        function = next(functions, None)
        if function is None:
            raise EvaluationError(
                f"Unable to evaluate: '{self._describe(expression)}' -- found "
                f"function marker without corresponding function.",
                expression,
            )
        return function

    def _pop(self, stack: list[Function], expression: CompiledExpression) -> Function:
        if not stack:
            raise EvaluationError(
                f"Unable to evaluate: '{self._describe(expression)}'.", expression
            )
        return stack.pop()

    def _pop_int(self, stack: list[Function], expression: CompiledExpression) -> int:
        text = self._pop(stack, expression).text()
        try:
            return int(text)
        except ValueError:
            raise EvaluationError(
                f"Unable to evaluate: '{self._describe(expression)}' -- "
                f"'{text}' is not an integer.",
                expression,
            ) from None

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def _op_equals(self, stack: list[Function], expression: CompiledExpression) -> None:
        pattern = self._pop(stack, expression).text()
        subject = self._pop(stack, expression).text()
        try:
            matched = re.fullmatch(pattern, subject) is not None
        except re.error as e:
            raise EvaluationError(
                f"Unable to evaluate: '{self._describe(expression)}' -- "
                f"invalid pattern '{pattern}': {e}",
                expression,
            ) from e
        stack.append(_literal(matched))

    def _op_less_than(self, stack: list[Function], expression: CompiledExpression) -> None:
        right = self._pop_int(stack, expression)
        left = self._pop_int(stack, expression)
        stack.append(_literal(left < right))

    def _op_more_than(self, stack: list[Function], expression: CompiledExpression) -> None:
        right = self._pop_int(stack, expression)
        left = self._pop_int(stack, expression)
        stack.append(_literal(left > right))

    def _op_modulus(self, stack: list[Function], expression: CompiledExpression) -> None:
        divisor = self._pop_int(stack, expression)
        dividend = self._pop_int(stack, expression)
        if divisor == 0:
            raise EvaluationError(
                f"Unable to evaluate: '{self._describe(expression)}' -- modulo by zero.",
                expression,
            )
        stack.append(ValueFunction(str(_truncating_modulus(dividend, divisor))))

    def _op_divide(self, stack: list[Function], expression: CompiledExpression) -> None:
        divisor = self._pop_int(stack, expression)
        dividend = self._pop_int(stack, expression)
        if divisor == 0:
            raise EvaluationError(
                f"Unable to evaluate: '{self._describe(expression)}' -- division by zero.",
                expression,
            )
        stack.append(ValueFunction(str(_truncating_divide(dividend, divisor))))

    def _op_or(self, stack: list[Function], expression: CompiledExpression) -> None:
        right = self._pop(stack, expression).evaluate()
        left = self._pop(stack, expression).evaluate()
        stack.append(_literal(left or right))

    def _op_and(self, stack: list[Function], expression: CompiledExpression) -> None:
        right = self._pop(stack, expression).evaluate()
        left = self._pop(stack, expression).evaluate()
        stack.append(_literal(left and right))

    def _op_not(self, stack: list[Function], expression: CompiledExpression) -> None:
        stack.append(_literal(not self._pop(stack, expression).evaluate()))


def evaluate(expression: CompiledExpression) -> bool:
    """Evaluate a compiled expression."""
    return StackEvaluator().evaluate(expression)


def evaluate_expression(
    infix: str | None,
    functions: FunctionRegistry | None = None,
    resolve: Resolver | None = None,
) -> bool:
    """Compile and evaluate an expression string.

    Example:
        evaluate_expression("true&(false|true)")
        # True
    """
    compiled = ExpressionCompiler(functions, resolve).compile(infix)
    return StackEvaluator().evaluate(compiled)
