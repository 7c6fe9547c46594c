"""Compiler for the layout expression language.

Turns an infix condition such as "!$attribute{readOnly}&hasRole(admin)" into
a postfix instruction sequence plus the ordered list of Function operands
that the FUNCTION markers in that sequence refer to.

Operators (higher precedence binds tighter):
    (  1      =  2      < >  4      |  8
    &  16     % /  32   !  64       )  999

Any maximal run of non-operator characters is an operand: the keywords
true/false (any case), a registered function followed by "(args)", or
otherwise a value that is resolved when the expression is evaluated.
Whitespace is removed before compiling.
"""

from dataclasses import dataclass
from enum import Enum

from layoutel.expressions.functions import (
    Function,
    FunctionRegistry,
    Resolver,
    ValueFunction,
)

ARGUMENT_SEPARATOR = ","
TRUE = "true"
FALSE = "false"


class Instruction(Enum):
    """Symbols of a postfix sequence."""

    # Operators
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    EQUALS = "="
    LESS_THAN = "<"
    MORE_THAN = ">"
    MODULUS = "%"
    DIVIDE = "/"
    OR = "|"
    AND = "&"
    NOT = "!"

    # Operands
    TRUE = "t"
    FALSE = "f"
    FUNCTION = "F"

    @property
    def is_operand(self) -> bool:
        return self in _OPERANDS

    @property
    def precedence(self) -> int:
        return _PRECEDENCE.get(self, 1)


_OPERANDS = frozenset({Instruction.TRUE, Instruction.FALSE, Instruction.FUNCTION})

_PRECEDENCE = {
    Instruction.LEFT_PAREN: 1,
    Instruction.EQUALS: 2,
    Instruction.LESS_THAN: 4,
    Instruction.MORE_THAN: 4,
    Instruction.OR: 8,
    Instruction.AND: 16,
    Instruction.MODULUS: 32,
    Instruction.DIVIDE: 32,
    Instruction.NOT: 64,
    Instruction.RIGHT_PAREN: 999,
}

OPERATORS: dict[str, Instruction] = {
    instruction.value: instruction
    for instruction in Instruction
    if not instruction.is_operand
}

_NESTING = {"(": ")", "{": "}", "[": "]"}


class ExpressionSyntaxError(ValueError):
    """Malformed expression found while compiling."""

    def __init__(self, message: str, expression: str):
        self.expression = expression
        super().__init__(message)


@dataclass(frozen=True)
class CompiledExpression:
    """A compiled expression.

    Attributes:
        infix: The whitespace-free source expression
        instructions: The postfix instruction sequence
        functions: Operands for the FUNCTION markers, in encounter order
    """

    infix: str
    instructions: tuple[Instruction, ...]
    functions: tuple[Function, ...]

    @property
    def postfix(self) -> str:
        """Compact postfix form, e.g. "tfF|&"."""
        return "".join(instruction.value for instruction in self.instructions)

    def render_postfix(self) -> str:
        """Postfix form with operands written out, named functions as their call."""
        parts: list[str] = []
        functions = iter(self.functions)
        for instruction in self.instructions:
            if instruction is Instruction.TRUE:
                parts.append(TRUE)
            elif instruction is Instruction.FALSE:
                parts.append(FALSE)
            elif instruction is Instruction.FUNCTION:
                function = next(functions, None)
                parts.append(instruction.value if function is None else str(function))
            else:
                parts.append(instruction.value)
        return "".join(parts)

    def __str__(self) -> str:
        return f"{self.infix} = {self.render_postfix()}"


def strip_whitespace(source: str) -> str:
    return "".join(ch for ch in source if not ch.isspace())


def split_arguments(text: str) -> list[str]:
    """Split raw function arguments on top-level commas.

    Commas nested in (), {}, [] or quotes do not split. "" yields no arguments.
    """
    if not text:
        return []
    arguments: list[str] = []
    closers: list[str] = []
    quote: str | None = None
    start = 0
    for idx, ch in enumerate(text):
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch in _NESTING:
            closers.append(_NESTING[ch])
        elif closers and ch == closers[-1]:
            closers.pop()
        elif ch == ARGUMENT_SEPARATOR and not closers:
            arguments.append(text[start:idx])
            start = idx + 1
    arguments.append(text[start:])
    return arguments


def find_closing_paren(text: str, open_idx: int) -> int:
    """Index of the ')' matching the '(' at open_idx, or -1."""
    depth = 0
    quote: str | None = None
    for idx in range(open_idx, len(text)):
        ch = text[idx]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return idx
    return -1


class ExpressionCompiler:
    """Compiles infix expressions to postfix form.

    Usage:
        compiler = ExpressionCompiler(registry, resolve=my_resolver)
        compiled = compiler.compile("true&(false|$attribute{flag})")
    """

    def __init__(
        self,
        functions: FunctionRegistry | None = None,
        resolve: Resolver | None = None,
    ):
        self.functions = functions if functions is not None else FunctionRegistry()
        self.resolve = resolve

    def compile(self, infix: str | None) -> CompiledExpression:
        """Compile an expression. None compiles as "false"."""
        if infix is None:
            infix = FALSE
        infix = strip_whitespace(infix)
        functions: list[Function] = []
        tokens = self._preprocess(infix, functions)
        instructions = self._to_postfix(tokens)
        return CompiledExpression(infix, tuple(instructions), tuple(functions))

    # -------------------------------------------------------------------------
    # Tokenizing
    # -------------------------------------------------------------------------

    def _preprocess(self, source: str, functions: list[Function]) -> list[Instruction]:
        """Replace every operand with a marker, collecting Function operands."""
        tokens: list[Instruction] = []
        idx = 0
        length = len(source)
        while idx < length:
            operator = OPERATORS.get(source[idx])
            if operator is not None:
                tokens.append(operator)
                idx += 1
                continue

            end = idx
            while end < length and source[end] not in OPERATORS:
                end += 1
            word = source[idx:end]
            lowered = word.lower()
            if lowered == TRUE:
                tokens.append(Instruction.TRUE)
            elif lowered == FALSE:
                tokens.append(Instruction.FALSE)
            else:
                function, end = self._store_function(source, word, end)
                functions.append(function)
                tokens.append(Instruction.FUNCTION)
            idx = end
        return tokens

    def _store_function(self, source: str, word: str, end: int) -> tuple[Function, int]:
        """Create the operand for word; return it and the index past it."""
        function = self.functions.create(word)
        if function is None:
            return ValueFunction(word, self.resolve), end

        if end >= len(source) or source[end] != Instruction.LEFT_PAREN.value:
            raise ExpressionSyntaxError(
                f"Function '{word}' is expected to have a '(' immediately "
                f"following it. Equation: '{source}'.",
                source,
            )
        close = find_closing_paren(source, end)
        if close == -1:
            raise ExpressionSyntaxError(
                f"Function '{word}' has an unterminated argument list. "
                f"Equation: '{source}'.",
                source,
            )
        function.set_arguments(split_arguments(source[end + 1:close]))
        function.bind(self.resolve)
        return function, close + 1

    # -------------------------------------------------------------------------
    # Infix to postfix
    # -------------------------------------------------------------------------

    def _to_postfix(self, tokens: list[Instruction]) -> list[Instruction]:
        output: list[Instruction] = []
        stack: list[Instruction] = []
        for token in tokens:
            if token.is_operand:
                output.append(token)
            elif token is Instruction.LEFT_PAREN:
                stack.append(token)
            elif token is Instruction.RIGHT_PAREN:
                while stack and stack[-1] is not Instruction.LEFT_PAREN:
                    output.append(stack.pop())
                if stack:
                    # Discard the matching '('
                    stack.pop()
            else:
                while stack and stack[-1].precedence >= token.precedence:
                    output.append(stack.pop())
                stack.append(token)

        while stack:
            output.append(stack.pop())
        return output


def compile_expression(
    infix: str | None,
    functions: FunctionRegistry | None = None,
    resolve: Resolver | None = None,
) -> CompiledExpression:
    """Convenience function to compile an expression string."""
    return ExpressionCompiler(functions, resolve).compile(infix)
