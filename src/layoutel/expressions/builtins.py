"""Built-in named functions for layout expressions.

Call register_builtin_functions() on a registry, or use default_functions()
for a fresh registry that already has them.

Functions:
- empty(value): value is None, "" or an empty collection
- equals(a,b): literal (non-regex) string comparison
- contains(value,part): substring or collection membership
- startsWith(value,prefix) / endsWith(value,suffix)
- oneOf(value,options=['a','b']): value equals one of the options
- hasParam(name): a template parameter named name is bound

Arguments are resolved before use, so "$attribute{user}" or "#{param}"
may be passed. A quoted argument ('abc' or "abc") is taken literally.
"""

from typing import Any

from layoutel.expressions.functions import (
    FunctionRegistry,
    NamedFunction,
    to_string,
)
from layoutel.template.reader import QUOTES


def _unquote(raw: str) -> str | None:
    if len(raw) >= 2 and raw[0] in QUOTES and raw[-1] == raw[0]:
        return raw[1:-1]
    return None


class BuiltinFunction(NamedFunction):
    """Shared argument handling for the built-in functions."""

    def argument(self, index: int) -> Any:
        arguments = self.get_arguments()
        if index >= len(arguments):
            return None
        literal = _unquote(arguments[index])
        if literal is not None:
            return literal
        return self.resolve(arguments[index])

    def text_argument(self, index: int) -> str:
        return to_string(self.argument(index))


class Empty(BuiltinFunction):
    def evaluate(self) -> bool:
        value = self.argument(0)
        if value is None:
            return True
        if isinstance(value, (list, tuple, dict, set)):
            return len(value) == 0
        return to_string(value) == ""


class Equals(BuiltinFunction):
    def evaluate(self) -> bool:
        return self.text_argument(0) == self.text_argument(1)


class Contains(BuiltinFunction):
    def evaluate(self) -> bool:
        value = self.argument(0)
        part = self.text_argument(1)
        if isinstance(value, (list, tuple, set)):
            return part in [to_string(item) for item in value]
        if isinstance(value, dict):
            return part in value
        return part in to_string(value)


class StartsWith(BuiltinFunction):
    def evaluate(self) -> bool:
        return self.text_argument(0).startswith(self.text_argument(1))


class EndsWith(BuiltinFunction):
    def evaluate(self) -> bool:
        return self.text_argument(0).endswith(self.text_argument(1))


class OneOf(BuiltinFunction):
    """oneOf(value,options=['a','b'])

    The options argument uses name/value pair syntax, so a single option may
    also be written options='a'.
    """

    def evaluate(self) -> bool:
        if len(self.get_arguments()) < 2:
            return False
        value = self.text_argument(0)
        options = self.argument_pair(1).value
        if isinstance(options, str):
            options = [options]
        return any(value == to_string(self.resolve(option)) for option in options)


class HasParam(BuiltinFunction):
    def evaluate(self) -> bool:
        if not self.is_bound:
            return False
        name = self.text_argument(0)
        if not name:
            return False
        return self.resolve(f"$templateParam{{{name}}}") is not None


BUILTIN_FUNCTIONS: dict[str, type[NamedFunction]] = {
    "empty": Empty,
    "equals": Equals,
    "contains": Contains,
    "startsWith": StartsWith,
    "endsWith": EndsWith,
    "oneOf": OneOf,
    "hasParam": HasParam,
}


def register_builtin_functions(registry: FunctionRegistry) -> FunctionRegistry:
    """Register all built-in functions with a registry and return it."""
    for name, cls in BUILTIN_FUNCTIONS.items():
        registry.register(name, cls)
    return registry


def default_functions() -> FunctionRegistry:
    """A new registry holding the built-in functions."""
    return register_builtin_functions(FunctionRegistry())
