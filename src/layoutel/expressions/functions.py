"""Operands and function registry for the layout expression language.

Every operand pushed on the evaluation stack is a Function:
- LiteralFunction: a fixed boolean (true/false keywords and operator results)
- ValueFunction: a raw string, resolved on demand through a resolver callable
- NamedFunction: a registered function called as name(arg, ...)

Registered functions are created per occurrence by factories held in a
FunctionRegistry.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from layoutel.template.reader import NameValuePair, TemplateReader

logger = logging.getLogger(__name__)

# Resolves a raw operand string (e.g. "$attribute{user}") to a value
Resolver = Callable[[str], Any]


def to_string(value: Any) -> str:
    """String form of a resolved value: None is "", booleans are lower case."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_truthy(value: Any) -> bool:
    """None, "" and "false" (any case) are false, everything else is true."""
    text = to_string(value)
    return text != "" and text.lower() != "false"


class FunctionRegistrationError(ValueError):
    """A registered function factory does not produce a NamedFunction."""
    pass


class Function(ABC):
    """An operand of the expression stack machine."""

    def get_arguments(self) -> list[str]:
        return []

    def set_arguments(self, arguments: list[str]) -> None:
        pass

    @abstractmethod
    def evaluate(self) -> bool:
        """Return the boolean value of this operand."""

    def text(self) -> str:
        """String form used as an operand of "=", "<", ">", "%" and "/"."""
        return to_string(self.evaluate())


class LiteralFunction(Function):
    """A fixed boolean."""

    def __init__(self, value: bool):
        self.value = value

    def evaluate(self) -> bool:
        return self.value

    def __str__(self) -> str:
        return "true" if self.value else "false"

    def __repr__(self) -> str:
        return f"LiteralFunction({self.value})"


TRUE_FUNCTION = LiteralFunction(True)
FALSE_FUNCTION = LiteralFunction(False)


class ValueFunction(Function):
    """A raw operand string resolved when its value is needed."""

    def __init__(self, raw: str, resolve: Resolver | None = None):
        self.raw = raw
        self._resolve = resolve

    def resolved_value(self) -> Any:
        if self._resolve is None:
            return self.raw
        return self._resolve(self.raw)

    def evaluate(self) -> bool:
        return is_truthy(self.resolved_value())

    def text(self) -> str:
        return to_string(self.resolved_value())

    def __str__(self) -> str:
        return self.text()

    def __repr__(self) -> str:
        return f"ValueFunction({self.raw!r})"


class NamedFunction(Function):
    """Base class for functions registered by name.

    A fresh instance is created for every occurrence in an expression. The
    compiler hands it the raw argument strings (not parsed, whitespace
    already stripped) and a resolver for turning them into values.

    Subclasses implement evaluate() and may override value() when their
    string form (used by "=", "<", ">", "%" and "/") is not their boolean.

    Example:
        class IsAdmin(NamedFunction):
            def evaluate(self) -> bool:
                return self.resolve_argument(0) == "admin"

        registry.register("isAdmin", IsAdmin)
    """

    name: str = ""

    def __init__(self) -> None:
        self._arguments: list[str] = []
        self._resolve: Resolver | None = None

    def get_arguments(self) -> list[str]:
        return list(self._arguments)

    def set_arguments(self, arguments: list[str]) -> None:
        self._arguments = list(arguments)

    def bind(self, resolve: Resolver | None) -> None:
        """Attach the resolver used for argument values."""
        self._resolve = resolve

    @property
    def is_bound(self) -> bool:
        return self._resolve is not None

    def resolve(self, raw: str) -> Any:
        """Resolve a raw string; without a resolver it is its own value."""
        if self._resolve is None:
            return raw
        return self._resolve(raw)

    def resolve_argument(self, index: int, default: Any = None) -> Any:
        """Resolve a single argument, or return default if it is missing."""
        if index >= len(self._arguments):
            return default
        return self.resolve(self._arguments[index])

    def resolved_arguments(self) -> list[Any]:
        return [self.resolve_argument(i) for i in range(len(self._arguments))]

    def argument_pair(self, index: int) -> NameValuePair:
        """Parse an argument written as name='value' (or name=['a','b'])."""
        with TemplateReader(self._arguments[index]) as reader:
            return reader.get_nvp(None)

    def argument_pairs(self) -> list[NameValuePair]:
        return [self.argument_pair(i) for i in range(len(self._arguments))]

    def value(self) -> Any:
        return self.evaluate()

    def text(self) -> str:
        return to_string(self.value())

    def __str__(self) -> str:
        return f"{self.name}({','.join(self._arguments)})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(self._arguments)})"


FunctionFactory = Callable[[], NamedFunction]


class FunctionRegistry:
    """Maps function names to factories producing NamedFunction instances.

    A registry is an explicit object handed to the compiler. Hosts that
    update a shared registry while it is in use should build a copy(),
    change it and publish the copy.

    Example:
        registry = FunctionRegistry()
        registry.register("isAdmin", IsAdmin)
        function = registry.create("isAdmin")
    """

    def __init__(self, factories: dict[str, FunctionFactory] | None = None):
        self._factories: dict[str, FunctionFactory] = {}
        for name, factory in (factories or {}).items():
            self.register(name, factory)

    def register(self, name: str, factory: FunctionFactory | None) -> None:
        """Register a factory (usually a NamedFunction subclass) by name.

        Registering None removes the name.

        Raises:
            FunctionRegistrationError: If the factory cannot produce functions
        """
        if factory is None:
            self._factories.pop(name, None)
            return
        if not name:
            raise FunctionRegistrationError("Function name must not be empty")
        if isinstance(factory, type):
            if not issubclass(factory, NamedFunction):
                raise FunctionRegistrationError(
                    f"'{factory.__name__}' must extend '{NamedFunction.__name__}'"
                )
        elif not callable(factory):
            raise FunctionRegistrationError(
                f"Factory for function '{name}' is not callable: {factory!r}"
            )
        self._factories[name] = factory
        logger.debug("Registered expression function '%s'", name)

    def function(self, name: str) -> Callable[[type[NamedFunction]], type[NamedFunction]]:
        """Decorator to register a NamedFunction subclass.

        Usage:
            @registry.function("isAdmin")
            class IsAdmin(NamedFunction):
                ...
        """

        def decorator(cls: type[NamedFunction]) -> type[NamedFunction]:
            self.register(name, cls)
            return cls

        return decorator

    def create(self, name: str) -> NamedFunction | None:
        """Create a new instance of a registered function, or None."""
        factory = self._factories.get(name)
        if factory is None:
            return None
        function = factory()
        if not isinstance(function, NamedFunction):
            raise FunctionRegistrationError(
                f"Factory for function '{name}' produced "
                f"'{type(function).__name__}', expected a NamedFunction"
            )
        if not function.name:
            function.name = name
        return function

    def is_registered(self, name: str) -> bool:
        return name in self._factories

    def list_registered(self) -> list[str]:
        return sorted(self._factories)

    def copy(self) -> "FunctionRegistry":
        return FunctionRegistry(dict(self._factories))

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._factories.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)
