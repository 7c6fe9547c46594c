"""Data sources for $type{key} substitutions.

A data source is a callable (context, key) -> value registered under a type
keyword in a DataSourceRegistry. The built-in sources read the scopes of a
ResolutionContext:

    ${key} / $attribute{key}      request attributes
    $application{key}             application attributes
    $session{key}                 session attributes
    $pageSession{key}             page session attributes
    $requestParameter{key}        request parameters
    $templateParam{key}           template parameters
    $escape{text}                 text itself
    $eval{expression}             boolean result of a condition
    $boolean{text}                True when text is "true" (any case)
    $int{text}                    int(text)
    $resource{bundle.key[,args]}  resource bundle message
    $stackTrace{message}          message followed by the current stack
"""

import logging
import re
import traceback
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from layoutel.el.context import ResolutionContext

logger = logging.getLogger(__name__)

DataSource = Callable[["ResolutionContext", str], Any]

ATTRIBUTE = "attribute"
APPLICATION = "application"
SESSION = "session"
PAGE_SESSION = "pageSession"
REQUEST_PARAMETER = "requestParameter"
TEMPLATE_PARAM = "templateParam"
ESCAPE = "escape"
EVAL = "eval"
BOOLEAN = "boolean"
INT = "int"
RESOURCE = "resource"
STACK_TRACE = "stackTrace"

_MESSAGE_ARGUMENT = re.compile(r"\{(\d+)\}")


class DataSourceRegistry:
    """Maps substitution type keywords to data sources.

    The registry is read while resolving; hosts that change it at runtime
    should change a copy() and publish that.

    Example:
        registry = DataSourceRegistry()
        registry.register("upper", lambda context, key: key.upper())
        registry.get("upper")(context, "abc")
        # "ABC"
    """

    def __init__(self, sources: dict[str, DataSource] | None = None):
        self._sources: dict[str, DataSource] = {}
        for type_keyword, source in (sources or {}).items():
            self.register(type_keyword, source)

    def register(self, type_keyword: str, source: DataSource) -> None:
        if not callable(source):
            raise TypeError(
                f"Data source for '{type_keyword}' is not callable: {source!r}"
            )
        self._sources[type_keyword] = source
        logger.debug("Registered data source '%s'", type_keyword)

    def unregister(self, type_keyword: str) -> None:
        self._sources.pop(type_keyword, None)

    def get(self, type_keyword: str) -> DataSource | None:
        """Look up the data source for a type keyword, or None."""
        return self._sources.get(type_keyword)

    def is_registered(self, type_keyword: str) -> bool:
        return type_keyword in self._sources

    def list_registered(self) -> list[str]:
        return sorted(self._sources)

    def copy(self) -> "DataSourceRegistry":
        return DataSourceRegistry(dict(self._sources))

    def __contains__(self, type_keyword: object) -> bool:
        return type_keyword in self._sources


# -----------------------------------------------------------------------------
# Scopes
# -----------------------------------------------------------------------------


def attribute_source(context: "ResolutionContext", key: str) -> Any:
    return context.attributes.get(key)


def application_source(context: "ResolutionContext", key: str) -> Any:
    return context.application.get(key)


def session_source(context: "ResolutionContext", key: str) -> Any:
    return context.session.get(key)


def page_session_source(context: "ResolutionContext", key: str) -> Any:
    return context.page_session.get(key)


def request_parameter_source(context: "ResolutionContext", key: str) -> Any:
    return context.request_parameters.get(key)


def template_param_source(context: "ResolutionContext", key: str) -> Any:
    return context.template_params.get(key)


# -----------------------------------------------------------------------------
# Conversions
# -----------------------------------------------------------------------------


def escape_source(context: "ResolutionContext", key: str) -> Any:
    return key


def eval_source(context: "ResolutionContext", key: str) -> Any:
    # Deferred imports, conditions depend on the resolver which uses this module
    from layoutel.el.conditions import check_condition
    from layoutel.el.resolver import ResolutionError

    if context.eval_depth >= context.max_merge_depth:
        raise ResolutionError(
            f"Condition '{key}' did not resolve within "
            f"{context.max_merge_depth} nested evaluations."
        )
    context.eval_depth += 1
    try:
        return check_condition(context, key)
    finally:
        context.eval_depth -= 1


def boolean_source(context: "ResolutionContext", key: str) -> Any:
    return key.lower() == "true"


def int_source(context: "ResolutionContext", key: str) -> Any:
    return int(key)


def format_message(message: str, arguments: list[str]) -> str:
    """Replace {0}, {1}, ... with the matching argument."""

    def replace(match: re.Match) -> str:
        index = int(match.group(1))
        if index < len(arguments):
            return arguments[index]
        return match.group(0)

    return _MESSAGE_ARGUMENT.sub(replace, message)


def resource_source(context: "ResolutionContext", key: str) -> Any:
    """Look up "bundleId.key" or "bundleId.key,arg0,arg1".

    A bundle that is not present yields the key unchanged, as does a key
    missing from its bundle.
    """
    separator = key.find(".")
    if separator == -1:
        raise ValueError(f"'{key}' is not in format: \"[bundleID].[bundleKey]\"!")
    bundle_id = key[:separator]

    bundle = context.resource_bundles.get(bundle_id)
    if bundle is None:
        return key
    if not isinstance(bundle, dict):
        raise ValueError(
            f'"{bundle_id}" in: "${RESOURCE}{{{key}}}" did not resolve to a '
            f'resource bundle! Found: "{type(bundle).__name__}" instead.'
        )

    message_key, *arguments = key[separator + 1:].split(",")
    message = bundle.get(message_key)
    if message is None:
        logger.warning(
            "Unable to find key '%s' in resource bundle '%s'", message_key, bundle_id
        )
        return key
    if arguments:
        return format_message(str(message), [arg.strip() for arg in arguments])
    return message


def stack_trace_source(context: "ResolutionContext", key: str) -> Any:
    return key + "\n" + "".join(traceback.format_stack())


BUILTIN_DATA_SOURCES: dict[str, DataSource] = {
    "": attribute_source,
    ATTRIBUTE: attribute_source,
    APPLICATION: application_source,
    SESSION: session_source,
    PAGE_SESSION: page_session_source,
    REQUEST_PARAMETER: request_parameter_source,
    TEMPLATE_PARAM: template_param_source,
    ESCAPE: escape_source,
    EVAL: eval_source,
    BOOLEAN: boolean_source,
    INT: int_source,
    RESOURCE: resource_source,
    STACK_TRACE: stack_trace_source,
}


def default_data_sources() -> DataSourceRegistry:
    """A new registry holding the built-in data sources."""
    return DataSourceRegistry(BUILTIN_DATA_SOURCES)
