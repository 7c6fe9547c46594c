"""Substitution of $type{key} tokens and #{key} template parameters.

Pass 1 scans for the start token from the right, so nested tokens such as
"$attribute{$session{name}}" are resolved inside-out. Each token's type
keyword selects a data source from the context. When a single token spans
the whole string its value is returned as-is, which lets a substitution
produce a non-string object. A start token preceded by "\\" is left as
literal text, and stays literal when Pass 2 resolves a merged string again.

Pass 2 merges template parameters into "#{...}" expressions:
    #{key}            replaced by the parameter's value
    #{key,default}    as above, default used when key is not bound
    #{key.rest}       parameter "#{bean}" merged into "#{bean.rest}"
"""

import logging
from typing import TYPE_CHECKING, Any

from layoutel.expressions.functions import to_string

if TYPE_CHECKING:
    from layoutel.el.context import ResolutionContext

logger = logging.getLogger(__name__)

SUB_START = "$"
SUB_TYPE_DELIM = "{"
SUB_END = "}"
ESCAPE_CHAR = "\\"

# Replaces the escape char of an escaped start marker until resolution ends
ESCAPED_MARK = "\ue000"

OPEN_EL = "#{"
DEFAULT_SEPARATOR = ","

# A type keyword containing any of these is foreign markup, not a substitution
FOREIGN_MARKUP_CHARS = "<&[#$%()"

# Characters that end the parameter name in "#{name...}"
PARAM_TERMINATORS = "}[.=><!&|*+-?/%("


class ResolutionError(ValueError):
    """A substitution could not be resolved."""
    pass


def _default_context() -> "ResolutionContext":
    from layoutel.el.context import ResolutionContext

    return ResolutionContext()


# -----------------------------------------------------------------------------
# Buffer helpers
# -----------------------------------------------------------------------------


def _matches_at(buf: list[str], idx: int, token: str) -> bool:
    if idx < 0 or idx + len(token) > len(buf):
        return False
    return all(buf[idx + offset] == ch for offset, ch in enumerate(token))


def _find(buf: list[str], token: str, from_idx: int) -> int:
    for idx in range(max(from_idx, 0), len(buf) - len(token) + 1):
        if _matches_at(buf, idx, token):
            return idx
    return -1


def _rfind(buf: list[str], token: str, from_idx: int) -> int:
    for idx in range(min(from_idx, len(buf) - len(token)), -1, -1):
        if _matches_at(buf, idx, token):
            return idx
    return -1


def _find_matching_end(buf: list[str], from_idx: int, type_delim: str, end: str) -> int:
    """Index of the end token closing a type delimiter, or -1.

    Nested type delimiters must be closed before the matching end counts.
    """
    depth = 0
    idx = from_idx
    while idx < len(buf):
        if _matches_at(buf, idx, type_delim):
            depth += 1
            idx += len(type_delim)
        elif _matches_at(buf, idx, end):
            depth -= 1
            if depth < 0:
                return idx
            idx += len(end)
        else:
            idx += 1
    return -1


# -----------------------------------------------------------------------------
# Pass 1: $type{key}
# -----------------------------------------------------------------------------


def resolve_variables(
    context: "ResolutionContext | None",
    string: str,
    start: str = SUB_START,
    type_delim: str = SUB_TYPE_DELIM,
    end: str = SUB_END,
) -> Any:
    """Replace substitution tokens in a string.

    Args:
        context: Scopes and registries to resolve against (a default context
            when None)
        string: The string to resolve
        start: Token start marker
        type_delim: Separates the type keyword from the key
        end: Token end marker

    Returns:
        The resolved string, or the value of the token when one token makes
        up the whole string

    Raises:
        ResolutionError: If a type keyword is not registered and does not
            look like foreign markup

    Example:
        resolve_variables(None, "$escape($escape(LayoutElement))", "$", "(", ")")
        # "LayoutElement"
    """
    return _restore_escapes(_resolve_variables(context, string, start, type_delim, end, 0))


def resolve_value(context: "ResolutionContext | None", value: Any) -> Any:
    """Resolve a string, or each element of a list or tuple.

    Lists and tuples are copied, other values are returned unchanged.
    """
    return _restore_escapes(_resolve_value(context, value, 0))


def _restore_escapes(value: Any) -> Any:
    # Escaped start markers stay marked until the final result
    if isinstance(value, str):
        return value.replace(ESCAPED_MARK, "")
    if isinstance(value, list):
        return [_restore_escapes(item) for item in value]
    if isinstance(value, tuple):
        return tuple(_restore_escapes(item) for item in value)
    return value


def _resolve_variables(
    context: "ResolutionContext | None",
    string: str,
    start: str,
    type_delim: str,
    end: str,
    depth: int,
) -> Any:
    if context is None:
        context = _default_context()

    buf = list(string)
    idx = _rfind(buf, start, len(buf))
    while idx != -1:
        if idx > 0 and buf[idx - 1] in (ESCAPE_CHAR, ESCAPED_MARK):
            buf[idx - 1] = ESCAPED_MARK
            idx = _rfind(buf, start, idx - 1)
            continue

        delim_idx = _find(buf, type_delim, idx + len(start))
        if delim_idx == -1:
            idx = _rfind(buf, start, idx - 1)
            continue
        end_idx = _find_matching_end(buf, delim_idx + len(type_delim), type_delim, end)
        if end_idx == -1:
            idx = _rfind(buf, start, idx - 1)
            continue

        type_keyword = "".join(buf[idx + len(start):delim_idx])
        source = context.data_sources.get(type_keyword)
        if source is None:
            if any(ch in type_keyword for ch in FOREIGN_MARKUP_CHARS):
                logger.debug("Skipping foreign markup '%s'", type_keyword)
                idx = _rfind(buf, start, idx - 1)
                continue
            raise ResolutionError(
                f"Invalid type '{type_keyword}' in attribute value: "
                f"'{_restore_escapes(''.join(buf))}'."
            )

        key = "".join(buf[delim_idx + len(type_delim):end_idx])
        value = source(context, key)

        token_end = end_idx + len(end)
        if idx == 0 and token_end == len(buf):
            if isinstance(value, str):
                return _replace_template_params(context, value, depth)
            return value

        buf[idx:token_end] = to_string(value)
        idx = _rfind(buf, start, idx - 1)

    return _replace_template_params(context, "".join(buf), depth)


def _resolve_value(context: "ResolutionContext | None", value: Any, depth: int) -> Any:
    if isinstance(value, str):
        return _resolve_variables(context, value, SUB_START, SUB_TYPE_DELIM, SUB_END, depth)
    if isinstance(value, list):
        return [_resolve_value(context, item, depth) for item in value]
    if isinstance(value, tuple):
        return tuple(_resolve_value(context, item, depth) for item in value)
    return value


# -----------------------------------------------------------------------------
# Pass 2: #{key}
# -----------------------------------------------------------------------------


def _find_open_el(string: str, from_idx: int) -> int:
    # "#{" must leave room for at least "x}"
    idx = string.find(OPEN_EL, from_idx)
    if idx == -1 or idx >= len(string) - 3:
        return -1
    return idx


def _find_char(string: str, from_idx: int, chars: str) -> int:
    for idx in range(from_idx, len(string)):
        if string[idx] in chars:
            return idx
    return -1


def _lookup_param(params: dict[str, Any], token: str) -> Any:
    key, separator, default = token.partition(DEFAULT_SEPARATOR)
    value = params.get(key.strip())
    if value is None and separator:
        return default.strip()
    return value


def replace_template_params(context: "ResolutionContext | None", string: str | None) -> Any:
    """Merge template parameters into "#{...}" expressions.

    Only runs when the context has template parameters. The merged result
    is resolved again, so merges are bounded by context.max_merge_depth.

    Raises:
        ResolutionError: If a merged expression is unterminated or merging
            does not settle within the depth limit
    """
    return _restore_escapes(_replace_template_params(context, string, 0))


def _replace_template_params(
    context: "ResolutionContext | None",
    string: str | None,
    depth: int,
) -> Any:
    if string is None:
        return None
    if context is None:
        context = _default_context()
    params = context.template_params
    if not params:
        return string

    out: list[str] = []
    loop_start = 0
    found = False
    while True:
        open_idx = _find_open_el(string, loop_start)
        value = None
        end_idx = -1
        while open_idx != -1:
            end_idx = _find_char(string, open_idx + len(OPEN_EL), PARAM_TERMINATORS)
            if end_idx == -1:
                open_idx = -1
                break
            value = _lookup_param(params, string[open_idx + len(OPEN_EL):end_idx].strip())
            if value is not None:
                break
            open_idx = _find_open_el(string, end_idx + 1)

        if open_idx == -1:
            if not found:
                return string
            out.append(string[loop_start:])
            break

        found = True
        if depth >= context.max_merge_depth:
            raise ResolutionError(
                f"Template parameters in '{_restore_escapes(string)}' did not "
                f"resolve within {context.max_merge_depth} merges."
            )
        out.append(string[loop_start:open_idx])

        if string[end_idx] == SUB_END:
            end_idx += 1
            if open_idx == 0 and end_idx >= len(string):
                return _resolve_value(context, value, depth + 1)
            out.append(to_string(value))
        else:
            merged = to_string(value)
            if merged.startswith(OPEN_EL):
                merged = merged[len(OPEN_EL):]
            if merged.endswith(SUB_END):
                merged = merged[:-len(SUB_END)]
            out.append(OPEN_EL + merged)

            close_idx = string.find(SUB_END, end_idx + 1)
            if close_idx == -1:
                raise ResolutionError(
                    f"EL has unterminated #{{}} expression: ({_restore_escapes(string)})"
                )
            out.append(string[end_idx:close_idx + 1])
            end_idx = close_idx + 1
            logger.debug("Merged template parameter into '%s'", "".join(out))
        loop_start = end_idx

    return _resolve_variables(
        context, "".join(out), SUB_START, SUB_TYPE_DELIM, SUB_END, depth + 1
    )
