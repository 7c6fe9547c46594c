"""Lexical front end shared by every template construct."""

from layoutel.template.reader import (
    DEFAULT_OUTPUT_TYPES,
    SIMPLE_WHITE_SPACE,
    NameValuePair,
    TemplateReader,
    TemplateSyntaxError,
)

__all__ = [
    "DEFAULT_OUTPUT_TYPES",
    "SIMPLE_WHITE_SPACE",
    "NameValuePair",
    "TemplateReader",
    "TemplateSyntaxError",
]
