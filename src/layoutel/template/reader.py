"""Character reader for the layout template syntax.

Wraps a character source with an unlimited pushback stack and provides the
lexical primitives shared by every higher-level template construct:
- Comment and whitespace skipping (#, //, /* */, <!-- -->)
- Tokens, quoted strings and backslash escapes
- Name/value pairs, output mappings, lists and arrays

Usage:
    with TemplateReader('file="jsftemplating.js" />') as reader:
        nvp = reader.get_nvp(None)
"""

import io
import logging
from dataclasses import dataclass
from typing import Any, Iterable, TextIO

logger = logging.getLogger(__name__)

SIMPLE_WHITE_SPACE = " \t\r\n"
LIST_SEPARATORS = ",:;"
QUOTES = ("'", '"')

# Output mapping types accepted after "name => $type{key}"
DEFAULT_OUTPUT_TYPES = frozenset(
    {"attribute", "page", "pageSession", "session", "application", "el"}
)


class TemplateSyntaxError(ValueError):
    """Structural error found while reading template source.

    Attributes:
        fragment: The offending piece of source, when known
    """

    def __init__(self, message: str, fragment: str | None = None):
        self.fragment = fragment
        super().__init__(message)


@dataclass(frozen=True)
class NameValuePair:
    """A parsed name/value pair.

    Attributes:
        name: The name (or the default name when none was given)
        value: A string, a list of strings ({...}) or a tuple of strings ([...])
        target: Output type keyword for "name => $type{key}" mappings, else None
    """

    name: str
    value: Any
    target: str | None = None

    @property
    def is_output_mapping(self) -> bool:
        return self.target is not None

    def __str__(self) -> str:
        if self.target is None:
            return f'{self.name}="{self.value}"'
        return f"{self.name}=>${self.target}{{{self.value}}}"


class TemplateReader:
    """Pushback character reader over a string or an open text stream.

    End of input is reported as None. Characters handed to unread() are
    replayed in LIFO order before the underlying source is read again.
    """

    def __init__(
        self,
        source: str | TextIO,
        output_types: Iterable[str] = DEFAULT_OUTPUT_TYPES,
    ):
        self._source = source
        self._stream: TextIO | None = None
        self._pushback: list[str] = []
        self.output_types = frozenset(output_types)

    # -------------------------------------------------------------------------
    # Stream handling
    # -------------------------------------------------------------------------

    def open(self) -> "TemplateReader":
        """Open the source, starting over if it was already open."""
        self._open_stream()
        return self

    def _open_stream(self) -> TextIO:
        if self._stream is not None:
            self.close()
        stream = io.StringIO(self._source) if isinstance(self._source, str) else self._source
        self._stream = stream
        self._pushback = []
        return stream

    def close(self) -> None:
        """Close the underlying stream. Never raises."""
        if self._stream is None:
            return
        try:
            self._stream.close()
        except (OSError, ValueError) as exc:
            logger.debug("Exception while closing template source: %s", exc)
        self._stream = None

    def __enter__(self) -> "TemplateReader":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _ensure_open(self) -> TextIO:
        if self._stream is None:
            return self._open_stream()
        return self._stream

    # -------------------------------------------------------------------------
    # Character level
    # -------------------------------------------------------------------------

    def next_char(self) -> str | None:
        """Return the next character, or None at end of input."""
        if self._pushback:
            return self._pushback.pop()
        return self._ensure_open().read(1) or None

    def unread(self, ch: str | None) -> None:
        """Push a character back. Pushing back end-of-input is a no-op."""
        if ch is not None:
            self._pushback.append(ch)

    def read_line(self) -> str:
        """Read the rest of the current line.

        Pushed-back characters are consumed first. Literal "\\n" sequences
        become newlines and a trailing backslash joins the next line.
        """
        buf: list[str] = []
        while self._pushback:
            ch = self._pushback.pop()
            if ch in "\r\n":
                if self._pushback and self._pushback[-1] in "\r\n":
                    self._pushback.pop()
                return "".join(buf)
            buf.append(ch)

        line = self._ensure_open().readline()
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        text = ("".join(buf) + line).replace("\\n", "\n")
        if text.endswith("\\"):
            text = text[:-1] + self.read_line()
        return text

    def skip_whitespace(self, skip_chars: str = SIMPLE_WHITE_SPACE) -> None:
        """Consume characters found in skip_chars."""
        ch = self.next_char()
        while ch is not None and ch in skip_chars:
            ch = self.next_char()
        self.unread(ch)

    def skip_comments_and_whitespace(self, skip_chars: str = SIMPLE_WHITE_SPACE) -> None:
        """Consume characters in skip_chars as well as any comments.

        Recognized comments: "#...", "//...", "/*...*/" and "<!--...-->".
        Anything that turns out not to be a comment is pushed back intact.
        """
        while True:
            ch = self.next_char()
            if ch is None:
                return
            if ch == "#":
                self.read_line()
            elif ch == "/":
                following = self.next_char()
                if following == "/":
                    self.read_line()
                elif following == "*":
                    self.read_until("*/")
                else:
                    self.unread(following)
                    self.unread("/")
                    return
            elif ch == "<":
                if not self._skip_markup_comment():
                    return
            elif ch not in skip_chars:
                self.unread(ch)
                return

    def _skip_markup_comment(self) -> bool:
        """Skip a "<!--...-->" comment whose '<' was just read.

        Returns False, with everything pushed back, when no comment starts here.
        """
        bang = self.next_char()
        if bang != "!":
            self.unread(bang)
            self.unread("<")
            return False
        dash = self.next_char()
        if dash != "-":
            self.unread(dash)
            self.unread("!")
            self.unread("<")
            return False
        second_dash = self.next_char()
        if second_dash != "-":
            self.unread(second_dash)
            self.unread("-")
            self.unread("!")
            self.unread("<")
            found = self.read_line()
            raise TemplateSyntaxError(
                f'Invalid comment! Expected comment to begin with "<!--", but found: {found}',
                found,
            )
        self.read_until("-->")
        return True

    # -------------------------------------------------------------------------
    # Tokens and delimited text
    # -------------------------------------------------------------------------

    def read_token(self, extra_chars: str | None = "_:.") -> str:
        """Read letters, digits and any of extra_chars."""
        extra_chars = extra_chars or ""
        buf: list[str] = []
        ch = self.next_char()
        while ch is not None and (ch.isalnum() or ch in extra_chars):
            buf.append(ch)
            ch = self.next_char()
        self.unread(ch)
        return "".join(buf)

    def read_until(self, ending: str, skip_comments: bool = False) -> str:
        """Read up to a terminator.

        A single character terminator is consumed but not returned; reaching
        end of input simply ends the read. A multi-character terminator is
        returned as part of the result and must be found, otherwise a
        TemplateSyntaxError is raised.

        Backslash escapes are honored (\\n, \\t, backslash-newline line
        continuation, anything else taken literally). With skip_comments,
        comments are dropped and quoted substrings are copied verbatim so
        that terminators inside quotes are ignored.
        """
        if not ending:
            return ""
        if len(ending) == 1:
            text, _ = self._scan_until(ending, skip_comments)
            return text
        return self._read_until_string(ending, skip_comments)

    def _scan_until(self, ending: str, skip_comments: bool) -> tuple[str, bool]:
        """Read up to a single character; also report whether it was found."""
        if skip_comments:
            self.skip_comments_and_whitespace("")

        buf: list[str] = []
        ch = self.next_char()
        while ch is not None and ch != ending:
            if ch in QUOTES:
                buf.append(ch)
                if skip_comments:
                    buf.append(self._read_required(ch))
                    buf.append(ch)
            elif ch in "#/<":
                if skip_comments:
                    self.unread(ch)
                    self.skip_comments_and_whitespace("")
                    following = self.next_char()
                    if following == ch:
                        buf.append(ch)
                    else:
                        self.unread(following)
                else:
                    buf.append(ch)
            elif ch == "\\":
                escaped = self.next_char()
                if escaped == "n":
                    buf.append("\n")
                elif escaped == "t":
                    buf.append("\t")
                elif escaped is not None and escaped != "\n":
                    buf.append(escaped)
            else:
                buf.append(ch)
            ch = self.next_char()
        return "".join(buf), ch is not None

    def _read_required(self, ending: str, context: str | None = None) -> str:
        """Read up to a single character that must be present."""
        text, found = self._scan_until(ending, False)
        if not found:
            where = f" for '{context}'" if context else ""
            raise TemplateSyntaxError(
                f"Unterminated value{where}: expected closing {ending!r}, read: {text}",
                text,
            )
        return text

    def _read_until_string(self, ending: str, skip_comments: bool) -> str:
        first, rest = ending[0], ending[1:]
        buf: list[str] = []
        while True:
            text, found = self._scan_until(first, skip_comments)
            buf.append(text)
            if not found:
                raise TemplateSyntaxError(
                    f"Unable to find: '{ending}'. Read to EOF and gave up. Read: \n{''.join(buf)}",
                    ending,
                )
            buf.append(first)

            matched: list[str] = []
            for expected in rest:
                ch = self.next_char()
                if ch != expected:
                    self.unread(ch)
                    break
                matched.append(ch)
            else:
                buf.append(rest)
                return "".join(buf)

            # Partial terminator, re-buffer what we consumed and keep looking
            for ch in reversed(matched):
                self.unread(ch)

    # -------------------------------------------------------------------------
    # Name/value pairs
    # -------------------------------------------------------------------------

    def get_nvp(
        self,
        default_name: str | None,
        require_quotes: bool = True,
        extra_name_chars: str = "_.",
    ) -> NameValuePair:
        """Read a name/value pair.

        Supported forms:
            name="value"   name='value'   name:"value"
            "value"                      (when default_name is given)
            name => $attribute{key}      (output mapping)
            name={"a", "b"}              (list)
            name=["a", "b"]              (array, returned as a tuple)

        With require_quotes=False, unquoted values up to a closing '>' are
        accepted as well.
        """
        name = self.read_token(extra_name_chars)
        if not name and default_name is not None:
            name = default_name
            self.unread("=")

        self.skip_comments_and_whitespace(SIMPLE_WHITE_SPACE)
        ch = self.next_char()
        if ch not in ("=", ":"):
            if not require_quotes and name != default_name:
                # No name and no quotes, the whole thing is the value
                self.unread(ch)
                return NameValuePair(default_name or "", self._read_unquoted(name))
            raise TemplateSyntaxError(
                f"'=' or ':' missing for Name Value Pair: '{name}'!", name
            )

        self.skip_comments_and_whitespace(SIMPLE_WHITE_SPACE)
        ch = self.next_char()

        if ch == ">":
            if not require_quotes:
                # End of the tag, there was no value
                self.unread(ch)
                return NameValuePair(name, "")
            return self._read_output_mapping(name)
        if ch == "{":
            return NameValuePair(name, self.parse_list("}"))
        if ch == "[":
            return NameValuePair(name, tuple(self.parse_list("]")))
        if ch in QUOTES:
            return NameValuePair(name, self._read_required(ch, name))
        if not require_quotes:
            self.unread(ch)
            return NameValuePair(name, self._read_unquoted(None))

        raise TemplateSyntaxError(
            f"Name Value Pair named '{name}' is missing single or double quotes "
            f"enclosing its value. It must follow one of these formats:\n\t"
            f'{name}="value"\nor:\n\t{name}=\'value\'',
            name,
        )

    def _read_unquoted(self, prefix: str | None) -> str:
        """Read an unquoted value running up to (not including) '>'."""
        text, found = self._scan_until(">", True)
        if found:
            self.unread(">")
        if text.endswith("/"):
            # Self-closing tag, leave "/>" for the caller
            text = text[:-1].strip()
            self.unread("/")
        return text if prefix is None else prefix + text

    def _read_output_mapping(self, name: str) -> NameValuePair:
        """Read the "$type{key}" part of "name => $type{key}"."""
        example = (
            f"\n\t{name} => $attribute{{attKey}}"
            f"\nor:\n\t{name} => $session{{sessionKey}}"
        )
        self.skip_comments_and_whitespace(SIMPLE_WHITE_SPACE)
        if self.next_char() != "$":
            raise TemplateSyntaxError(
                f"'$' missing for Name Value Pair named: '{name}=>'! This NVP "
                f"appears to be a mapping expression, therefore requires a "
                f"format similar to:{example}",
                f"{name}=>",
            )

        target = self.read_token()
        if target not in self.output_types:
            raise TemplateSyntaxError(
                f"Invalid OutputType ('{target}') for Name Value Pair named: "
                f"'{name}=>${target}{{...}}'! Expected a format similar to:{example}",
                target,
            )

        self.skip_comments_and_whitespace(SIMPLE_WHITE_SPACE)
        if self.next_char() != "{":
            raise TemplateSyntaxError(
                f"'{{' missing for Name Value Pair: '{name}=>${target}'! The "
                f"format must resemble the following:\n\t{name} => ${target}{{key}}",
                f"{name}=>${target}",
            )
        return NameValuePair(name, self._read_required("}", name), target)

    def parse_list(self, end_char: str) -> list[str]:
        """Read quoted values up to end_char.

        Values may be separated by whitespace or any of ",:;".
        """
        items: list[str] = []
        self.skip_comments_and_whitespace(SIMPLE_WHITE_SPACE)
        ch = self.next_char()
        while ch != end_char:
            if ch not in QUOTES:
                raise TemplateSyntaxError(
                    "A List or array is missing a single or double quotes "
                    "enclosing one or more of its values. It must follow:\n\t"
                    "name={\"value\", ...}\nor:\n\tname={'value', ...}\n\n"
                    "[]'s may be used in place of {}'s to specify an array "
                    "instead of a List.",
                    ch,
                )
            items.append(self._read_required(ch))
            self.skip_comments_and_whitespace(SIMPLE_WHITE_SPACE + LIST_SEPARATORS)
            ch = self.next_char()
        return items
