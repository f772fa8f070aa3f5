"""Tokenizer for the feature search language.

Lexing is done by lark's basic lexer from the terminals in ``tokens.lark``;
this module turns lark tokens into :class:`Token` values and offers the
one-token pushback interface the compiler is written against.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from typing import TYPE_CHECKING

from lark import Lark, UnexpectedCharacters

from osm_search.exceptions import SearchParseError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from lark import Token as LarkToken

# Upper bound used for open ranges such as ``nodes:5-``
OPEN_RANGE_END = 2**31 - 1

_NUMBER = re.compile(r"[+-]?[0-9]+", re.ASCII)
_RANGE = re.compile(r"(?P<start>[+-]?[0-9]+)-(?P<end>[0-9]+)?", re.ASCII)
_QUOTED_BODY = re.compile(r'"((?:\\.|[^"\\])*)"?', re.DOTALL)
_ESCAPE = re.compile(r"\\(.)", re.DOTALL)


class TokenKind(Enum):
    """Kinds of tokens; the value is the label used in error messages."""

    KEY = "<key>"
    EQUALS = "<equals>"
    COLON = "<colon>"
    QUESTION = "<question mark>"
    NOT = "<not>"
    OR = "<or>"
    LEFT_PAREN = "<left parent>"
    RIGHT_PAREN = "<right parent>"
    EOF = "<end-of-file>"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    """A lexed token. ``text`` is only set for KEY tokens."""

    kind: TokenKind
    text: str | None = None

    def __str__(self) -> str:
        if self.kind is TokenKind.KEY:
            return f"{self.kind} '{self.text}'"
        return str(self.kind)


EOF_TOKEN = Token(TokenKind.EOF)


@dataclass(frozen=True)
class Range:
    """Inclusive integer range; reversed bounds are swapped."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            start, end = self.end, self.start
            object.__setattr__(self, "start", start)
            object.__setattr__(self, "end", end)

    def __contains__(self, value: int) -> bool:
        return self.start <= value <= self.end

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def parse_range(text: str, message: str) -> Range:
    """Parse ``"min-max"``, ``"min-"``, ``"-max"`` or ``"value"``.

    Args:
        text: Literal text of a KEY token.
        message: Error message used when *text* is not a range.

    Raises:
        SearchParseError: If *text* is not a number or a range.
    """
    text = text.strip()
    if _NUMBER.fullmatch(text):
        n = int(text)
        if n >= 0:
            return Range(n, n)
        return Range(0, -n)

    m = _RANGE.fullmatch(text)
    if m is None:
        raise SearchParseError(message)
    start = int(m.group("start"))
    end = m.group("end")
    if end is None:
        return Range(start, OPEN_RANGE_END)
    return Range(start, int(end))


def _load_grammar() -> str:
    """Load the lark terminals from the package resources."""
    return resources.files("osm_search.search").joinpath("tokens.lark").read_text()


_lexer = Lark(_load_grammar(), parser="lalr", lexer="basic")

_STRUCTURAL: dict[str, TokenKind] = {
    "LPAR": TokenKind.LEFT_PAREN,
    "RPAR": TokenKind.RIGHT_PAREN,
    "EQUALS": TokenKind.EQUALS,
    "COLON": TokenKind.COLON,
    "QUESTION": TokenKind.QUESTION,
    "PIPE": TokenKind.OR,
    "NOT": TokenKind.NOT,
}


def _unescape(s: str) -> str:
    return _ESCAPE.sub(r"\1", s)


def _convert(tok: LarkToken) -> Token:
    kind = _STRUCTURAL.get(tok.type)
    if kind is not None:
        return Token(kind)

    if tok.type == "QUOTED":
        m = _QUOTED_BODY.fullmatch(str(tok))
        if m is None:
            raise SearchParseError(f"Malformed quoted string {str(tok)!r}")
        return Token(TokenKind.KEY, _unescape(m.group(1)))

    text = _unescape(str(tok))
    if text.lower() == "or":
        return Token(TokenKind.OR)
    return Token(TokenKind.KEY, text)


class PushbackTokenizer:
    """Token stream over a query string with one token of lookahead.

    End of input yields :data:`EOF_TOKEN` on every further read.
    """

    def __init__(self, query: str) -> None:
        self._stream: Iterator[LarkToken] = _lexer.lex(query)
        self._pushed: Token | None = None
        # Text of the last KEY token consumed
        self.text: str | None = None

    def _lex_next(self) -> Token:
        try:
            tok = next(self._stream, None)
        except UnexpectedCharacters as e:
            raise SearchParseError(
                f"Unexpected character {e.char!r} at position {e.pos_in_stream + 1}"
            ) from e
        if tok is None:
            return EOF_TOKEN
        return _convert(tok)

    def next_token(self) -> Token:
        """Consume and return the next token."""
        if self._pushed is not None:
            tok, self._pushed = self._pushed, None
        else:
            tok = self._lex_next()
        if tok.kind is TokenKind.KEY:
            self.text = tok.text
        return tok

    def peek(self) -> Token:
        """Return the next token without consuming it."""
        if self._pushed is None:
            self._pushed = self._lex_next()
        return self._pushed

    def read_if_equal(self, kind: TokenKind) -> bool:
        """Consume the next token only if it is of *kind*."""
        if self.peek().kind is kind:
            self.next_token()
            return True
        return False

    def read_text_or_number(self) -> str | None:
        """Consume the next KEY and return its text, or None if there is none."""
        if self.peek().kind is TokenKind.KEY:
            return self.next_token().text
        return None

    def read_number(self, message: str) -> int:
        """Consume a KEY holding an integer.

        Raises:
            SearchParseError: With *message* if the next token is not an integer.
        """
        tok = self.next_token()
        if tok.kind is not TokenKind.KEY or not _NUMBER.fullmatch(tok.text or ""):
            raise SearchParseError(message)
        return int(tok.text)

    def read_range(self, message: str) -> Range:
        """Consume a KEY holding a range (see :func:`parse_range`)."""
        tok = self.next_token()
        if tok.kind is not TokenKind.KEY:
            raise SearchParseError(message)
        return parse_range(tok.text or "", message)
