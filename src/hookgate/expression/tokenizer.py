"""Tokenizer for the workflow expression language.

Turns the inner text of a ``${{ ... }}`` expression into a flat list of
:class:`Token` objects.  The list always ends with exactly one
``TokenKind.EOF`` sentinel.

Example
-------
>>> [t.value for t in tokenize("steps.build.outcome == 'success'")]
['steps', '.', 'build', '.', 'outcome', '==', 'success', '']
"""
from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum

from hookgate.expression.errors import ExpressionSyntaxError

__all__ = ["Token", "TokenKind", "tokenize"]


class TokenKind(str, Enum):
    """Lexical category of a token."""

    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    OPERATOR = "operator"
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACKET = "["
    RIGHT_BRACKET = "]"
    DOT = "."
    COMMA = ","
    EOF = "eof"


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexical unit.

    Attributes
    ----------
    kind:
        The token category.
    value:
        The token text.  String literals carry their unescaped contents;
        the EOF sentinel carries an empty string.
    position:
        Character offset of the token's first character in the source.
    """

    kind: TokenKind
    value: str
    position: int = 0

    @property
    def is_float(self) -> bool:
        """True for number tokens written with a fraction or exponent."""
        return self.kind is TokenKind.NUMBER and any(c in self.value for c in ".eE")


_WHITESPACE = frozenset(" \t\n\r\f\v")
_DIGITS = frozenset(string.digits)
_IDENT_START = frozenset(string.ascii_letters + "_")
_IDENT_CHARS = _IDENT_START | _DIGITS | {"-"}

_PUNCTUATION: dict[str, TokenKind] = {
    "(": TokenKind.LEFT_PAREN,
    ")": TokenKind.RIGHT_PAREN,
    "[": TokenKind.LEFT_BRACKET,
    "]": TokenKind.RIGHT_BRACKET,
    ".": TokenKind.DOT,
    ",": TokenKind.COMMA,
}

_TWO_CHAR_OPERATORS = frozenset({"==", "!=", "<=", ">=", "&&", "||"})
_ONE_CHAR_OPERATORS = frozenset({"!", "<", ">", "+", "-", "*", "/"})


def tokenize(text: str) -> list[Token]:
    """Split expression source into tokens.

    Parameters
    ----------
    text:
        Expression source without the ``${{ }}`` wrapper.

    Returns
    -------
    list[Token]
        Tokens in source order, terminated by one EOF token.

    Raises
    ------
    ExpressionSyntaxError
        On an unterminated string literal or an unexpected character.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(text)

    while pos < length:
        ch = text[pos]

        if ch in _WHITESPACE:
            pos += 1
            continue

        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch, pos))
            pos += 1
            continue

        # A '-' directly followed by a digit starts a negative number literal.
        if ch in _DIGITS or (ch == "-" and pos + 1 < length and text[pos + 1] in _DIGITS):
            end = _scan_number(text, pos)
            tokens.append(Token(TokenKind.NUMBER, text[pos:end], pos))
            pos = end
            continue

        two = text[pos : pos + 2]
        if two in _TWO_CHAR_OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, two, pos))
            pos += 2
            continue
        if ch in _ONE_CHAR_OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, ch, pos))
            pos += 1
            continue

        if ch == "'":
            value, end = _scan_string(text, pos)
            tokens.append(Token(TokenKind.STRING, value, pos))
            pos = end
            continue

        if ch in _IDENT_START:
            end = pos + 1
            while end < length and text[end] in _IDENT_CHARS:
                end += 1
            tokens.append(Token(TokenKind.IDENTIFIER, text[pos:end], pos))
            pos = end
            continue

        raise ExpressionSyntaxError(
            f"unexpected character '{ch}' at position {pos}", position=pos
        )

    tokens.append(Token(TokenKind.EOF, "", length))
    return tokens


def _scan_string(text: str, start: int) -> tuple[str, int]:
    """Read a single-quoted literal starting at ``start``; ``''`` escapes a quote."""
    chars: list[str] = []
    pos = start + 1
    while pos < len(text):
        ch = text[pos]
        if ch == "'":
            if text[pos + 1 : pos + 2] == "'":
                chars.append("'")
                pos += 2
                continue
            return "".join(chars), pos + 1
        chars.append(ch)
        pos += 1
    raise ExpressionSyntaxError(
        f"unterminated string starting at position {start}", position=start
    )


def _scan_number(text: str, start: int) -> int:
    """Return the end offset of the number literal starting at ``start``."""
    pos = start
    if text[pos] == "-":
        pos += 1
    pos = _skip_digits(text, pos)

    if pos + 1 < len(text) and text[pos] == "." and text[pos + 1] in _DIGITS:
        pos = _skip_digits(text, pos + 1)

    if pos < len(text) and text[pos] in "eE":
        exp = pos + 1
        if exp < len(text) and text[exp] in "+-":
            exp += 1
        if exp < len(text) and text[exp] in _DIGITS:
            pos = _skip_digits(text, exp)

    return pos


def _skip_digits(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _DIGITS:
        pos += 1
    return pos
