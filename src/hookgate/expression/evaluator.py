"""Recursive-descent evaluator for the workflow expression language.

The evaluator parses and evaluates in a single pass over the token list.
Precedence, lowest to highest::

    ||   ->   &&   ->   == !=   ->   < <= > >=   ->   unary !
         ->   postfix chain: call (...), member .name, index [...]
         ->   primary

``&&`` and ``||`` do NOT short-circuit: both operands are evaluated before
they are combined, so function calls on either side always run.

Example
-------
>>> from hookgate.expression.context import EvaluationContext
>>> from hookgate.expression.tokenizer import tokenize
>>> evaluate(tokenize("false || true && false"), EvaluationContext())
False
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from hookgate.expression.errors import ExpressionSyntaxError, UnknownFunctionError
from hookgate.expression.tokenizer import Token, TokenKind
from hookgate.expression.values import (
    get_index,
    get_property,
    to_bool,
    to_number,
    values_equal,
)

if TYPE_CHECKING:
    from hookgate.expression.context import EvaluationContext

logger = logging.getLogger(__name__)

__all__ = ["evaluate"]

_KEYWORDS: dict[str, Any] = {"true": True, "false": False, "null": None}
_RELATIONAL = frozenset({"<", "<=", ">", ">="})


def evaluate(tokens: list[Token], context: EvaluationContext) -> Any:
    """Evaluate a token stream produced by :func:`tokenize`.

    Parameters
    ----------
    tokens:
        Tokens ending with an EOF sentinel.
    context:
        Supplies ``event``, ``env``, ``steps`` and the function table.

    Returns
    -------
    Any
        The expression's value (see :mod:`hookgate.expression.values`).

    Raises
    ------
    ExpressionSyntaxError
        On malformed input, including tokens left over after a complete
        expression, number literals Python cannot represent and nesting
        deeper than the interpreter's recursion limit.
    UnknownFunctionError
        When a call names a function missing from the context's table.
    FunctionArgumentError
        When a built-in rejects its arguments.
    """
    if not tokens or tokens[-1].kind is not TokenKind.EOF:
        tokens = [*tokens, Token(TokenKind.EOF, "")]
    parser = _Parser(tokens, context)
    try:
        value = parser.parse_expression()
    except RecursionError as exc:
        raise ExpressionSyntaxError("expression nested too deeply") from exc
    if not parser.at_end():
        token = parser.peek()
        raise ExpressionSyntaxError(
            f"unexpected token '{token.value}' at position {token.position}",
            position=token.position,
        )
    return value


class _Name(str):
    """A bare identifier that may be the callee of a following call."""


class _Parser:
    def __init__(self, tokens: list[Token], context: EvaluationContext) -> None:
        self._tokens = tokens
        self._pos = 0
        self._context = context

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def parse_expression(self) -> Any:
        return self._parse_or()

    def _parse_or(self) -> Any:
        left = self._parse_and()
        while self._match_operator("||"):
            right = self._parse_and()
            left = to_bool(left) or to_bool(right)
        return left

    def _parse_and(self) -> Any:
        left = self._parse_equality()
        while self._match_operator("&&"):
            right = self._parse_equality()
            left = to_bool(left) and to_bool(right)
        return left

    def _parse_equality(self) -> Any:
        left = self._parse_relational()
        while self._check(TokenKind.OPERATOR) and self.peek().value in ("==", "!="):
            operator = self._advance().value
            right = self._parse_relational()
            equal = values_equal(_plain(left), _plain(right))
            left = equal if operator == "==" else not equal
        return left

    def _parse_relational(self) -> Any:
        left = self._parse_unary()
        while self._check(TokenKind.OPERATOR) and self.peek().value in _RELATIONAL:
            operator = self._advance().value
            right = self._parse_unary()
            a, b = to_number(_plain(left)), to_number(_plain(right))
            if operator == "<":
                left = a < b
            elif operator == "<=":
                left = a <= b
            elif operator == ">":
                left = a > b
            else:
                left = a >= b
        return left

    def _parse_unary(self) -> Any:
        if self._match_operator("!"):
            return not to_bool(_plain(self._parse_unary()))
        return self._parse_postfix()

    def _parse_postfix(self) -> Any:
        value = self._parse_primary()
        while True:
            if self._match(TokenKind.LEFT_PAREN):
                if not isinstance(value, _Name):
                    raise ExpressionSyntaxError(
                        "expected function name before '('", position=self._previous().position
                    )
                value = self._finish_call(str(value))
            elif self._match(TokenKind.DOT):
                if not self._check(TokenKind.IDENTIFIER):
                    raise ExpressionSyntaxError(
                        "expected property name after '.'", position=self.peek().position
                    )
                value = get_property(_plain(value), self._advance().value)
            elif self._match(TokenKind.LEFT_BRACKET):
                index = self.parse_expression()
                if not self._match(TokenKind.RIGHT_BRACKET):
                    raise ExpressionSyntaxError(
                        "expected ']' after index", position=self.peek().position
                    )
                value = get_index(_plain(value), _plain(index))
            else:
                return _plain(value)

    def _finish_call(self, name: str) -> Any:
        args: list[Any] = []
        if not self._check(TokenKind.RIGHT_PAREN):
            while True:
                args.append(_plain(self.parse_expression()))
                if not self._match(TokenKind.COMMA):
                    break
        if not self._match(TokenKind.RIGHT_PAREN):
            raise ExpressionSyntaxError(
                "expected ')' after arguments", position=self.peek().position
            )

        table = self._context.functions
        context_function = table.context_functions.get(name)
        if context_function is not None:
            return context_function(self._context, *args)
        function = table.functions.get(name)
        if function is None:
            raise UnknownFunctionError(name)
        logger.debug("Calling expression function %s with %d args", name, len(args))
        return function(*args)

    def _parse_primary(self) -> Any:
        token = self.peek()

        if self._match(TokenKind.NUMBER):
            try:
                if token.is_float:
                    return float(token.value)
                return int(token.value)
            except ValueError as exc:
                # int() refuses literals past the interpreter's digit limit.
                raise ExpressionSyntaxError(
                    f"invalid number literal at position {token.position}: {exc}",
                    position=token.position,
                ) from exc

        if self._match(TokenKind.STRING):
            return token.value

        if self._match(TokenKind.IDENTIFIER):
            name = token.value
            if name in _KEYWORDS:
                return _KEYWORDS[name]
            if name == "event":
                return self._context.event
            if name == "env":
                return self._context.env
            if name == "steps":
                return self._context.steps
            return _Name(name)

        if self._match(TokenKind.LEFT_PAREN):
            value = self.parse_expression()
            if not self._match(TokenKind.RIGHT_PAREN):
                raise ExpressionSyntaxError(
                    "expected ')' after expression", position=self.peek().position
                )
            return _plain(value)

        if token.kind is TokenKind.EOF:
            raise ExpressionSyntaxError("unexpected end of expression", position=token.position)
        raise ExpressionSyntaxError(
            f"unexpected token '{token.value}' at position {token.position}",
            position=token.position,
        )

    # ------------------------------------------------------------------
    # Token cursor
    # ------------------------------------------------------------------

    def peek(self) -> Token:
        return self._tokens[self._pos]

    def at_end(self) -> bool:
        return self.peek().kind is TokenKind.EOF

    def _previous(self) -> Token:
        return self._tokens[self._pos - 1]

    def _advance(self) -> Token:
        if not self.at_end():
            self._pos += 1
        return self._previous()

    def _check(self, kind: TokenKind) -> bool:
        return not self.at_end() and self.peek().kind is kind

    def _match(self, kind: TokenKind) -> bool:
        if self._check(kind):
            self._advance()
            return True
        return False

    def _match_operator(self, operator: str) -> bool:
        if self._check(TokenKind.OPERATOR) and self.peek().value == operator:
            self._advance()
            return True
        return False


def _plain(value: Any) -> Any:
    """Strip the callee marker so bare names behave as ordinary strings."""
    if isinstance(value, _Name):
        return str(value)
    return value
