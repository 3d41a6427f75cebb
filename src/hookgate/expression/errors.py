"""Exceptions raised while tokenizing or evaluating ``${{ }}`` expressions.

All expression failures derive from :class:`ExpressionError` so callers
that only care about "the expression did not evaluate" can catch a single
type.  Coercions never raise; only syntax, unknown functions and bad
function arguments do.
"""
from __future__ import annotations


class ExpressionError(Exception):
    """Base class for every expression tokenizing or evaluation failure."""


class ExpressionSyntaxError(ExpressionError):
    """Raised for lexical and grammatical errors.

    Attributes
    ----------
    message:
        Human-readable description of the problem.
    position:
        Zero-based character offset (tokenizer) or token index (parser)
        where the problem was detected, when known.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.message = message
        self.position = position
        super().__init__(message)


class UnknownFunctionError(ExpressionError):
    """Raised when a call names a function absent from the function table."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown function: {name}")


class FunctionArgumentError(ExpressionError):
    """Raised when a built-in function receives the wrong arguments."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")
