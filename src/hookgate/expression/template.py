"""Helpers for ``${{ <expr> }}`` placeholders embedded in workflow strings."""
from __future__ import annotations

import re
from typing import Callable

from hookgate.expression.errors import ExpressionError

__all__ = [
    "EXPRESSION_PATTERN",
    "contains_expression",
    "extract_expressions",
    "replace_expressions",
]

EXPRESSION_PATTERN = re.compile(r"\$\{\{\s*(.*?)\s*\}\}")


def contains_expression(text: str) -> bool:
    """Return True when ``text`` holds at least one ``${{ }}`` placeholder."""
    return EXPRESSION_PATTERN.search(text) is not None


def extract_expressions(text: str) -> list[str]:
    """Return the inner source of every placeholder, in order."""
    return [match.group(1) for match in EXPRESSION_PATTERN.finditer(text)]


def replace_expressions(text: str, replacer: Callable[[str], str]) -> str:
    """Substitute every placeholder with ``replacer(inner_source)``.

    Raises
    ------
    ExpressionError
        When ``replacer`` fails; the message names the failing source.
    """

    def _substitute(match: re.Match[str]) -> str:
        source = match.group(1).strip()
        try:
            return replacer(source)
        except ExpressionError as exc:
            raise ExpressionError(
                f"failed to evaluate expression '{source}': {exc}"
            ) from exc

    return EXPRESSION_PATTERN.sub(_substitute, text)
