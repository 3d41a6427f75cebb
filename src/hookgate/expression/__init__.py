"""Expression engine: tokenizer, evaluator, context and built-in functions.

Expressions appear inside workflow strings as ``${{ <expr> }}``.  See
:mod:`hookgate.expression.evaluator` for the grammar.
"""
from __future__ import annotations

from hookgate.expression.context import EvaluationContext
from hookgate.expression.errors import (
    ExpressionError,
    ExpressionSyntaxError,
    FunctionArgumentError,
    UnknownFunctionError,
)
from hookgate.expression.evaluator import evaluate
from hookgate.expression.functions import FunctionTable, default_function_table
from hookgate.expression.template import (
    EXPRESSION_PATTERN,
    contains_expression,
    extract_expressions,
    replace_expressions,
)
from hookgate.expression.tokenizer import Token, TokenKind, tokenize
from hookgate.expression.values import (
    Outcome,
    StepOutcome,
    to_bool,
    to_number,
    to_string,
    values_equal,
)

__all__ = [
    "EXPRESSION_PATTERN",
    "EvaluationContext",
    "ExpressionError",
    "ExpressionSyntaxError",
    "FunctionArgumentError",
    "FunctionTable",
    "Outcome",
    "StepOutcome",
    "Token",
    "TokenKind",
    "UnknownFunctionError",
    "contains_expression",
    "default_function_table",
    "evaluate",
    "extract_expressions",
    "replace_expressions",
    "to_bool",
    "to_number",
    "to_string",
    "tokenize",
    "values_equal",
]
