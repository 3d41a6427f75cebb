"""Per-run evaluation state for workflow expressions.

An :class:`EvaluationContext` is created once per workflow run.  It holds
the event tree, the workflow environment, the outcome of every step seen
so far (in execution order) and a reference to an immutable
:class:`FunctionTable`.

Example
-------
>>> ctx = EvaluationContext(event={"file": {"path": "src/app.js"}})
>>> ctx.evaluate("endsWith(event.file.path, '.JS')")
True
>>> ctx.evaluate_string("path=${{ event.file.path }}")
'path=src/app.js'
"""
from __future__ import annotations

from typing import Any

from hookgate.expression.evaluator import evaluate
from hookgate.expression.functions import FunctionTable, default_function_table
from hookgate.expression.template import (
    contains_expression,
    extract_expressions,
    replace_expressions,
)
from hookgate.expression.tokenizer import tokenize
from hookgate.expression.values import Outcome, StepOutcome, to_bool, to_string


class EvaluationContext:
    """State against which expressions are resolved.

    Parameters
    ----------
    event:
        Event tree exposed as ``event``.
    env:
        String environment exposed as ``env``.
    functions:
        Function table; the default built-ins when omitted.
    """

    def __init__(
        self,
        event: dict[str, Any] | None = None,
        env: dict[str, str] | None = None,
        functions: FunctionTable | None = None,
    ) -> None:
        self.event: dict[str, Any] = event if event is not None else {}
        self.env: dict[str, str] = env if env is not None else {}
        self.steps: dict[str, StepOutcome] = {}
        self.functions: FunctionTable = functions or default_function_table()

    # ------------------------------------------------------------------
    # Step bookkeeping
    # ------------------------------------------------------------------

    def set_step(self, name: str, outcome: Outcome, outputs: dict[str, str] | None = None) -> None:
        """Record or overwrite the outcome of ``name``.

        Overwriting keeps the step's original insertion position.
        """
        self.steps[name] = StepOutcome(outcome=outcome, outputs=dict(outputs or {}))

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, expression: str) -> Any:
        """Evaluate bare expression source (no ``${{ }}`` wrapper)."""
        return evaluate(tokenize(expression), self)

    def evaluate_string(self, text: str) -> str:
        """Interpolate every ``${{ }}`` placeholder in ``text``."""
        return replace_expressions(text, lambda source: to_string(self.evaluate(source)))

    def evaluate_bool(self, condition: str) -> bool:
        """Evaluate a step or trigger condition.

        When ``condition`` contains a ``${{ }}`` placeholder only the first
        placeholder is evaluated; otherwise the whole text is treated as
        one bare expression.
        """
        if contains_expression(condition):
            return to_bool(self.evaluate(extract_expressions(condition)[0]))
        return to_bool(self.evaluate(condition))
