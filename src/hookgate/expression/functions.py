"""Built-in expression functions and the function table.

Plain functions receive only their positional arguments.  Context-aware
functions additionally receive the :class:`EvaluationContext` they are
called from, which is how ``success()``, ``failure()`` and ``cancelled()``
inspect the outcomes of earlier steps.

A :class:`FunctionTable` is immutable once built.  Each evaluation
context holds a reference to one; tests can build alternate tables with
:meth:`FunctionTable.extended`.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

from hookgate.expression.errors import FunctionArgumentError
from hookgate.expression.values import Outcome, to_string

if TYPE_CHECKING:
    from hookgate.expression.context import EvaluationContext

Function = Callable[..., Any]
ContextFunction = Callable[..., Any]


@dataclass(frozen=True)
class FunctionTable:
    """Read-only registry of callable names.

    Attributes
    ----------
    functions:
        Plain functions, ``name -> callable(*args)``.
    context_functions:
        Context-aware functions, ``name -> callable(context, *args)``.
        These are looked up first.
    """

    functions: Mapping[str, Function]
    context_functions: Mapping[str, ContextFunction]

    def __post_init__(self) -> None:
        object.__setattr__(self, "functions", MappingProxyType(dict(self.functions)))
        object.__setattr__(
            self, "context_functions", MappingProxyType(dict(self.context_functions))
        )

    def extended(
        self,
        functions: Mapping[str, Function] | None = None,
        context_functions: Mapping[str, ContextFunction] | None = None,
    ) -> FunctionTable:
        """Return a new table with extra or overriding entries."""
        return FunctionTable(
            functions={**self.functions, **(functions or {})},
            context_functions={**self.context_functions, **(context_functions or {})},
        )


# ---------------------------------------------------------------------------
# Plain functions
# ---------------------------------------------------------------------------


def _require(name: str, args: tuple[Any, ...], count: int) -> None:
    if len(args) != count:
        noun = "argument" if count == 1 else "arguments"
        raise FunctionArgumentError(name, f"requires {count} {noun}, got {len(args)}")


def builtin_contains(*args: Any) -> bool:
    """Case-insensitive substring or list-membership test."""
    _require("contains", args, 2)
    haystack, needle = args[0], to_string(args[1]).casefold()
    if isinstance(haystack, str):
        return needle in haystack.casefold()
    if isinstance(haystack, list):
        return any(to_string(item).casefold() == needle for item in haystack)
    return False


def builtin_starts_with(*args: Any) -> bool:
    _require("startsWith", args, 2)
    return to_string(args[0]).casefold().startswith(to_string(args[1]).casefold())


def builtin_ends_with(*args: Any) -> bool:
    _require("endsWith", args, 2)
    return to_string(args[0]).casefold().endswith(to_string(args[1]).casefold())


def builtin_format(*args: Any) -> str:
    """Replace ``{0}``, ``{1}``, ... in the template with stringified args."""
    if not args:
        raise FunctionArgumentError("format", "requires at least 1 argument")
    result = to_string(args[0])
    for position, value in enumerate(args[1:]):
        result = result.replace("{" + str(position) + "}", to_string(value))
    return result


def builtin_join(*args: Any) -> str:
    if not 1 <= len(args) <= 2:
        raise FunctionArgumentError("join", f"requires 1 or 2 arguments, got {len(args)}")
    items = args[0]
    if not isinstance(items, list):
        return to_string(items)
    separator = to_string(args[1]) if len(args) == 2 else ","
    return separator.join(to_string(item) for item in items)


def builtin_to_json(*args: Any) -> str:
    _require("toJSON", args, 1)
    try:
        return json.dumps(args[0], default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise FunctionArgumentError("toJSON", str(exc)) from exc


def _json_default(value: Any) -> Any:
    as_mapping = getattr(value, "as_mapping", None)
    if callable(as_mapping):
        return as_mapping()
    raise TypeError(f"value of type {type(value).__name__} is not JSON serialisable")


def builtin_from_json(*args: Any) -> Any:
    _require("fromJSON", args, 1)
    try:
        return json.loads(to_string(args[0]))
    except json.JSONDecodeError as exc:
        raise FunctionArgumentError("fromJSON", f"invalid JSON: {exc}") from exc


def builtin_always(*args: Any) -> bool:
    return True


# ---------------------------------------------------------------------------
# Context-aware functions
# ---------------------------------------------------------------------------


def builtin_success(context: EvaluationContext, *args: Any) -> bool:
    """True unless an earlier step failed or was cancelled."""
    return not any(
        step.outcome in (Outcome.FAILURE, Outcome.CANCELLED)
        for step in context.steps.values()
    )


def builtin_failure(context: EvaluationContext, *args: Any) -> bool:
    return any(step.outcome is Outcome.FAILURE for step in context.steps.values())


def builtin_cancelled(context: EvaluationContext, *args: Any) -> bool:
    return any(step.outcome is Outcome.CANCELLED for step in context.steps.values())


def default_function_table() -> FunctionTable:
    """Build the standard table of built-in functions."""
    return FunctionTable(
        functions={
            "contains": builtin_contains,
            "startsWith": builtin_starts_with,
            "endsWith": builtin_ends_with,
            "format": builtin_format,
            "join": builtin_join,
            "toJSON": builtin_to_json,
            "fromJSON": builtin_from_json,
            "always": builtin_always,
        },
        context_functions={
            "success": builtin_success,
            "failure": builtin_failure,
            "cancelled": builtin_cancelled,
        },
    )
