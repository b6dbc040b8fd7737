"""
Expression interpreter for surveytidy (pandas backend).

Verbs accept three kinds of row-level computations:
    - Expression ASTs (surveytidy.expressions), interpreted here
    - strings, handed to ``DataFrame.eval``
    - callables, called with the DataFrame (or the current group/row)

Anything else is treated as a constant.

This module also renders computations into the short descriptions that
end up in the domain audit log and in the label store, and reports which
columns a computation reads.
"""

from __future__ import annotations

import operator
import re
from typing import Any, Callable, Dict, Iterable, Set

import numpy as np
import pandas as pd

from surveytidy.errors import ColumnNotFoundError
from surveytidy.expressions import (
    BinaryExpression,
    BinaryOperator,
    Expression,
    FunctionCall,
    Literal,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
)


_IDENTIFIER_RE = re.compile(r"\b([A-Za-z_][A-Za-z0-9_]*)\b")

_COMPARISONS: Dict[BinaryOperator, Callable[[Any, Any], Any]] = {
    BinaryOperator.EQUALS: operator.eq,
    BinaryOperator.NOT_EQUALS: operator.ne,
    BinaryOperator.GREATER_THAN: operator.gt,
    BinaryOperator.GREATER_EQUAL: operator.ge,
    BinaryOperator.LESS_THAN: operator.lt,
    BinaryOperator.LESS_EQUAL: operator.le,
}

_ARITHMETIC: Dict[BinaryOperator, Callable[[Any, Any], Any]] = {
    BinaryOperator.ADD: operator.add,
    BinaryOperator.SUBTRACT: operator.sub,
    BinaryOperator.MULTIPLY: operator.mul,
    BinaryOperator.DIVIDE: operator.truediv,
}


def _as_series(value: Any, index: pd.Index) -> pd.Series:
    if isinstance(value, pd.Series):
        return value
    if np.ndim(value) == 0:
        return pd.Series([value] * len(index), index=index, dtype=object if value is None else None)
    return pd.Series(np.asarray(value), index=index)


def _pooled(args: Iterable[Any]) -> pd.Series:
    """Concatenate every argument's values into one Series (R's c(...))."""
    parts = []
    for arg in args:
        if isinstance(arg, pd.Series):
            parts.append(arg.reset_index(drop=True))
        elif np.ndim(arg) == 0:
            parts.append(pd.Series([arg]))
        else:
            parts.append(pd.Series(np.asarray(arg).ravel()))
    if not parts:
        return pd.Series([], dtype=float)
    return pd.concat(parts, ignore_index=True)


def _if_else(condition, true_value, false_value):
    cond = condition.astype("boolean") if isinstance(condition, pd.Series) else condition
    if not isinstance(cond, pd.Series):
        return true_value if cond else false_value
    index = cond.index
    chosen = _as_series(true_value, index).where(cond.fillna(False), _as_series(false_value, index))
    return chosen.mask(cond.isna())


# Function registry for FunctionCall nodes.
# Aggregates pool all of their arguments and skip missing values.
FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "mean": lambda *args: _pooled(args).mean(),
    "sum": lambda *args: _pooled(args).sum(),
    "min": lambda *args: _pooled(args).min(),
    "max": lambda *args: _pooled(args).max(),
    "median": lambda *args: _pooled(args).median(),
    "sd": lambda *args: _pooled(args).std(ddof=1),
    "var": lambda *args: _pooled(args).var(ddof=1),
    "abs": lambda x: abs(x),
    "round": lambda x, digits=0: x.round(int(digits)) if isinstance(x, pd.Series) else round(x, int(digits)),
    "log": lambda x: np.log(x),
    "sqrt": lambda x: np.sqrt(x),
    "exp": lambda x: np.exp(x),
    "if_else": _if_else,
}


def evaluate(value: Any, frame: pd.DataFrame) -> Any:
    """
    Evaluate a computation against a DataFrame.

    Args:
        value: Expression, string, callable or constant
        frame: The data (whole table, one group, or one row)

    Returns:
        A Series aligned to ``frame.index``, an array-like, or a scalar.
        Callers decide how to broadcast.
    """
    if isinstance(value, Expression):
        return _evaluate_expression(value, frame)
    if isinstance(value, str):
        return frame.eval(value)
    if callable(value):
        return value(frame)
    return value


def _evaluate_expression(expr: Expression, frame: pd.DataFrame) -> Any:
    index = frame.index

    if isinstance(expr, VariableReference):
        if expr.name not in frame.columns:
            raise ColumnNotFoundError([expr.name])
        return frame[expr.name]

    if isinstance(expr, Literal):
        return np.nan if expr.value is None else expr.value

    if isinstance(expr, BinaryExpression):
        left = _evaluate_expression(expr.left, frame)
        right = _evaluate_expression(expr.right, frame)

        if expr.operator in _COMPARISONS:
            left = _as_series(left, index)
            right = _as_series(right, index)
            missing = left.isna() | right.isna()
            result = pd.Series(pd.NA, index=index, dtype="boolean")
            present = ~missing
            if present.any():
                compared = _COMPARISONS[expr.operator](left[present], right[present])
                result[present] = np.asarray(compared, dtype=bool)
            return result

        if expr.operator is BinaryOperator.AND:
            return _as_series(left, index).astype("boolean") & _as_series(right, index).astype("boolean")
        if expr.operator is BinaryOperator.OR:
            return _as_series(left, index).astype("boolean") | _as_series(right, index).astype("boolean")

        return _ARITHMETIC[expr.operator](left, right)

    if isinstance(expr, UnaryExpression):
        operand = _evaluate_expression(expr.operand, frame)
        if expr.operator is UnaryOperator.NOT:
            return ~_as_series(operand, index).astype("boolean")
        if expr.operator is UnaryOperator.NEGATE:
            return -operand
        if expr.operator is UnaryOperator.IS_MISSING:
            return _as_series(operand, index).isna()

    if isinstance(expr, FunctionCall):
        if expr.name == "n":
            return len(frame)
        if expr.name not in FUNCTIONS:
            raise ValueError(f"Unknown function in expression: {expr.name}()")
        args = [_evaluate_expression(arg, frame) for arg in expr.args]
        return FUNCTIONS[expr.name](*args)

    raise TypeError(f"Unsupported Expression type: {type(expr)}")


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

def render(expr: Expression) -> str:
    """Render an expression as readable text, e.g. ``y1 > 0``."""
    return _render(expr, top=True)


def _render(expr: Expression, top: bool = False) -> str:
    if isinstance(expr, BinaryExpression):
        text = f"{_render(expr.left)} {expr.operator.value} {_render(expr.right)}"
        return text if top else f"({text})"

    if isinstance(expr, VariableReference):
        return expr.name

    if isinstance(expr, Literal):
        if expr.value is None:
            return "NA"
        if isinstance(expr.value, str):
            return f'"{expr.value}"'
        return str(expr.value)

    if isinstance(expr, UnaryExpression):
        operand = _render(expr.operand)
        if expr.operator is UnaryOperator.IS_MISSING:
            return f"is_missing({_render(expr.operand, top=True)})"
        return f"{expr.operator.value}{operand}"

    if isinstance(expr, FunctionCall):
        args = ", ".join(_render(arg, top=True) for arg in expr.args)
        return f"{expr.name}({args})"

    return "?"


def describe(value: Any) -> str:
    """Short description of any computation accepted by evaluate()."""
    if isinstance(value, Expression):
        return render(value)
    if isinstance(value, str):
        return value
    if callable(value):
        return getattr(value, "__name__", type(value).__name__)
    return repr(value)


def referenced_columns(value: Any, columns: Iterable[str]) -> Set[str]:
    """
    Columns a computation reads.

    Expressions are walked exactly. Strings are scanned for identifiers
    that match existing columns. Callables are opaque and report nothing.
    """
    available = set(columns)
    found: Set[str] = set()

    if isinstance(value, Expression):
        stack = [value]
        while stack:
            node = stack.pop()
            if isinstance(node, VariableReference):
                found.add(node.name)
            elif isinstance(node, BinaryExpression):
                stack.extend([node.left, node.right])
            elif isinstance(node, UnaryExpression):
                stack.append(node.operand)
            elif isinstance(node, FunctionCall):
                stack.extend(node.args)
        return found & available

    if isinstance(value, str):
        for m in _IDENTIFIER_RE.finditer(value):
            if m.group(1) in available:
                found.add(m.group(1))

    return found

