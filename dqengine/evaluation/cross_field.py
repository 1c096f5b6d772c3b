"""Cross-field and mathematical consistency between columns of the same row.

Both categories share one comparison core: the first target column is the
left-hand side, the remaining columns are summed (times ``factor``, plus
``offset``) into the right-hand side. Rows where any referenced column is
null are not checked.
"""

from __future__ import annotations

import operator
from typing import Any, Callable

import pandas as pd

from dqengine.datasets.dataset import ColumnType, Dataset
from dqengine.datasets.values import as_text, is_missing, to_datetime, to_number
from dqengine.errors import InvalidParameterError
from dqengine.evaluation.base import (
    EvaluationContext,
    bool_param,
    build_result,
    missing_mask,
    number_param,
    require_columns,
)
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition

OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}
_OPERATOR_ALIASES = {"=": "==", "<>": "!=", "eq": "==", "ne": "!=", "lt": "<", "le": "<=", "gt": ">", "ge": ">="}

# Absorbs binary float noise in sums such as 0.1 + 0.2
_FLOAT_SLACK = 1e-9
# Direction in which the slack widens each ordered comparison
_SLACK_SIGN = {"<": -1, "<=": 1, ">": 1, ">=": -1}

_KINDS = ("number", "date", "text")


def parse_operator(rule: RuleDefinition, symbol: Any) -> str:
    text = str(symbol).strip()
    text = _OPERATOR_ALIASES.get(text.lower(), text)
    if text not in OPERATORS:
        raise InvalidParameterError(rule.id, f"unknown operator {symbol!r}")
    return text


def _condition_mask(rule: RuleDefinition, dataset: Dataset) -> pd.Series:
    """Rows selected by the optional ``when`` clause; all rows when absent."""
    when = rule.param("when")
    if when is None:
        return pd.Series([True] * dataset.row_count(), dtype=bool)
    if not isinstance(when, dict) or "column" not in when:
        raise InvalidParameterError(rule.id, "when must be an object with a 'column' key")

    values = dataset.column_values(str(when["column"]))
    if "equals" in when:
        accepted = {as_text(when["equals"])}
    elif "in" in when and isinstance(when["in"], (list, tuple)):
        accepted = {as_text(v) for v in when["in"]}
    else:
        raise InvalidParameterError(rule.id, "when needs 'equals' or an 'in' list")

    return values.map(lambda v: not is_missing(v) and as_text(v) in accepted).astype(bool)


def _infer_kind(dataset: Dataset, frame: pd.DataFrame) -> str:
    types = {dataset.column_type(c) for c in frame.columns}
    if types <= {ColumnType.INTEGER, ColumnType.DECIMAL}:
        return "number"
    if ColumnType.DATE in types:
        return "date"
    present = [frame[c][~missing_mask(frame[c])] for c in frame.columns]
    if all(to_number(values).notna().all() for values in present):
        return "number"
    # Dates read from csv or xlsx arrive as strings
    if any(len(values) for values in present) and all(
        to_datetime(values).notna().all() for values in present
    ):
        return "date"
    return "text"


def compare_columns(
    rule: RuleDefinition,
    dataset: Dataset,
    context: EvaluationContext,
    op: str,
    tolerance: float = 0.0,
    kind: str | None = None,
    null_as_zero: bool = False,
) -> EvaluationResult:
    """Evaluate ``left <op> factor * sum(rest) + offset`` row by row.

    With a single target column the right-hand side is the constant
    ``value`` parameter instead, which suits conditional thresholds.
    """
    columns = require_columns(rule, dataset)
    constant = number_param(rule, "value") if len(columns) == 1 else None
    if len(columns) < 2 and constant is None:
        raise InvalidParameterError(rule.id, "needs two target columns or a numeric value")
    if tolerance < 0:
        raise InvalidParameterError(rule.id, "toleranceAbsolute must not be negative")

    frame = dataset.column_frame(columns)
    selected = _condition_mask(rule, dataset)
    if constant is not None:
        kind = "number"
    kind = kind or _infer_kind(dataset, frame)
    compare = OPERATORS[op]
    left_col, right_cols = columns[0], columns[1:]

    if kind == "number":
        factor = number_param(rule, "factor", 1.0)
        offset = number_param(rule, "offset", 0.0)
        left = to_number(frame[left_col])
        if right_cols:
            parts = frame[right_cols].apply(to_number)
        else:
            parts = pd.DataFrame(index=frame.index)
        if null_as_zero:
            parts = parts.fillna(0.0)
        present = left.notna() & parts.notna().all(axis=1)
        if constant is not None:
            right = pd.Series(constant, index=frame.index, dtype=float)
        else:
            right = parts.sum(axis=1) * factor + offset
        diff = (left - right).abs()
        if op == "==":
            ok = diff <= tolerance + _FLOAT_SLACK
        elif op == "!=":
            ok = diff > tolerance + _FLOAT_SLACK
        else:
            ok = compare(left, right + _SLACK_SIGN[op] * _FLOAT_SLACK)
    elif kind in ("date", "text"):
        if len(columns) != 2:
            raise InvalidParameterError(rule.id, f"{kind} comparisons take exactly two columns")
        if kind == "date":
            left = to_datetime(frame[left_col])
            right = to_datetime(frame[right_cols[0]])
            present = left.notna() & right.notna()
        else:
            left = frame[left_col].map(as_text)
            right = frame[right_cols[0]].map(as_text)
            present = ~missing_mask(frame[left_col]) & ~missing_mask(frame[right_cols[0]])
        ok = compare(left, right)
    else:
        raise InvalidParameterError(rule.id, f"compareAs must be one of {', '.join(_KINDS)}")

    mask = selected & present & ~ok.astype(bool)
    return build_result(rule, dataset, mask, context)


def evaluate_cross_field(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    op = parse_operator(rule, rule.param("operator"))
    kind = rule.param("compareAs")
    return compare_columns(
        rule,
        dataset,
        context,
        op=op,
        tolerance=number_param(rule, "toleranceAbsolute", 0.0),
        kind=str(kind).strip().lower() if kind else None,
    )


def evaluate_mathematical(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    """``targetColumns[0]`` must equal the sum of the other columns, within tolerance."""
    op = parse_operator(rule, rule.param("operator", "=="))
    return compare_columns(
        rule,
        dataset,
        context,
        op=op,
        tolerance=number_param(rule, "toleranceAbsolute", 0.0),
        kind="number",
        null_as_zero=bool_param(rule, "nullAsZero", False),
    )
