"""Domain: values (or value combinations) must come from an allowed list."""

from __future__ import annotations

from typing import Any

from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import as_text, is_missing
from dqengine.errors import InvalidParameterError
from dqengine.evaluation.base import (
    EvaluationContext,
    bool_param,
    build_result,
    empty_mask,
    missing_mask,
    require_columns,
)
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition


def evaluate_domain(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    """Check ``allowedValues`` per column, or ``allowedCombinations`` across columns.

    Values are compared by their text rendering, so ``1`` and ``"1"`` match.
    Null values are left to completeness rules.
    """
    columns = require_columns(rule, dataset)
    case_sensitive = bool_param(rule, "caseSensitive", True)

    def norm(value: Any) -> str:
        text = as_text(value).strip()
        return text if case_sensitive else text.casefold()

    combinations = rule.param("allowedCombinations")
    if combinations is not None:
        return _evaluate_combinations(rule, dataset, context, columns, combinations, norm)

    allowed_values = rule.param("allowedValues")
    if not isinstance(allowed_values, (list, tuple)):
        raise InvalidParameterError(rule.id, "allowedValues must be a list")
    allowed = {norm(v) for v in allowed_values}

    mask = empty_mask(dataset)
    for column in columns:
        values = dataset.column_values(column)
        mask |= ~missing_mask(values) & ~values.map(lambda v: norm(v) in allowed).astype(bool)
    return build_result(rule, dataset, mask, context)


def _evaluate_combinations(rule, dataset, context, columns, combinations, norm):
    if not isinstance(combinations, (list, tuple)) or not all(
        isinstance(combo, (list, tuple)) and len(combo) == len(columns) for combo in combinations
    ):
        raise InvalidParameterError(
            rule.id,
            f"allowedCombinations must be a list of {len(columns)}-element lists",
        )
    allowed = {tuple(norm(v) for v in combo) for combo in combinations}

    frame = dataset.column_frame(columns)

    def violates(row) -> bool:
        if any(is_missing(v) for v in row):
            return False
        return tuple(norm(v) for v in row) not in allowed

    mask = empty_mask(dataset)
    if not frame.empty:
        mask = frame.apply(lambda row: violates(row.tolist()), axis=1).astype(bool)
    return build_result(rule, dataset, mask, context)
