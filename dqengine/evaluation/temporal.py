"""Temporal: date ordering between columns, or plausibility of a single date."""

from __future__ import annotations

import pandas as pd

from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import to_datetime
from dqengine.errors import InvalidParameterError
from dqengine.evaluation.base import (
    EvaluationContext,
    bool_param,
    build_result,
    empty_mask,
    int_param,
    missing_mask,
    require_columns,
)
from dqengine.evaluation.cross_field import compare_columns, parse_operator
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition


def evaluate_temporal(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    """Two columns: ``first <operator> second`` as dates (default ``>=``).

    One column: the date must parse, must not lie after the evaluation time
    unless ``allowFuture`` is set, and must not be older than ``maxAgeYears``.
    """
    if len(rule.target_columns) >= 2:
        op = parse_operator(rule, rule.param("operator", ">="))
        return compare_columns(rule, dataset, context, op=op, kind="date")

    (column,) = require_columns(rule, dataset, count=1)
    allow_future = bool_param(rule, "allowFuture", False)
    max_age_years = int_param(rule, "maxAgeYears")
    if max_age_years is not None and max_age_years <= 0:
        raise InvalidParameterError(rule.id, "maxAgeYears must be positive")

    raw = dataset.column_values(column)
    present = ~missing_mask(raw)
    dates = to_datetime(raw)
    now = context.now_timestamp

    mask = empty_mask(dataset) | (present & dates.isna())
    if not allow_future:
        mask |= present & (dates > now)
    if max_age_years is not None:
        cutoff = now - pd.DateOffset(years=max_age_years)
        mask |= present & (dates < cutoff)
    return build_result(rule, dataset, mask, context)
