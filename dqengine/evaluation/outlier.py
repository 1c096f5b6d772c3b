"""Statistical outliers within groups (stddev, percentile or mean-ratio fences)."""

from __future__ import annotations

from typing import Any

from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import to_number
from dqengine.errors import InvalidParameterError
from dqengine.evaluation.base import (
    EvaluationContext,
    build_result,
    int_param,
    list_param,
    number_param,
    require_columns,
)
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition

METHODS = ("stddev", "percentile", "mean_ratio")

Fences = dict[Any, tuple[float | None, float | None]]


def _stddev_fences(rule, dataset, context, group_by, column, groups) -> Fences:
    k = number_param(rule, "stdDevThreshold", context.stddev_threshold)
    if k <= 0:
        raise InvalidParameterError(rule.id, "stdDevThreshold must be positive")
    means = dataset.grouped_aggregate(group_by, column, "mean")
    stds = dataset.grouped_aggregate(group_by, column, "std")
    return {g: (means[g] - k * stds[g], means[g] + k * stds[g]) for g in groups}


def _percentile_fences(rule, dataset, context, group_by, column, groups) -> Fences:
    lower = number_param(rule, "lowerPercentile", context.lower_percentile)
    upper = number_param(rule, "upperPercentile", context.upper_percentile)
    if not 0 <= lower < upper <= 100:
        raise InvalidParameterError(
            rule.id, f"percentiles must satisfy 0 <= lower < upper <= 100, got {lower:g}/{upper:g}"
        )
    lows = dataset.grouped_aggregate(group_by, column, ("quantile", lower / 100.0))
    highs = dataset.grouped_aggregate(group_by, column, ("quantile", upper / 100.0))
    return {g: (lows[g], highs[g]) for g in groups}


def _mean_ratio_fences(rule, dataset, context, group_by, column, groups) -> Fences:
    lower = number_param(rule, "lowerRatio")
    upper = number_param(rule, "upperRatio")
    if lower is None and upper is None:
        raise InvalidParameterError(rule.id, "mean_ratio needs lowerRatio or upperRatio")
    means = dataset.grouped_aggregate(group_by, column, "mean")
    return {
        g: (
            means[g] * lower if lower is not None else None,
            means[g] * upper if upper is not None else None,
        )
        for g in groups
    }


_FENCES = {
    "stddev": _stddev_fences,
    "percentile": _percentile_fences,
    "mean_ratio": _mean_ratio_fences,
}


def evaluate_outlier(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    """Flag values outside their group's fences.

    Groups with fewer than ``minGroupSize`` numeric values produce no
    violations. An empty ``groupByColumns`` treats the table as one group.
    """
    (column,) = require_columns(rule, dataset, count=1)
    group_by = [str(c) for c in (list_param(rule, "groupByColumns") or [])]
    min_group_size = int_param(rule, "minGroupSize", context.min_group_size)
    if min_group_size < 1:
        raise InvalidParameterError(rule.id, "minGroupSize must be at least 1")
    method = str(rule.param("method", "stddev")).strip().lower()
    if method not in _FENCES:
        raise InvalidParameterError(rule.id, f"method must be one of {', '.join(METHODS)}")

    counts = dataset.grouped_aggregate(group_by, column, "count")
    groups = [g for g, n in counts.items() if n >= min_group_size]
    fences = _FENCES[method](rule, dataset, context, group_by, column, groups)

    keys = dataset.group_keys(group_by)
    no_fence = (None, None)

    def bound(index: int):
        return keys.map(lambda k: fences.get(k, no_fence)[index] if k is not None else None)

    lower = bound(0).astype(float)
    upper = bound(1).astype(float)

    values = to_number(dataset.column_values(column))
    mask = values.notna() & ((values < lower) | (values > upper))
    return build_result(rule, dataset, mask, context)
