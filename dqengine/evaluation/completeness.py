"""Completeness: target values must be present (not null, empty or blank)."""

from __future__ import annotations

import pandas as pd

from dqengine.datasets.dataset import Dataset
from dqengine.errors import InvalidParameterError
from dqengine.evaluation.base import (
    EvaluationContext,
    build_result,
    int_param,
    missing_mask,
    require_columns,
)
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition


def evaluate_completeness(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    """A row violates when at least ``minMissing`` of the target columns are missing.

    With the default ``minMissing`` of 1 every target column is mandatory;
    larger values flag rows that lack several critical fields at once.
    """
    columns = require_columns(rule, dataset)
    min_missing = int_param(rule, "minMissing", 1)
    if not 1 <= min_missing <= len(columns):
        raise InvalidParameterError(
            rule.id, f"minMissing must be between 1 and {len(columns)}, got {min_missing}"
        )

    frame = dataset.column_frame(columns)
    missing = pd.concat([missing_mask(frame[c]) for c in columns], axis=1)
    mask = missing.sum(axis=1) >= min_missing
    return build_result(rule, dataset, mask, context)
