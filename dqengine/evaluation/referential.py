"""Referential integrity: values must exist in a reference table column."""

from __future__ import annotations

from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import as_text, is_missing
from dqengine.errors import TableNotFoundError
from dqengine.evaluation.base import (
    EvaluationContext,
    build_result,
    empty_mask,
    missing_mask,
    require_columns,
)
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition


def evaluate_referential(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    """A missing reference table is an ERROR, never a FAIL."""
    columns = require_columns(rule, dataset)
    ref_table = str(rule.param("referenceTable"))
    ref_column = str(rule.param("referenceColumn"))

    reference = context.datasets.get(ref_table)
    if reference is None:
        raise TableNotFoundError(ref_table)
    known = {as_text(v) for v in reference.column_values(ref_column) if not is_missing(v)}

    mask = empty_mask(dataset)
    for column in columns:
        values = dataset.column_values(column)
        mask |= ~missing_mask(values) & ~values.map(lambda v: as_text(v) in known).astype(bool)
    return build_result(rule, dataset, mask, context)
