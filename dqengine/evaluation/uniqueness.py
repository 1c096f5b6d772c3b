"""Uniqueness: no two rows may share the same target key."""

from __future__ import annotations

from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import as_text
from dqengine.evaluation.base import EvaluationContext, require_columns
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition


def evaluate_uniqueness(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    """Every row in a duplicated key group counts as a violation.

    Rows with a null key component are never grouped. Samples name the
    offending keys with their group sizes, in first-seen order.
    """
    columns = require_columns(rule, dataset)
    frame = dataset.column_frame(columns)
    complete = ~frame.isna().any(axis=1)
    keyed = frame[complete]

    duplicated = keyed.duplicated(subset=columns, keep=False)
    violation_count = int(duplicated.sum())

    sizes = keyed[duplicated].groupby(columns, sort=False).size()
    samples: list[str] = []
    for key, size in sizes.items():
        if len(samples) >= context.sample_limit:
            break
        parts = key if isinstance(key, tuple) else (key,)
        samples.append(f"{'|'.join(as_text(p) for p in parts)} ({int(size)} rows)")

    return EvaluationResult.for_rule(
        rule,
        violation_count=violation_count,
        total_rows=dataset.row_count(),
        sample_keys=samples,
    )
