"""Range: numeric values must fall within [min, max]."""

from __future__ import annotations

from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import to_number
from dqengine.errors import InvalidParameterError
from dqengine.evaluation.base import (
    EvaluationContext,
    bool_param,
    build_result,
    empty_mask,
    missing_mask,
    number_param,
    require_columns,
)
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition


def evaluate_range(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    columns = require_columns(rule, dataset)
    low = number_param(rule, "min")
    high = number_param(rule, "max")
    inclusive = bool_param(rule, "inclusive", True)
    if low is None and high is None:
        raise InvalidParameterError(rule.id, "Range needs min or max")
    if low is not None and high is not None and low > high:
        raise InvalidParameterError(rule.id, f"min ({low:g}) is greater than max ({high:g})")

    mask = empty_mask(dataset)
    for column in columns:
        raw = dataset.column_values(column)
        present = ~missing_mask(raw)
        numbers = to_number(raw)

        # Present but not a number is out of range too
        bad = numbers.isna()
        if low is not None:
            bad |= (numbers < low) if inclusive else (numbers <= low)
        if high is not None:
            bad |= (numbers > high) if inclusive else (numbers >= high)
        mask |= present & bad

    return build_result(rule, dataset, mask, context)
