"""Fixed mapping from rule category to its evaluator."""

from __future__ import annotations

from dqengine.evaluation.base import Evaluator
from dqengine.evaluation.completeness import evaluate_completeness
from dqengine.evaluation.cross_field import evaluate_cross_field, evaluate_mathematical
from dqengine.evaluation.domain import evaluate_domain
from dqengine.evaluation.format_check import evaluate_format
from dqengine.evaluation.outlier import evaluate_outlier
from dqengine.evaluation.range_check import evaluate_range
from dqengine.evaluation.referential import evaluate_referential
from dqengine.evaluation.temporal import evaluate_temporal
from dqengine.evaluation.uniqueness import evaluate_uniqueness
from dqengine.errors import UnknownCategoryError
from dqengine.models.rule import RuleCategory

EVALUATOR_REGISTRY: dict[RuleCategory, Evaluator] = {
    RuleCategory.COMPLETENESS: evaluate_completeness,
    RuleCategory.UNIQUENESS: evaluate_uniqueness,
    RuleCategory.RANGE: evaluate_range,
    RuleCategory.DOMAIN: evaluate_domain,
    RuleCategory.REFERENTIAL_INTEGRITY: evaluate_referential,
    RuleCategory.FORMAT: evaluate_format,
    RuleCategory.CROSS_FIELD_CONSISTENCY: evaluate_cross_field,
    RuleCategory.STATISTICAL_OUTLIER: evaluate_outlier,
    RuleCategory.TEMPORAL: evaluate_temporal,
    RuleCategory.MATHEMATICAL_CONSISTENCY: evaluate_mathematical,
}


def get_evaluator(category: RuleCategory | str) -> Evaluator:
    try:
        return EVALUATOR_REGISTRY[RuleCategory.parse(category)]
    except ValueError as exc:
        raise UnknownCategoryError(None, str(category)) from exc
