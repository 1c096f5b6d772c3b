"""Shared plumbing for the per-category rule evaluators."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

import pandas as pd

from dqengine.config import Settings
from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import is_missing
from dqengine.errors import ColumnNotFoundError, InvalidParameterError
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class EvaluationContext:
    """Everything an evaluator may read besides the rule and its own dataset."""

    datasets: Mapping[str, Dataset] = field(default_factory=dict)
    now: datetime = field(default_factory=_utc_now)
    sample_limit: int = 20
    stddev_threshold: float = 3.0
    min_group_size: int = 10
    lower_percentile: float = 5.0
    upper_percentile: float = 95.0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        datasets: Mapping[str, Dataset],
        now: datetime | None = None,
    ) -> "EvaluationContext":
        return cls(
            datasets=datasets,
            now=now or _utc_now(),
            sample_limit=settings.sample_limit,
            stddev_threshold=settings.outlier_stddev_threshold,
            min_group_size=settings.outlier_min_group_size,
            lower_percentile=settings.outlier_lower_percentile,
            upper_percentile=settings.outlier_upper_percentile,
        )

    @property
    def now_timestamp(self) -> pd.Timestamp:
        ts = pd.Timestamp(self.now)
        if ts.tzinfo is not None:
            ts = ts.tz_convert("UTC").tz_localize(None)
        return ts


Evaluator = Callable[[RuleDefinition, Dataset, EvaluationContext], EvaluationResult]


def missing_mask(series: pd.Series) -> pd.Series:
    return series.map(is_missing).astype(bool)


def build_result(
    rule: RuleDefinition,
    dataset: Dataset,
    mask: pd.Series,
    context: EvaluationContext,
) -> EvaluationResult:
    """Turn a row-aligned violation mask into a result over the full row count."""
    mask = mask.fillna(False).astype(bool)
    return EvaluationResult.for_rule(
        rule,
        violation_count=int(mask.sum()),
        total_rows=dataset.row_count(),
        sample_keys=dataset.rows_matching(mask, limit=context.sample_limit),
    )


def empty_mask(dataset: Dataset) -> pd.Series:
    return pd.Series([False] * dataset.row_count(), dtype=bool)


def require_columns(rule: RuleDefinition, dataset: Dataset, count: int | None = None) -> list[str]:
    """Check the rule's target columns exist; ``count`` pins how many it must name."""
    columns = list(rule.target_columns)
    if count is not None and len(columns) != count:
        raise InvalidParameterError(
            rule.id, f"{rule.category.value} takes {count} target column(s), got {len(columns)}"
        )
    for column in columns:
        if not dataset.has_column(column):
            raise ColumnNotFoundError(dataset.name, column)
    return columns


# ── Parameter coercion ───────────────────────────────────────────────────────


def number_param(rule: RuleDefinition, key: str, default: float | None = None) -> float | None:
    value = rule.param(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidParameterError(rule.id, f"{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(rule.id, f"{key} must be a number, got {value!r}") from None


def int_param(rule: RuleDefinition, key: str, default: int | None = None) -> int | None:
    number = number_param(rule, key, None)
    if number is None:
        return default
    if not number.is_integer():
        raise InvalidParameterError(rule.id, f"{key} must be a whole number, got {number!r}")
    return int(number)


def bool_param(rule: RuleDefinition, key: str, default: bool) -> bool:
    value = rule.param(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "yes", "1"):
        return True
    if text in ("false", "no", "0"):
        return False
    raise InvalidParameterError(rule.id, f"{key} must be true or false, got {value!r}")


def list_param(rule: RuleDefinition, key: str) -> list[Any] | None:
    value = rule.param(key)
    if value is None:
        return None
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise InvalidParameterError(rule.id, f"{key} must be a list, got {value!r}")
    return list(value)
