"""Format: values must match a regex and/or length constraints."""

from __future__ import annotations

import re

from dqengine.datasets.dataset import Dataset
from dqengine.datasets.values import as_text
from dqengine.errors import InvalidParameterError
from dqengine.evaluation.base import (
    EvaluationContext,
    build_result,
    empty_mask,
    int_param,
    missing_mask,
    require_columns,
)
from dqengine.models.report import EvaluationResult
from dqengine.models.rule import RuleDefinition

_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


def _compile(rule: RuleDefinition) -> re.Pattern[str] | None:
    pattern = rule.param("pattern")
    if pattern in (None, ""):
        return None
    flags = 0
    for letter in str(rule.param("flags", "")):
        if letter not in _FLAGS:
            raise InvalidParameterError(rule.id, f"unknown regex flag {letter!r}")
        flags |= _FLAGS[letter]
    try:
        return re.compile(str(pattern), flags)
    except re.error as exc:
        raise InvalidParameterError(rule.id, f"invalid pattern {pattern!r}: {exc}") from exc


def evaluate_format(
    rule: RuleDefinition, dataset: Dataset, context: EvaluationContext
) -> EvaluationResult:
    columns = require_columns(rule, dataset)
    regex = _compile(rule)
    length = int_param(rule, "length")
    min_length = int_param(rule, "minLength")
    max_length = int_param(rule, "maxLength")
    if min_length is not None and max_length is not None and min_length > max_length:
        raise InvalidParameterError(rule.id, "minLength is greater than maxLength")

    def violates(value) -> bool:
        text = as_text(value)
        if regex is not None and regex.fullmatch(text) is None:
            return True
        if length is not None and len(text) != length:
            return True
        if min_length is not None and len(text) < min_length:
            return True
        if max_length is not None and len(text) > max_length:
            return True
        return False

    mask = empty_mask(dataset)
    for column in columns:
        values = dataset.column_values(column)
        mask |= ~missing_mask(values) & values.map(violates).astype(bool)
    return build_result(rule, dataset, mask, context)
