"""Cell-level helpers shared by the dataset accessor and the evaluators."""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

import pandas as pd


def is_null(value: Any) -> bool:
    """True for None, NaN, NaT and pandas NA."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # list-like cells
        return False


def is_missing(value: Any) -> bool:
    """Null, empty string or whitespace-only string."""
    if is_null(value):
        return True
    return isinstance(value, str) and not value.strip()


def as_text(value: Any) -> str:
    """Render a cell for comparison or display; integral floats drop the '.0'."""
    if is_null(value):
        return ""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, pd.Timestamp):
        if value == value.normalize():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def to_number(series: pd.Series) -> pd.Series:
    """Coerce to float; unparseable values become NaN."""
    return pd.to_numeric(series, errors="coerce")


def to_datetime(series: pd.Series) -> pd.Series:
    """Coerce to naive timestamps; unparseable values become NaT."""
    converted = pd.to_datetime(series, errors="coerce", utc=True, format="mixed")
    return converted.dt.tz_localize(None)
