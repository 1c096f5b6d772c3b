"""Read-only tabular dataset accessor backed by a pandas DataFrame."""

from __future__ import annotations

import hashlib
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence

import pandas as pd
from pandas.api import types as ptypes

from dqengine.datasets.values import as_text
from dqengine.errors import ColumnNotFoundError


class ColumnType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    BOOLEAN = "boolean"


Aggregate = str | tuple[str, float] | Callable[[pd.Series], Any]

_NAMED_AGGREGATES = {"count", "mean", "std", "min", "max", "median"}


class Dataset:
    """One logical table. The wrapped frame is copied on the way in and never exposed.

    Row identity comes from ``key_columns`` when given, otherwise from the
    row position; it is only used to label sample violations.
    """

    def __init__(
        self,
        name: str,
        frame: pd.DataFrame,
        key_columns: Sequence[str] | None = None,
        column_types: Mapping[str, ColumnType | str] | None = None,
    ) -> None:
        self._name = name
        self._frame = frame.reset_index(drop=True).copy(deep=True)
        self._frame.columns = [str(c) for c in self._frame.columns]

        self._key_columns = list(key_columns or [])
        for column in self._key_columns:
            self._require(column)

        self._column_types: dict[str, ColumnType] = {}
        for column, declared in (column_types or {}).items():
            self._require(column)
            self._column_types[column] = ColumnType(declared)

    @classmethod
    def from_records(
        cls,
        name: str,
        records: Iterable[Mapping[str, Any]],
        key_columns: Sequence[str] | None = None,
        column_types: Mapping[str, ColumnType | str] | None = None,
        columns: Sequence[str] | None = None,
    ) -> "Dataset":
        frame = pd.DataFrame.from_records(list(records), columns=columns)
        return cls(name, frame, key_columns=key_columns, column_types=column_types)

    # ── Shape ────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def key_columns(self) -> list[str]:
        return list(self._key_columns)

    @property
    def columns(self) -> list[str]:
        return list(self._frame.columns)

    def has_column(self, column: str) -> bool:
        return column in self._frame.columns

    def _require(self, column: str) -> None:
        if column not in self._frame.columns:
            raise ColumnNotFoundError(self._name, column)

    def row_count(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        return f"Dataset(name={self._name!r}, rows={len(self._frame)}, columns={self.columns})"

    # ── Column access ────────────────────────────────────────────

    def column_values(self, column: str) -> pd.Series:
        """Return a copy of one column; safe to iterate as often as needed."""
        self._require(column)
        return self._frame[column].copy()

    def column_frame(self, columns: Sequence[str]) -> pd.DataFrame:
        """Return a copy of several columns, in the order given."""
        for column in columns:
            self._require(column)
        return self._frame[list(columns)].copy()

    def column_type(self, column: str) -> ColumnType:
        self._require(column)
        if column in self._column_types:
            return self._column_types[column]

        series = self._frame[column]
        if ptypes.is_bool_dtype(series):
            return ColumnType.BOOLEAN
        if ptypes.is_integer_dtype(series):
            return ColumnType.INTEGER
        if ptypes.is_float_dtype(series):
            return ColumnType.DECIMAL
        if ptypes.is_datetime64_any_dtype(series):
            return ColumnType.DATE

        values = series.dropna()
        if len(values) and all(isinstance(v, (date, datetime)) for v in values):
            return ColumnType.DATE
        if len(values) and all(isinstance(v, bool) for v in values):
            return ColumnType.BOOLEAN
        return ColumnType.STRING

    # ── Aggregates ───────────────────────────────────────────────

    def grouped_aggregate(
        self,
        group_by: Sequence[str],
        target: str,
        aggregate: Aggregate,
    ) -> dict[Any, Any]:
        """Aggregate ``target`` per group of ``group_by``.

        Rows with a null group key or a null / non-numeric target are left out.
        Keys are scalars for a single group column, tuples for several, and
        ``()`` when ``group_by`` is empty (the whole table is one group).
        """
        group_by = list(group_by)
        for column in (*group_by, target):
            self._require(column)

        values = pd.to_numeric(self._frame[target], errors="coerce")
        subset = self._frame[group_by].assign(__target__=values).dropna()

        if not group_by:
            grouped_series = subset["__target__"]
            return {(): self._apply_aggregate(grouped_series, aggregate)}

        grouped = subset.groupby(group_by, sort=False, dropna=True)["__target__"]
        if callable(aggregate):
            result = grouped.agg(aggregate)
        elif isinstance(aggregate, tuple) and aggregate[0] == "quantile":
            result = grouped.quantile(float(aggregate[1]))
        elif aggregate in _NAMED_AGGREGATES:
            result = getattr(grouped, aggregate)()
        else:
            raise ValueError(f"Unsupported aggregate: {aggregate!r}")
        return result.to_dict()

    @staticmethod
    def _apply_aggregate(series: pd.Series, aggregate: Aggregate) -> Any:
        if callable(aggregate):
            return aggregate(series)
        if isinstance(aggregate, tuple) and aggregate[0] == "quantile":
            return series.quantile(float(aggregate[1]))
        if aggregate in _NAMED_AGGREGATES:
            return getattr(series, aggregate)()
        raise ValueError(f"Unsupported aggregate: {aggregate!r}")

    def group_keys(self, group_by: Sequence[str]) -> pd.Series:
        """Row-aligned group keys matching ``grouped_aggregate``; None where a key is null."""
        group_by = list(group_by)
        if not group_by:
            return pd.Series([()] * len(self._frame), index=self._frame.index, dtype=object)

        subset = self.column_frame(group_by)
        null_rows = subset.isna().any(axis=1)
        if len(group_by) == 1:
            keys = subset[group_by[0]].astype(object)
        else:
            keys = pd.Series(
                list(subset.itertuples(index=False, name=None)),
                index=subset.index,
                dtype=object,
            )
        return keys.where(~null_rows, None)

    # ── Row identity ─────────────────────────────────────────────

    def row_key(self, position: int) -> str:
        if not self._key_columns:
            return str(position)
        row = self._frame.iloc[position]
        return "|".join(as_text(row[c]) for c in self._key_columns)

    def rows_matching(
        self,
        predicate: pd.Series | Callable[[dict[str, Any]], bool],
        limit: int | None = None,
    ) -> list[str]:
        """Return keys of rows for which the predicate holds, in row order."""
        if isinstance(predicate, pd.Series):
            mask = predicate.reindex(self._frame.index, fill_value=False).fillna(False)
            flags = [bool(f) for f in mask.tolist()]
        else:
            flags = [bool(predicate(row)) for row in self._frame.to_dict("records")]

        keys: list[str] = []
        for position, flag in enumerate(flags):
            if not flag:
                continue
            if limit is not None and len(keys) >= limit:
                break
            keys.append(self.row_key(position))
        return keys

    def checksum(self) -> str:
        """SHA-256 over column names and cell contents."""
        digest = hashlib.sha256()
        digest.update("\x1f".join(self._frame.columns).encode("utf-8"))
        hashed = pd.util.hash_pandas_object(self._frame, index=True)
        digest.update(hashed.to_numpy().tobytes())
        return digest.hexdigest()
