"""Tests for the Dataset accessor and cell helpers."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from dqengine.datasets.dataset import ColumnType, Dataset
from dqengine.datasets.values import as_text, is_missing, is_null
from dqengine.errors import ColumnNotFoundError


class TestValues:
    def test_is_null(self):
        assert is_null(None)
        assert is_null(float("nan"))
        assert is_null(pd.NaT)
        assert not is_null("")
        assert not is_null(0)

    def test_is_missing(self):
        assert is_missing("")
        assert is_missing("   ")
        assert is_missing(None)
        assert not is_missing("x")

    def test_as_text(self):
        assert as_text(5.0) == "5"
        assert as_text(5.5) == "5.5"
        assert as_text(None) == ""
        assert as_text(pd.Timestamp("2024-01-31")) == "2024-01-31"


class TestShape:
    def test_row_count_and_columns(self, survey_dataset: Dataset):
        assert survey_dataset.row_count() == 4
        assert survey_dataset.columns == ["survey_id", "job_level", "country", "salary", "bonus"]
        assert survey_dataset.has_column("salary")
        assert not survey_dataset.has_column("nope")

    def test_unknown_key_column(self):
        with pytest.raises(ColumnNotFoundError):
            Dataset("t", pd.DataFrame({"a": [1]}), key_columns=["b"])

    def test_empty_dataset(self):
        ds = Dataset("t", pd.DataFrame({"a": []}))
        assert ds.row_count() == 0
        assert ds.rows_matching(lambda row: True) == []


class TestColumnAccess:
    def test_column_values_is_a_copy(self, survey_dataset: Dataset):
        values = survey_dataset.column_values("salary")
        values[:] = 0
        assert survey_dataset.column_values("salary").iloc[0] == 85000.0

    def test_source_frame_is_copied(self):
        frame = pd.DataFrame({"a": [1, 2]})
        ds = Dataset("t", frame)
        frame.loc[0, "a"] = 99
        assert ds.column_values("a").tolist() == [1, 2]

    def test_missing_column(self, survey_dataset: Dataset):
        with pytest.raises(ColumnNotFoundError) as exc_info:
            survey_dataset.column_values("bogus")
        assert exc_info.value.column == "bogus"
        assert exc_info.value.table == "survey"

    def test_column_types(self):
        ds = Dataset(
            "t",
            pd.DataFrame(
                {
                    "i": [1, 2],
                    "f": [1.5, None],
                    "s": ["a", "b"],
                    "d": pd.to_datetime(["2024-01-01", "2024-02-01"]),
                    "b": [True, False],
                }
            ),
        )
        assert ds.column_type("i") == ColumnType.INTEGER
        assert ds.column_type("f") == ColumnType.DECIMAL
        assert ds.column_type("s") == ColumnType.STRING
        assert ds.column_type("d") == ColumnType.DATE
        assert ds.column_type("b") == ColumnType.BOOLEAN

    def test_declared_type_wins(self):
        ds = Dataset("t", pd.DataFrame({"code": ["001", "002"]}), column_types={"code": "integer"})
        assert ds.column_type("code") == ColumnType.INTEGER


class TestAggregates:
    def test_grouped_mean(self, survey_dataset: Dataset):
        means = survey_dataset.grouped_aggregate(["country"], "salary", "mean")
        assert means["US"] == pytest.approx(102500.0)
        # GB has only a null salary
        assert "GB" not in means

    def test_grouped_quantile(self):
        ds = Dataset("t", pd.DataFrame({"g": ["a"] * 5, "v": [1, 2, 3, 4, 5]}))
        assert ds.grouped_aggregate(["g"], "v", ("quantile", 0.5)) == {"a": 3.0}

    def test_whole_table_group(self, survey_dataset: Dataset):
        counts = survey_dataset.grouped_aggregate([], "salary", "count")
        assert counts == {(): 3}

    def test_multi_column_keys_are_tuples(self, survey_dataset: Dataset):
        counts = survey_dataset.grouped_aggregate(["country", "job_level"], "salary", "count")
        assert counts[("US", "Mid")] == 1

    def test_unsupported_aggregate(self, survey_dataset: Dataset):
        with pytest.raises(ValueError):
            survey_dataset.grouped_aggregate(["country"], "salary", "mode")

    def test_group_keys_align_with_rows(self):
        ds = Dataset("t", pd.DataFrame({"g": ["a", None, "b"], "v": [1, 2, 3]}))
        keys = ds.group_keys(["g"])
        assert keys[0] == "a"
        assert is_null(keys[1])
        assert keys[2] == "b"


class TestRowIdentity:
    def test_keys_from_key_columns(self, survey_dataset: Dataset):
        mask = pd.Series([False, True, False, True])
        assert survey_dataset.rows_matching(mask) == ["2", "4"]

    def test_positional_keys_without_key_columns(self):
        ds = Dataset("t", pd.DataFrame({"a": [1, 2, 3]}))
        assert ds.rows_matching(lambda row: row["a"] > 1) == ["1", "2"]

    def test_composite_keys(self):
        ds = Dataset("t", pd.DataFrame({"a": [1, 2], "b": ["x", "y"]}), key_columns=["a", "b"])
        assert ds.row_key(1) == "2|y"

    def test_limit(self, survey_dataset: Dataset):
        assert survey_dataset.rows_matching(lambda row: True, limit=2) == ["1", "2"]


class TestChecksum:
    def test_stable_for_same_content(self):
        a = Dataset("a", pd.DataFrame({"x": [1, 2], "y": ["p", "q"]}))
        b = Dataset("b", pd.DataFrame({"x": [1, 2], "y": ["p", "q"]}))
        assert a.checksum() == b.checksum()
        assert a.checksum() == a.checksum()

    def test_changes_with_content(self):
        a = Dataset("a", pd.DataFrame({"x": [1, 2]}))
        b = Dataset("a", pd.DataFrame({"x": [1, 3]}))
        assert a.checksum() != b.checksum()

    def test_changes_with_column_names(self):
        a = Dataset("a", pd.DataFrame({"x": [1, 2]}))
        b = Dataset("a", pd.DataFrame({"z": [1, 2]}))
        assert a.checksum() != b.checksum()

    def test_nan_is_hashable(self):
        ds = Dataset("a", pd.DataFrame({"x": [1.0, np.nan]}))
        assert len(ds.checksum()) == 64
