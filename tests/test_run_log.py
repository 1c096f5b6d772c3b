"""Tests for the run log (SQLite-backed)."""

from __future__ import annotations

import json
import sqlite3

import pytest

from conftest import make_rule
from dqengine.audit.run_log import RunLog
from dqengine.models.report import EvaluationReport, EvaluationResult


@pytest.fixture
def run_log(tmp_path) -> RunLog:
    return RunLog(tmp_path / "logs" / "test_run_log.db")


@pytest.fixture
def sample_report() -> EvaluationReport:
    return EvaluationReport(
        report_id="run-1",
        catalog_name="Survey checks",
        catalog_version="2.0",
        results=[
            EvaluationResult.for_rule(make_rule("Uniqueness", "id", rule_id="U1"), 2, 4, ["2 (2 rows)"]),
            EvaluationResult.for_rule(make_rule("Range", "v", rule_id="R1", severity="LOW", min=0), 0, 4, []),
            EvaluationResult.error(make_rule("Completeness", "x", rule_id="C1"), "boom"),
        ],
    )


class TestRunLog:
    def test_init_creates_db(self, tmp_path):
        db_path = tmp_path / "new_run_log.db"
        RunLog(db_path)
        assert db_path.exists()

    def test_init_creates_parent_dirs(self, tmp_path):
        db_path = tmp_path / "nested" / "deep" / "run_log.db"
        RunLog(db_path)
        assert db_path.exists()

    def test_log_run(self, run_log: RunLog, sample_report: EvaluationReport):
        run_id = run_log.log_run(sample_report, source="data/samples", user="tester", processing_time=1.5)
        record = run_log.get_run("run-1")

        assert record["run_id"] == run_id
        assert record["catalog_name"] == "Survey checks"
        assert record["total_rules"] == 3
        assert record["passed"] == 1
        assert record["failed"] == 1
        assert record["errors"] == 1
        assert record["total_violations"] == 2
        assert record["overall_status"] == "FAIL"
        assert record["user_id"] == "tester"
        assert record["source"] == "data/samples"

    def test_results_in_catalog_order(self, run_log: RunLog, sample_report: EvaluationReport):
        run_log.log_run(sample_report)
        results = run_log.query_results("run-1")
        assert [r["rule_id"] for r in results] == ["U1", "R1", "C1"]
        assert results[0]["violation_percentage"] == 50.0
        assert results[2]["error_message"] == "boom"

    def test_query_recent(self, run_log: RunLog, sample_report: EvaluationReport):
        for i in range(5):
            run_log.log_run(sample_report.model_copy(update={"report_id": f"run-{i + 10}"}))

        recent = run_log.query_recent(limit=3)
        assert len(recent) == 3
        assert "report_json" not in recent[0]

    def test_query_by_rule(self, run_log: RunLog, sample_report: EvaluationReport):
        run_log.log_run(sample_report)
        run_log.log_run(sample_report.model_copy(update={"report_id": "run-2"}))
        history = run_log.query_by_rule("U1")
        assert len(history) == 2
        assert {h["report_id"] for h in history} == {"run-1", "run-2"}

    def test_same_report_logged_once(self, run_log: RunLog, sample_report: EvaluationReport):
        run_log.log_run(sample_report)
        with pytest.raises(sqlite3.IntegrityError):
            run_log.log_run(sample_report)

    def test_empty_query(self, run_log: RunLog):
        assert run_log.get_run("nonexistent") is None
        assert run_log.query_results("nonexistent") == []

    def test_report_json_roundtrip(self, run_log: RunLog, sample_report: EvaluationReport):
        run_log.log_run(sample_report)
        parsed = json.loads(run_log.get_run("run-1")["report_json"])
        assert parsed["catalog_version"] == "2.0"
        assert parsed["results"][0]["sample_violating_keys"] == ["2 (2 rows)"]
