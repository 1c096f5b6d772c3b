"""Tests for the markdown, JSON and JUnit report serializers."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest

from conftest import make_rule
from dqengine.models.report import EvaluationReport, EvaluationResult
from dqengine.reporting.json_reporter import build_summary, render_json
from dqengine.reporting.junit_reporter import render_junit
from dqengine.reporting.markdown_reporter import RESULT_COLUMNS, render_markdown
from dqengine.reporting.writer import (
    find_report,
    format_for_path,
    normalise_format,
    render_report,
    write_report,
    write_reports,
)


@pytest.fixture
def sample_report() -> EvaluationReport:
    return EvaluationReport(
        report_id="abc123",
        generated_at=datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc),
        catalog_name="Survey checks",
        catalog_version="2.0",
        results=[
            EvaluationResult.for_rule(
                make_rule("Uniqueness", "survey_id", table="survey", rule_id="META-003"),
                2,
                12,
                ["11 (2 rows)"],
            ),
            EvaluationResult.for_rule(
                make_rule("Range", "years", table="survey", rule_id="JOB-003", severity="MEDIUM", min=0),
                0,
                12,
                [],
            ),
            EvaluationResult.error(
                make_rule("Completeness", "x", table="ghost", rule_id="GHOST-1", severity="LOW"),
                "Table not found: 'ghost'",
            ),
        ],
    )


class TestMarkdown:
    def test_header_and_table(self, sample_report):
        md = render_markdown(sample_report)
        assert md.startswith("# Data Quality Report: Survey checks")
        assert "| " + " | ".join(RESULT_COLUMNS) + " |" in md
        assert "| META-003 | Uniqueness | HIGH | 2 | 12 | 16.67 | FAIL | 11 (2 rows) |" in md
        assert "| JOB-003 | Range | MEDIUM | 0 | 12 | 0.00 | PASS |  |" in md

    def test_error_rows_show_message(self, sample_report):
        md = render_markdown(sample_report)
        assert "| GHOST-1 | Completeness | LOW | 0 | 0 | 0.00 | ERROR | Table not found: 'ghost' |" in md
        assert "## Errors" in md

    def test_summary_sections(self, sample_report):
        md = render_markdown(sample_report)
        assert "## Summary by category" in md
        assert "- FAIL: 1" in md
        assert "- HIGH: 1" in md
        assert "**Overall status:** FAIL" in md

    def test_pipes_are_escaped(self):
        report = EvaluationReport(
            results=[
                EvaluationResult.for_rule(make_rule("Uniqueness", ["a", "b"]), 2, 2, ["x|y (2 rows)"])
            ]
        )
        assert "x\\|y (2 rows)" in render_markdown(report)

    def test_severity_and_top_issue_sections(self, sample_report):
        md = render_markdown(sample_report)
        assert "## Summary by severity" in md
        assert "| HIGH | 1 | 1 | 2 | 16.67 |" in md
        assert "| MEDIUM | 1 | 0 | 0 | 0.00 |" in md
        assert md.index("| HIGH | 1 |") < md.index("| MEDIUM | 1 |") < md.index("| LOW | 1 |")
        assert "## Top issues" in md
        assert "| META-003 | Uniqueness | HIGH | 2 | 16.67 |" in md


class TestSeverityOrdering:
    @pytest.fixture
    def report(self) -> EvaluationReport:
        def failing(rule_id, severity, violations):
            rule = make_rule("Completeness", "x", rule_id=rule_id, severity=severity)
            return EvaluationResult.for_rule(rule, violations, 100, [])

        return EvaluationReport(
            results=[
                failing("LOW-BIG", "LOW", 90),
                failing("HIGH-SMALL", "HIGH", 5),
                failing("MED", "MEDIUM", 40),
                failing("HIGH-BIG", "HIGH", 30),
                failing("OK", "HIGH", 0),
            ]
        )

    def test_severity_summary(self, report):
        summary = report.severity_summary
        assert [s.severity.value for s in summary] == ["HIGH", "MEDIUM", "LOW"]
        assert summary[0].rules == 3
        assert summary[0].failed == 2
        assert summary[0].total_violations == 35
        assert summary[0].avg_violation_percentage == 11.67

    def test_top_issues(self, report):
        assert [r.rule_id for r in report.top_issues()] == ["HIGH-BIG", "HIGH-SMALL", "MED", "LOW-BIG"]
        assert [r.rule_id for r in report.top_issues(limit=2)] == ["HIGH-BIG", "HIGH-SMALL"]

    def test_summary_includes_severity_views(self, report):
        summary = build_summary(report)
        assert summary["severity_summary"][0]["severity"] == "HIGH"
        assert [i["rule_id"] for i in summary["top_issues"]][:2] == ["HIGH-BIG", "HIGH-SMALL"]


class TestJson:
    def test_round_trips_report_fields(self, sample_report):
        data = json.loads(render_json(sample_report))
        assert data["report_id"] == "abc123"
        assert data["overall_status"] == "FAIL"
        assert [r["rule_id"] for r in data["results"]] == ["META-003", "JOB-003", "GHOST-1"]
        assert data["results"][0]["violation_percentage"] == 16.67
        assert data["results"][2]["error_message"] == "Table not found: 'ghost'"

    def test_summary(self, sample_report):
        summary = build_summary(sample_report)
        assert summary["total_rules"] == 3
        assert summary["status_counts"] == {"PASS": 1, "FAIL": 1, "ERROR": 1}
        assert summary["total_violations"] == 2
        assert [r["rule_id"] for r in summary["failing_rules"]] == ["META-003", "GHOST-1"]


class TestJunit:
    def test_structure(self, sample_report):
        root = ET.fromstring(render_junit(sample_report).split("\n", 1)[1])
        assert root.tag == "testsuites"
        assert root.get("tests") == "3"
        assert root.get("failures") == "1"
        assert root.get("errors") == "1"

        cases = root.findall("./testsuite/testcase")
        assert [c.get("classname") for c in cases] == [
            "dq.survey.Uniqueness",
            "dq.survey.Range",
            "dq.ghost.Completeness",
        ]
        failure = cases[0].find("failure")
        assert failure.get("type") == "HIGH"
        assert "2 of 12 rows" in failure.get("message")
        assert cases[1].find("failure") is None
        assert cases[2].find("error") is not None

    def test_properties(self, sample_report):
        root = ET.fromstring(render_junit(sample_report).split("\n", 1)[1])
        props = {p.get("name"): p.get("value") for p in root.iter("property")}
        assert props["overall_status"] == "FAIL"
        assert props["catalog_version"] == "2.0"


class TestWriter:
    def test_normalise_format(self):
        assert normalise_format("Markdown") == "md"
        assert normalise_format(".json") == "json"
        assert normalise_format("xml") == "junit"
        with pytest.raises(ValueError):
            normalise_format("pdf")

    def test_format_for_path(self):
        assert format_for_path("out/report.xml") == "junit"
        assert format_for_path("out/report") == "md"

    def test_render_report_dispatch(self, sample_report):
        assert render_report(sample_report, "json").startswith("{")
        assert render_report(sample_report, "junit").startswith("<?xml")

    def test_write_to_directory(self, sample_report, tmp_path):
        path = write_report(sample_report, tmp_path, "json")
        assert path.name == "report_abc123.json"
        assert find_report(tmp_path, "abc123", "json") == path
        assert find_report(tmp_path, "abc123", "md") is None

    def test_write_to_file_follows_extension(self, sample_report, tmp_path):
        path = write_report(sample_report, tmp_path / "out" / "dq.xml")
        assert path.read_text(encoding="utf-8").startswith("<?xml")

    def test_write_reports(self, sample_report, tmp_path):
        paths = write_reports(sample_report, tmp_path / "reports", ["md", "json", "junit"])
        assert sorted(paths) == ["json", "junit", "md"]
        assert all(p.exists() for p in paths.values())
