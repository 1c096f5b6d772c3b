"""Tests for Pydantic data models."""

import pytest
from pydantic import ValidationError

from dqengine.models.report import (
    EvaluationReport,
    EvaluationResult,
    OverallStatus,
    RuleStatus,
    violation_percentage,
)
from dqengine.models.rule import RuleCatalog, RuleCategory, RuleDefinition, Severity


# ────────────────────────────── Rule Models ──────────────────────────────


class TestRuleCategory:
    def test_enum_values(self):
        assert RuleCategory.COMPLETENESS == "Completeness"
        assert RuleCategory.REFERENTIAL_INTEGRITY == "ReferentialIntegrity"
        assert RuleCategory.MATHEMATICAL_CONSISTENCY == "MathematicalConsistency"

    def test_parse_is_lenient(self):
        assert RuleCategory.parse("statistical_outlier") == RuleCategory.STATISTICAL_OUTLIER
        assert RuleCategory.parse("Cross Field Consistency") == RuleCategory.CROSS_FIELD_CONSISTENCY
        assert RuleCategory.parse("range") == RuleCategory.RANGE

    def test_categorical_is_domain(self):
        assert RuleCategory.parse("Categorical") == RuleCategory.DOMAIN

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            RuleCategory.parse("Vibes")


class TestSeverity:
    def test_parse_case_insensitive(self):
        assert Severity.parse("medium") == Severity.MEDIUM
        assert Severity.parse(" High ") == Severity.HIGH

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Severity.parse("CRITICAL")


class TestRuleDefinition:
    def test_camel_case_aliases(self):
        rule = RuleDefinition(
            id="R1",
            category="Range",
            targetTable="survey",
            targetColumns=["salary"],
            parameters={"min": 0},
        )
        assert rule.target_table == "survey"
        assert rule.target_columns == ["salary"]
        assert rule.severity == Severity.HIGH
        assert rule.check_name == "R1"

    def test_rejects_empty_columns(self):
        with pytest.raises(ValidationError):
            RuleDefinition(id="R1", category="Range", target_table="t", target_columns=[])

    def test_rejects_blank_column(self):
        with pytest.raises(ValidationError):
            RuleDefinition(id="R1", category="Range", target_table="t", target_columns=["a", " "])

    def test_is_immutable(self):
        rule = RuleDefinition(id="R1", category="Completeness", target_table="t", target_columns=["a"])
        with pytest.raises(ValidationError):
            rule.id = "R2"

    def test_missing_parameters(self):
        rule = RuleDefinition(
            id="R1", category="ReferentialIntegrity", target_table="t", target_columns=["a"],
            parameters={"referenceTable": "ref"},
        )
        assert rule.missing_parameters() == ["referenceColumn"]

    def test_alternative_parameters(self):
        rule = RuleDefinition(
            id="R1", category="Range", target_table="t", target_columns=["a"], parameters={"max": 5}
        )
        assert rule.missing_parameters() == []


class TestRuleCatalog:
    def test_tables_include_reference_tables(self):
        catalog = RuleCatalog(
            rules=[
                RuleDefinition(id="A", category="Completeness", target_table="survey", target_columns=["x"]),
                RuleDefinition(
                    id="B", category="ReferentialIntegrity", target_table="survey",
                    target_columns=["ccy"],
                    parameters={"referenceTable": "currencies", "referenceColumn": "code"},
                ),
            ]
        )
        assert catalog.tables == ["survey", "currencies"]


# ────────────────────────────── Report Models ──────────────────────────────


def _rule(rule_id: str, severity: str = "HIGH", category: str = "Completeness") -> RuleDefinition:
    return RuleDefinition(
        id=rule_id, category=category, target_table="t", target_columns=["a"], severity=severity
    )


class TestEvaluationResult:
    def test_for_rule_status(self):
        passed = EvaluationResult.for_rule(_rule("A"), 0, 10, [])
        failed = EvaluationResult.for_rule(_rule("B"), 3, 10, ["1", "2", "3"])
        assert passed.status == RuleStatus.PASS
        assert failed.status == RuleStatus.FAIL
        assert failed.violation_percentage == 30.0

    def test_percentage_of_empty_table(self):
        result = EvaluationResult.for_rule(_rule("A"), 0, 0, [])
        assert result.violation_percentage == 0.0
        assert violation_percentage(0, 0) == 0.0

    def test_percentage_rounding(self):
        assert violation_percentage(1, 3) == 33.33

    def test_percentage_halves_round_up(self):
        assert violation_percentage(1, 800) == 0.13
        assert violation_percentage(1, 8) == 12.5
        assert violation_percentage(2, 3) == 66.67

    def test_error_result(self):
        result = EvaluationResult.error(_rule("A"), "boom")
        assert result.status == RuleStatus.ERROR
        assert result.error_message == "boom"
        assert result.violation_count == 0


class TestEvaluationReport:
    def test_empty_report_passes(self):
        report = EvaluationReport()
        assert report.overall_status == OverallStatus.PASS
        assert report.status_counts == {"PASS": 0, "FAIL": 0, "ERROR": 0}

    def test_high_failure_fails(self):
        report = EvaluationReport(results=[EvaluationResult.for_rule(_rule("A", "HIGH"), 1, 10, [])])
        assert report.overall_status == OverallStatus.FAIL

    def test_lower_severity_failure_warns(self):
        report = EvaluationReport(
            results=[
                EvaluationResult.for_rule(_rule("A", "MEDIUM"), 1, 10, []),
                EvaluationResult.for_rule(_rule("B", "LOW"), 2, 10, []),
                EvaluationResult.for_rule(_rule("C", "HIGH"), 0, 10, []),
            ]
        )
        assert report.overall_status == OverallStatus.PASS_WITH_WARNINGS
        assert report.failed_by_severity == {"HIGH": 0, "MEDIUM": 1, "LOW": 1}

    def test_any_error_fails(self):
        report = EvaluationReport(
            results=[
                EvaluationResult.for_rule(_rule("A", "LOW"), 0, 10, []),
                EvaluationResult.error(_rule("B", "LOW"), "missing table"),
            ]
        )
        assert report.overall_status == OverallStatus.FAIL

    def test_category_summary(self):
        report = EvaluationReport(
            results=[
                EvaluationResult.for_rule(_rule("A", category="Range"), 2, 10, []),
                EvaluationResult.for_rule(_rule("B", category="Range"), 0, 10, []),
                EvaluationResult.for_rule(_rule("C", category="Domain"), 5, 10, []),
            ]
        )
        summary = report.category_summary
        assert [s.category for s in summary] == [RuleCategory.DOMAIN, RuleCategory.RANGE]
        assert summary[1].rules == 2
        assert summary[1].failed == 1
        assert summary[1].avg_violation_percentage == 10.0

    def test_serialises_derived_fields(self):
        report = EvaluationReport(results=[EvaluationResult.for_rule(_rule("A"), 1, 4, ["7"])])
        data = report.model_dump(mode="json")
        assert data["overall_status"] == "FAIL"
        assert data["results"][0]["violation_percentage"] == 25.0
        assert data["status_counts"]["FAIL"] == 1
