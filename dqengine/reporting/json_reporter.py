"""JSON report generator — full report document plus a compact CI summary."""

from __future__ import annotations

import json
from typing import Any

from dqengine.models.report import EvaluationReport, RuleStatus


def render_json(report: EvaluationReport) -> str:
    data = report.model_dump(mode="json")
    return json.dumps(data, indent=2, default=str)


def build_summary(report: EvaluationReport) -> dict[str, Any]:
    """Machine-readable counts and overall status, for CI gates."""
    failing = [r for r in report.results if r.status != RuleStatus.PASS]
    return {
        "report_id": report.report_id,
        "catalog": report.catalog_name,
        "catalog_version": report.catalog_version,
        "generated_at": report.generated_at.isoformat(),
        "overall_status": report.overall_status.value,
        "cancelled": report.cancelled,
        "total_rules": len(report.results),
        "status_counts": report.status_counts,
        "failed_by_severity": report.failed_by_severity,
        "severity_summary": [s.model_dump(mode="json") for s in report.severity_summary],
        "total_violations": sum(r.violation_count for r in report.results),
        "failing_rules": [
            {
                "rule_id": r.rule_id,
                "status": r.status.value,
                "severity": r.severity.value,
                "violation_count": r.violation_count,
            }
            for r in failing
        ],
        "top_issues": [
            {
                "rule_id": r.rule_id,
                "severity": r.severity.value,
                "violation_percentage": r.violation_percentage,
            }
            for r in report.top_issues()
        ],
    }
