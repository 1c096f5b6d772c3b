"""Markdown report: one flat results table plus summary sections."""

from __future__ import annotations

from dqengine.models.report import EvaluationReport, EvaluationResult, RuleStatus

RESULT_COLUMNS = (
    "CheckName",
    "Category",
    "Severity",
    "ViolationCount",
    "TotalRecords",
    "ViolationPercentage",
    "Status",
    "SampleViolations",
)

CATEGORY_COLUMNS = (
    "Category",
    "Rules",
    "Passed",
    "Failed",
    "Errors",
    "TotalViolations",
    "AvgViolationPercentage",
)

SEVERITY_COLUMNS = ("Severity", "Rules", "Failed", "TotalViolations", "AvgViolationPercentage")

TOP_ISSUE_COLUMNS = ("CheckName", "Category", "Severity", "ViolationCount", "ViolationPercentage")


def _cell(value: object) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def _row(cells: list[object] | tuple[object, ...]) -> str:
    return "| " + " | ".join(_cell(c) for c in cells) + " |"


def _separator(width: int) -> str:
    return "|" + "|".join(" --- " for _ in range(width)) + "|"


def _result_row(result: EvaluationResult) -> str:
    samples = ", ".join(result.sample_violating_keys)
    if result.status == RuleStatus.ERROR:
        samples = result.error_message or ""
    return _row(
        [
            result.name or result.rule_id,
            result.category.value,
            result.severity.value,
            result.violation_count,
            result.total_rows_evaluated,
            f"{result.violation_percentage:.2f}",
            result.status.value,
            samples,
        ]
    )


def render_markdown(report: EvaluationReport) -> str:
    lines = [
        f"# Data Quality Report: {report.catalog_name or 'ad-hoc rules'}",
        "",
        f"- **Report ID:** {report.report_id}",
        f"- **Generated:** {report.generated_at.isoformat()}",
        f"- **Catalog version:** {report.catalog_version or 'n/a'}",
        f"- **Overall status:** {report.overall_status.value}",
    ]
    if report.cancelled:
        lines.append("- **Run was cancelled:** rules that never ran are reported as ERROR")

    lines += ["", "## Results", "", _row(RESULT_COLUMNS), _separator(len(RESULT_COLUMNS))]
    lines += [_result_row(r) for r in report.results]

    lines += ["", "## Summary by category", "", _row(CATEGORY_COLUMNS), _separator(len(CATEGORY_COLUMNS))]
    for s in report.category_summary:
        lines.append(
            _row(
                [
                    s.category.value,
                    s.rules,
                    s.passed,
                    s.failed,
                    s.errors,
                    s.total_violations,
                    f"{s.avg_violation_percentage:.2f}",
                ]
            )
        )

    lines += ["", "## Summary by severity", "", _row(SEVERITY_COLUMNS), _separator(len(SEVERITY_COLUMNS))]
    for s in report.severity_summary:
        lines.append(
            _row(
                [
                    s.severity.value,
                    s.rules,
                    s.failed,
                    s.total_violations,
                    f"{s.avg_violation_percentage:.2f}",
                ]
            )
        )

    top = report.top_issues()
    if top:
        lines += ["", "## Top issues", "", _row(TOP_ISSUE_COLUMNS), _separator(len(TOP_ISSUE_COLUMNS))]
        for r in top:
            lines.append(
                _row(
                    [
                        r.name or r.rule_id,
                        r.category.value,
                        r.severity.value,
                        r.violation_count,
                        f"{r.violation_percentage:.2f}",
                    ]
                )
            )

    lines += ["", "## Status counts", ""]
    lines += [f"- {status}: {count}" for status, count in report.status_counts.items()]
    lines += ["", "## Failed rules by severity", ""]
    lines += [f"- {sev}: {count}" for sev, count in report.failed_by_severity.items()]

    errors = [r for r in report.results if r.status == RuleStatus.ERROR]
    if errors:
        lines += ["", "## Errors", ""]
        lines += [f"- `{r.rule_id}`: {r.error_message}" for r in errors]

    return "\n".join(lines) + "\n"
