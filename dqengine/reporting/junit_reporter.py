"""JUnit XML report, so CI systems can display one test case per rule."""

from __future__ import annotations

import xml.etree.ElementTree as ET

from dqengine.models.report import EvaluationReport, EvaluationResult, RuleStatus


def _seconds(millis: int) -> str:
    return f"{millis / 1000:.3f}"


def _testcase(parent: ET.Element, result: EvaluationResult) -> None:
    case = ET.SubElement(
        parent,
        "testcase",
        classname=f"dq.{result.target_table or 'unknown'}.{result.category.value}",
        name=f"{result.rule_id}: {result.name}" if result.name != result.rule_id else result.rule_id,
        time=_seconds(result.duration_millis),
    )
    if result.status == RuleStatus.FAIL:
        failure = ET.SubElement(
            case,
            "failure",
            type=result.severity.value,
            message=(
                f"{result.violation_count} of {result.total_rows_evaluated} rows "
                f"({result.violation_percentage:.2f}%) violate the rule"
            ),
        )
        failure.text = "\n".join(result.sample_violating_keys)
    elif result.status == RuleStatus.ERROR:
        error = ET.SubElement(
            case, "error", type="EvaluationError", message=result.error_message or "error"
        )
        error.text = result.error_message or ""


def render_junit(report: EvaluationReport) -> str:
    counts = report.status_counts
    total_time = _seconds(sum(r.duration_millis for r in report.results))
    attrs = {
        "tests": str(len(report.results)),
        "failures": str(counts[RuleStatus.FAIL.value]),
        "errors": str(counts[RuleStatus.ERROR.value]),
        "time": total_time,
    }

    suites = ET.Element("testsuites", name="data-quality", **attrs)
    suite = ET.SubElement(
        suites,
        "testsuite",
        name=report.catalog_name or "data-quality",
        timestamp=report.generated_at.isoformat(),
        **attrs,
    )
    props = ET.SubElement(suite, "properties")
    for name, value in (
        ("report_id", report.report_id),
        ("catalog_version", report.catalog_version),
        ("overall_status", report.overall_status.value),
        ("cancelled", str(report.cancelled).lower()),
    ):
        ET.SubElement(props, "property", name=name, value=value)

    for result in report.results:
        _testcase(suite, result)

    ET.indent(suites)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(suites, encoding="unicode") + "\n"
