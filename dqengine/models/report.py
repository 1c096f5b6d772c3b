"""Pydantic models for rule results and evaluation reports."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from dqengine.models.rule import RuleCategory, RuleDefinition, Severity


class RuleStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"


class OverallStatus(str, Enum):
    PASS = "PASS"
    PASS_WITH_WARNINGS = "PASS_WITH_WARNINGS"
    FAIL = "FAIL"


def round_percentage(value: float | Decimal) -> float:
    """Two decimals, halves rounded up like a DECIMAL(5,2) cast."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def violation_percentage(violations: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round_percentage(Decimal(violations) * 100 / Decimal(total))


# Report ordering, most severe first
SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


class EvaluationResult(BaseModel):
    """Outcome of evaluating one rule against one dataset."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    name: str = ""
    category: RuleCategory
    severity: Severity
    target_table: str = ""
    description: str = ""
    status: RuleStatus
    violation_count: int = Field(default=0, ge=0)
    total_rows_evaluated: int = Field(default=0, ge=0)
    violation_percentage: float = 0.0
    sample_violating_keys: list[str] = Field(default_factory=list)
    error_message: str | None = None
    duration_millis: int = Field(default=0, ge=0)

    @classmethod
    def for_rule(
        cls,
        rule: RuleDefinition,
        violation_count: int,
        total_rows: int,
        sample_keys: list[str],
    ) -> "EvaluationResult":
        return cls(
            rule_id=rule.id,
            name=rule.check_name,
            category=rule.category,
            severity=rule.severity,
            target_table=rule.target_table,
            description=rule.description,
            status=RuleStatus.FAIL if violation_count > 0 else RuleStatus.PASS,
            violation_count=violation_count,
            total_rows_evaluated=total_rows,
            violation_percentage=violation_percentage(violation_count, total_rows),
            sample_violating_keys=sample_keys,
        )

    @classmethod
    def error(
        cls, rule: RuleDefinition, message: str, duration_millis: int = 0
    ) -> "EvaluationResult":
        return cls(
            rule_id=rule.id,
            name=rule.check_name,
            category=rule.category,
            severity=rule.severity,
            target_table=rule.target_table,
            description=rule.description,
            status=RuleStatus.ERROR,
            error_message=message,
            duration_millis=duration_millis,
        )


class CategorySummary(BaseModel):
    category: RuleCategory
    rules: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0
    total_violations: int = 0
    avg_violation_percentage: float = 0.0


class SeveritySummary(BaseModel):
    severity: Severity
    rules: int = 0
    failed: int = 0
    total_violations: int = 0
    avg_violation_percentage: float = 0.0


class EvaluationReport(BaseModel):
    """Ordered per-rule results of one evaluation run plus derived aggregates."""

    model_config = ConfigDict(frozen=True)

    report_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    catalog_name: str = ""
    catalog_version: str = ""
    cancelled: bool = False
    results: list[EvaluationResult] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in RuleStatus}
        for r in self.results:
            counts[r.status.value] += 1
        return counts

    @computed_field  # type: ignore[prop-decorator]
    @property
    def severity_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for r in self.results:
            counts[r.severity.value] += 1
        return counts

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_by_severity(self) -> dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for r in self.results:
            if r.status == RuleStatus.FAIL:
                counts[r.severity.value] += 1
        return counts

    @computed_field  # type: ignore[prop-decorator]
    @property
    def category_summary(self) -> list[CategorySummary]:
        grouped: dict[RuleCategory, list[EvaluationResult]] = {}
        for r in self.results:
            grouped.setdefault(r.category, []).append(r)

        summaries = []
        for category, results in grouped.items():
            summaries.append(
                CategorySummary(
                    category=category,
                    rules=len(results),
                    passed=sum(1 for r in results if r.status == RuleStatus.PASS),
                    failed=sum(1 for r in results if r.status == RuleStatus.FAIL),
                    errors=sum(1 for r in results if r.status == RuleStatus.ERROR),
                    total_violations=sum(r.violation_count for r in results),
                    avg_violation_percentage=round_percentage(
                        sum(r.violation_percentage for r in results) / len(results)
                    ),
                )
            )
        # Worst categories first, like the summary-by-category query
        summaries.sort(key=lambda s: s.total_violations, reverse=True)
        return summaries

    @computed_field  # type: ignore[prop-decorator]
    @property
    def severity_summary(self) -> list[SeveritySummary]:
        summaries = []
        for severity in sorted(Severity, key=SEVERITY_RANK.__getitem__):
            results = [r for r in self.results if r.severity == severity]
            if not results:
                continue
            summaries.append(
                SeveritySummary(
                    severity=severity,
                    rules=len(results),
                    failed=sum(1 for r in results if r.status == RuleStatus.FAIL),
                    total_violations=sum(r.violation_count for r in results),
                    avg_violation_percentage=round_percentage(
                        sum(r.violation_percentage for r in results) / len(results)
                    ),
                )
            )
        return summaries

    def top_issues(self, limit: int = 10) -> list[EvaluationResult]:
        """Failing rules, most severe first, then by violation percentage."""
        failed = [r for r in self.results if r.status == RuleStatus.FAIL]
        failed.sort(key=lambda r: (SEVERITY_RANK[r.severity], -r.violation_percentage))
        return failed[:limit]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_status(self) -> OverallStatus:
        if any(r.status == RuleStatus.ERROR for r in self.results):
            return OverallStatus.FAIL
        failed = [r for r in self.results if r.status == RuleStatus.FAIL]
        if any(r.severity == Severity.HIGH for r in failed):
            return OverallStatus.FAIL
        if failed:
            return OverallStatus.PASS_WITH_WARNINGS
        return OverallStatus.PASS
