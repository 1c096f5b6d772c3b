"""Pydantic response/request models for the API — provides typed contracts + OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field


# ── Health ───────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    environment: str


# ── Catalogs ─────────────────────────────────────────────────────────────────


class CatalogValidateRequest(BaseModel):
    catalog_path: str


class CatalogValidateResponse(BaseModel):
    catalog_name: str
    version: str
    rule_count: int
    tables: list[str] = Field(default_factory=list)


# ── Evaluations ──────────────────────────────────────────────────────────────


class EvaluationStartRequest(BaseModel):
    catalog_path: str
    source: str | None = None
    user: str = "api_user"
    formats: list[str] = Field(default_factory=lambda: ["json", "md", "junit"])


class EvaluationStartResponse(BaseModel):
    job_id: str
    status: str


class JobStatusResponse(BaseModel):
    job_id: str
    stage: str
    progress: float
    errors: list[str] = Field(default_factory=list)
    report_id: str | None = None
    catalog_name: str = ""
    stage_times: dict[str, float] = Field(default_factory=dict)


# ── Reports ──────────────────────────────────────────────────────────────────


class ReportListEntry(BaseModel):
    report_id: str
    filename: str
    generated_at: str | None = None
    catalog_name: str | None = None
    overall_status: str | None = None


class ReportListResponse(BaseModel):
    reports: list[ReportListEntry]


# ── Run history ──────────────────────────────────────────────────────────────


class RunRecord(BaseModel):
    run_id: str
    report_id: str
    catalog_name: str | None = None
    catalog_version: str | None = None
    source: str | None = None
    total_rules: int | None = None
    passed: int | None = None
    failed: int | None = None
    errors: int | None = None
    total_violations: int | None = None
    overall_status: str | None = None
    cancelled: bool = False
    processing_time: float | None = None
    user_id: str | None = None
    timestamp: str | None = None


class RunListResponse(BaseModel):
    records: list[RunRecord]


class RuleResultRecord(BaseModel):
    report_id: str
    position: int
    rule_id: str
    check_name: str | None = None
    category: str | None = None
    severity: str | None = None
    target_table: str | None = None
    status: str | None = None
    violation_count: int | None = None
    total_rows: int | None = None
    violation_percentage: float | None = None
    error_message: str | None = None
    duration_millis: int | None = None
    timestamp: str | None = None


class RunDetailResponse(BaseModel):
    run: RunRecord
    results: list[RuleResultRecord]


class RuleHistoryResponse(BaseModel):
    rule_id: str
    results: list[RuleResultRecord]
