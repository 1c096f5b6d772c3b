"""API v1 router — all /api/v1/* endpoints."""

from __future__ import annotations

import json
import uuid
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.responses import FileResponse

from dqengine.api.schemas import (
    CatalogValidateRequest,
    CatalogValidateResponse,
    EvaluationStartRequest,
    EvaluationStartResponse,
    JobStatusResponse,
    ReportListEntry,
    ReportListResponse,
    RuleHistoryResponse,
    RuleResultRecord,
    RunDetailResponse,
    RunListResponse,
    RunRecord,
)
from dqengine.audit.run_log import RunLog
from dqengine.catalog.loader import load_catalog
from dqengine.config import get_settings
from dqengine.errors import CatalogError
from dqengine.logger import get_logger
from dqengine.orchestration.pipeline import PipelineState, ValidationPipeline
from dqengine.reporting.writer import find_report, normalise_format

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/v1", tags=["v1"])

_MEDIA_TYPES = {"json": "application/json", "md": "text/markdown", "junit": "application/xml"}

# ── In-memory job state (single process) ─────────────────────────────────────

_jobs: dict[str, PipelineState] = {}


def _run_log() -> RunLog:
    return RunLog(settings.run_log_db_path)


# ── Catalogs ─────────────────────────────────────────────────────────────────


@router.post("/catalogs/validate", response_model=CatalogValidateResponse)
async def validate_catalog(body: CatalogValidateRequest):
    """Load a catalog and report its rule count, or the first problem found."""
    try:
        catalog = load_catalog(body.catalog_path)
    except FileNotFoundError:
        raise HTTPException(404, f"Catalog not found: {body.catalog_path}")
    except CatalogError as exc:
        raise HTTPException(422, str(exc))
    return CatalogValidateResponse(
        catalog_name=catalog.name,
        version=catalog.version,
        rule_count=len(catalog.rules),
        tables=catalog.tables,
    )


# ── Evaluations ──────────────────────────────────────────────────────────────


def _run_pipeline(
    job_id: str, catalog_path: str, source: str | None, formats: list[str], user: str
) -> None:
    """Background task that runs the full pipeline."""
    try:

        def on_progress(state: PipelineState) -> None:
            _jobs[job_id] = state

        pipeline = ValidationPipeline(settings, on_progress=on_progress)
        pipeline.run(catalog_path, source=source, formats=formats, user=user)

    except Exception as exc:
        logger.error("Pipeline background job failed", job_id=job_id, error=str(exc))
        state = _jobs.get(job_id)
        if state is not None and str(exc) not in state.errors:
            state.errors.append(str(exc))


@router.post("/evaluations/start", response_model=EvaluationStartResponse)
async def start_evaluation(body: EvaluationStartRequest, background_tasks: BackgroundTasks):
    """Start an evaluation pipeline in the background."""
    if not Path(body.catalog_path).exists():
        raise HTTPException(404, f"Catalog not found: {body.catalog_path}")
    try:
        formats = [normalise_format(f) for f in body.formats]
    except ValueError as exc:
        raise HTTPException(400, str(exc))

    job_id = uuid.uuid4().hex[:12]
    _jobs[job_id] = PipelineState(source=body.source or "")

    background_tasks.add_task(
        _run_pipeline, job_id, body.catalog_path, body.source, formats, body.user
    )
    return EvaluationStartResponse(job_id=job_id, status="started")


@router.get("/evaluations/{job_id}/status", response_model=JobStatusResponse)
async def evaluation_status(job_id: str):
    """Check pipeline progress (polling)."""
    state = _jobs.get(job_id)
    if not state:
        raise HTTPException(404, "Job not found")
    return JobStatusResponse(
        job_id=job_id,
        stage=state.stage.value,
        progress=state.progress,
        errors=state.errors,
        report_id=state.report_id,
        catalog_name=state.catalog_name,
        stage_times=state.stage_times,
    )


# ── Reports ──────────────────────────────────────────────────────────────────


@router.get("/reports", response_model=ReportListResponse)
async def list_reports():
    """List generated reports, newest first."""
    report_dir = Path(settings.report_dir)
    reports: list[ReportListEntry] = []
    files = report_dir.glob("report_*.json") if report_dir.exists() else []
    for f in sorted(files, key=lambda p: p.stat().st_mtime, reverse=True):
        entry = ReportListEntry(report_id=f.stem.removeprefix("report_"), filename=f.name)
        try:
            data = json.loads(f.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable report file", path=str(f), error=str(exc))
        else:
            entry.generated_at = data.get("generated_at")
            entry.catalog_name = data.get("catalog_name")
            entry.overall_status = data.get("overall_status")
        reports.append(entry)
    return ReportListResponse(reports=reports)


@router.get("/reports/{report_id}")
async def get_report_detail(report_id: str):
    """Full report data as JSON."""
    path = find_report(settings.report_dir, report_id, "json")
    if path is None:
        raise HTTPException(404, "Report not found")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise HTTPException(500, f"Failed to read report: {exc}")


@router.get("/reports/{report_id}/{fmt}")
async def download_report(report_id: str, fmt: str):
    """Download a report file (json, md or junit)."""
    try:
        key = normalise_format(fmt)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    path = find_report(settings.report_dir, report_id, key)
    if path is None:
        raise HTTPException(404, "Report not found")
    return FileResponse(path, media_type=_MEDIA_TYPES[key], filename=path.name)


# ── Run history ──────────────────────────────────────────────────────────────


@router.get("/history/recent", response_model=RunListResponse)
async def history_recent(limit: int = 20):
    """Most recent evaluation runs."""
    records = _run_log().query_recent(limit)
    return RunListResponse(records=[RunRecord(**r) for r in records])


@router.get("/history/rules/{rule_id}", response_model=RuleHistoryResponse)
async def history_by_rule(rule_id: str):
    """Results of one rule across runs."""
    records = _run_log().query_by_rule(rule_id)
    return RuleHistoryResponse(
        rule_id=rule_id, results=[RuleResultRecord(**r) for r in records]
    )


@router.get("/history/{report_id}", response_model=RunDetailResponse)
async def history_detail(report_id: str):
    """One run with its per-rule results."""
    log = _run_log()
    run = log.get_run(report_id)
    if run is None:
        raise HTTPException(404, "Run not found")
    return RunDetailResponse(
        run=RunRecord(**run),
        results=[RuleResultRecord(**r) for r in log.query_results(report_id)],
    )
