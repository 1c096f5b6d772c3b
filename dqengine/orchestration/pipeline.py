"""End-to-end validation pipeline: Catalog → Load data → Evaluate → Report → Run log."""

from __future__ import annotations

import time
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from pydantic import BaseModel, Field

from dqengine.audit.run_log import RunLog
from dqengine.catalog.loader import load_catalog
from dqengine.config import Settings, get_settings
from dqengine.datasets.loaders import load_source
from dqengine.errors import DataSourceError
from dqengine.logger import get_logger
from dqengine.models.report import EvaluationReport
from dqengine.orchestration.orchestrator import EvaluationOrchestrator
from dqengine.reporting.writer import write_reports

logger = get_logger(__name__)


class PipelineStage(str, Enum):
    PENDING = "pending"
    CATALOG = "catalog"
    LOADING = "loading"
    EVALUATION = "evaluation"
    REPORTING = "reporting"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineState(BaseModel):
    """Tracks pipeline execution state."""

    catalog_name: str = ""
    source: str = ""
    stage: PipelineStage = PipelineStage.PENDING
    progress: float = 0.0  # 0–100
    errors: list[str] = Field(default_factory=list)
    stage_times: dict[str, float] = Field(default_factory=dict)
    report_id: str | None = None
    report_paths: dict[str, str] = Field(default_factory=dict)


class ValidationPipeline:
    """Wires catalog loading, data loading, evaluation, reporting and the run log."""

    def __init__(
        self,
        settings: Settings | None = None,
        on_progress: Callable[[PipelineState], None] | None = None,
        max_workers: int | None = None,
        run_log: RunLog | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._on_progress = on_progress
        self._orchestrator = EvaluationOrchestrator(self._settings, max_workers=max_workers)
        self._run_log = run_log
        self.state = PipelineState()

    def _emit(self, stage: PipelineStage, progress: float) -> None:
        self.state.stage = stage
        self.state.progress = progress
        if self._on_progress:
            self._on_progress(self.state)

    def cancel(self) -> None:
        self._orchestrator.cancel()

    @property
    def run_log(self) -> RunLog:
        if self._run_log is None:
            self._run_log = RunLog(self._settings.run_log_db_path)
        return self._run_log

    def run(
        self,
        catalog_path: str | Path,
        source: str | Path | None = None,
        output_dir: str | Path | None = None,
        formats: Iterable[str] = ("json", "md"),
        user: str = "system",
        log_run: bool = True,
    ) -> EvaluationReport:
        """Execute the full pipeline end-to-end.

        Args:
            catalog_path: Path to the rule catalog (.json, .csv or .md).
            source: Directory, csv/xlsx file or SQLAlchemy URL. Defaults to
                the configured ``database_url``.
            output_dir: Where report files go. Defaults to ``report_dir``.
            formats: Report formats to write; empty writes nothing.
            user: Identifier of the user triggering the run.
            log_run: Whether to append the run to the run log.

        Returns:
            The EvaluationReport. Catalog and data-source errors propagate.
        """
        pipeline_start = time.time()
        source = str(source or self._settings.database_url)
        self.state.source = source

        try:
            # ── Stage 1: Catalog ─────────────────────────────────
            self._emit(PipelineStage.CATALOG, 5)
            t0 = time.time()
            catalog = load_catalog(catalog_path)
            self.state.catalog_name = catalog.name
            self.state.stage_times["catalog"] = time.time() - t0

            # ── Stage 2: Load datasets ───────────────────────────
            self._emit(PipelineStage.LOADING, 15)
            if not source:
                raise DataSourceError("No data source given and database_url is not set")
            t0 = time.time()
            datasets = load_source(source, tables=catalog.tables, key_columns=catalog.key_columns)
            self.state.stage_times["loading"] = time.time() - t0

            # ── Stage 3: Evaluation ──────────────────────────────
            self._emit(PipelineStage.EVALUATION, 30)
            t0 = time.time()
            report = self._orchestrator.run(catalog, datasets)
            self.state.report_id = report.report_id
            self.state.stage_times["evaluation"] = time.time() - t0

            # ── Stage 4: Reporting ───────────────────────────────
            self._emit(PipelineStage.REPORTING, 85)
            t0 = time.time()
            paths = write_reports(report, output_dir or self._settings.report_dir, formats)
            self.state.report_paths = {fmt: str(p) for fmt, p in paths.items()}
            self.state.stage_times["reporting"] = time.time() - t0

            # ── Run log ──────────────────────────────────────────
            if log_run:
                self.run_log.log_run(
                    report,
                    source=source,
                    user=user,
                    processing_time=round(time.time() - pipeline_start, 2),
                )

            self._emit(PipelineStage.COMPLETED, 100)
            logger.info(
                "Pipeline complete",
                report_id=report.report_id,
                overall_status=report.overall_status.value,
                total_time=round(time.time() - pipeline_start, 2),
            )
            return report

        except Exception as exc:
            self.state.errors.append(str(exc))
            self._emit(PipelineStage.FAILED, self.state.progress)
            logger.error("Pipeline failed", error=str(exc), stage=self.state.stage.value)
            raise
