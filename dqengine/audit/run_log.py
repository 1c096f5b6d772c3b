"""Run log: SQLite-backed history of every evaluation run and its rule results."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dqengine.logger import get_logger
from dqengine.models.report import EvaluationReport, RuleStatus

logger = get_logger(__name__)

_CREATE_TABLES = """\
CREATE TABLE IF NOT EXISTS dq_run (
    run_id          TEXT PRIMARY KEY,
    report_id       TEXT NOT NULL UNIQUE,
    catalog_name    TEXT,
    catalog_version TEXT,
    source          TEXT,
    total_rules     INTEGER,
    passed          INTEGER,
    failed          INTEGER,
    errors          INTEGER,
    total_violations INTEGER,
    overall_status  TEXT,
    cancelled       INTEGER,
    processing_time REAL,
    user_id         TEXT,
    report_json     TEXT,
    timestamp       TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS dq_rule_result (
    report_id            TEXT NOT NULL,
    position             INTEGER NOT NULL,
    rule_id              TEXT NOT NULL,
    check_name           TEXT,
    category             TEXT,
    severity             TEXT,
    target_table         TEXT,
    status               TEXT,
    violation_count      INTEGER,
    total_rows           INTEGER,
    violation_percentage REAL,
    error_message        TEXT,
    duration_millis      INTEGER,
    PRIMARY KEY (report_id, position)
);

CREATE INDEX IF NOT EXISTS idx_run_ts ON dq_run(timestamp);
CREATE INDEX IF NOT EXISTS idx_result_rule ON dq_rule_result(rule_id);
"""


class RunLog:
    """SQLite-based log of evaluation runs."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.executescript(_CREATE_TABLES)
        logger.debug("Run log initialised", path=self._db_path)

    def _query(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        with sqlite3.connect(self._db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(sql, params).fetchall()
        return [dict(r) for r in rows]

    def log_run(
        self,
        report: EvaluationReport,
        source: str = "",
        user: str = "system",
        processing_time: float = 0.0,
    ) -> str:
        """Persist a run and all of its rule results; returns the run id."""
        run_id = uuid.uuid4().hex
        counts = report.status_counts

        with sqlite3.connect(self._db_path) as conn:
            conn.execute(
                """
                INSERT INTO dq_run (
                    run_id, report_id, catalog_name, catalog_version, source,
                    total_rules, passed, failed, errors, total_violations,
                    overall_status, cancelled, processing_time, user_id,
                    report_json, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    run_id,
                    report.report_id,
                    report.catalog_name,
                    report.catalog_version,
                    source,
                    len(report.results),
                    counts[RuleStatus.PASS.value],
                    counts[RuleStatus.FAIL.value],
                    counts[RuleStatus.ERROR.value],
                    sum(r.violation_count for r in report.results),
                    report.overall_status.value,
                    int(report.cancelled),
                    processing_time,
                    user,
                    report.model_dump_json(),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.executemany(
                """
                INSERT INTO dq_rule_result (
                    report_id, position, rule_id, check_name, category, severity,
                    target_table, status, violation_count, total_rows,
                    violation_percentage, error_message, duration_millis
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        report.report_id,
                        position,
                        r.rule_id,
                        r.name,
                        r.category.value,
                        r.severity.value,
                        r.target_table,
                        r.status.value,
                        r.violation_count,
                        r.total_rows_evaluated,
                        r.violation_percentage,
                        r.error_message,
                        r.duration_millis,
                    )
                    for position, r in enumerate(report.results)
                ],
            )
        logger.info("Run logged", run_id=run_id, report_id=report.report_id, user=user)
        return run_id

    def query_recent(self, limit: int = 20) -> list[dict[str, Any]]:
        """Most recent runs, newest first, without the stored report JSON."""
        return self._query(
            """
            SELECT run_id, report_id, catalog_name, catalog_version, source,
                   total_rules, passed, failed, errors, total_violations,
                   overall_status, cancelled, processing_time, user_id, timestamp
            FROM dq_run ORDER BY timestamp DESC LIMIT ?
            """,
            (limit,),
        )

    def get_run(self, report_id: str) -> dict[str, Any] | None:
        rows = self._query("SELECT * FROM dq_run WHERE report_id = ?", (report_id,))
        return rows[0] if rows else None

    def query_results(self, report_id: str) -> list[dict[str, Any]]:
        """Rule results of one run, in catalog order."""
        return self._query(
            "SELECT * FROM dq_rule_result WHERE report_id = ? ORDER BY position",
            (report_id,),
        )

    def query_by_rule(self, rule_id: str) -> list[dict[str, Any]]:
        """History of one rule across runs, newest first."""
        return self._query(
            """
            SELECT res.*, run.timestamp, run.catalog_name
            FROM dq_rule_result AS res
            JOIN dq_run AS run ON run.report_id = res.report_id
            WHERE res.rule_id = ?
            ORDER BY run.timestamp DESC
            """,
            (rule_id,),
        )
