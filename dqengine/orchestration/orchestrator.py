"""Evaluation orchestrator: runs every catalog rule against its dataset.

Rules are evaluated in a thread pool; the report always lists one result
per rule in catalog order, whatever the completion order. A failing,
missing-table, timed-out or cancelled rule becomes an ERROR result and
never stops the rest of the batch.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Mapping, Sequence

from dqengine.config import Settings, get_settings
from dqengine.datasets.dataset import Dataset
from dqengine.errors import RuleTimeoutError, TableNotFoundError
from dqengine.evaluation.base import EvaluationContext
from dqengine.evaluation.registry import get_evaluator
from dqengine.logger import get_logger
from dqengine.models.report import EvaluationReport, EvaluationResult, RuleStatus
from dqengine.models.rule import RuleCatalog, RuleDefinition

logger = get_logger(__name__)

# How often the dispatch loop wakes up to check for timeouts and cancellation
_POLL_SECONDS = 0.05

CANCELLED_MESSAGE = "cancelled"


def _elapsed_millis(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


class EvaluationOrchestrator:
    """Evaluates a rule catalog against a mapping of table name → Dataset."""

    def __init__(
        self,
        settings: Settings | None = None,
        max_workers: int | None = None,
        now: datetime | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._max_workers = max(1, max_workers or self._settings.max_workers)
        self._now = now
        self._cancel_event = threading.Event()
        self._last_run_cancelled = False
        self._lock = threading.Lock()

    # ── Control ──────────────────────────────────────────────────

    def cancel(self) -> None:
        """Stop dispatching new rules; rules already running are allowed to finish.

        Applies to the current run, or to the next one when called between runs.
        """
        self._cancel_event.set()
        logger.warning("Evaluation cancellation requested")

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set() or self._last_run_cancelled

    def _timeout_for(self, rule: RuleDefinition) -> float:
        value = rule.param("timeoutSeconds")
        if value is None:
            return float(self._settings.rule_timeout_seconds)
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            seconds = 0.0
        if seconds <= 0:
            logger.warning("Ignoring invalid timeoutSeconds", rule_id=rule.id, value=value)
            return float(self._settings.rule_timeout_seconds)
        return seconds

    # ── Single rule ──────────────────────────────────────────────

    def evaluate_rule(
        self,
        rule: RuleDefinition,
        datasets: Mapping[str, Dataset],
        context: EvaluationContext,
    ) -> EvaluationResult:
        """Evaluate one rule synchronously; exceptions become ERROR results."""
        start = time.perf_counter()
        dataset = datasets.get(rule.target_table)
        if dataset is None:
            return EvaluationResult.error(rule, str(TableNotFoundError(rule.target_table)))

        try:
            result = get_evaluator(rule.category)(rule, dataset, context)
        except Exception as exc:
            logger.error(
                "Rule evaluation failed",
                rule_id=rule.id,
                category=rule.category.value,
                error=str(exc),
            )
            return EvaluationResult.error(rule, str(exc), _elapsed_millis(start))

        logger.debug(
            "Rule evaluated",
            rule_id=rule.id,
            status=result.status.value,
            violations=result.violation_count,
        )
        return result.model_copy(update={"duration_millis": _elapsed_millis(start)})

    # ── Batch ────────────────────────────────────────────────────

    def run(
        self,
        catalog: RuleCatalog | Sequence[RuleDefinition],
        datasets: Mapping[str, Dataset],
    ) -> EvaluationReport:
        """Evaluate every rule and return the report in catalog order."""
        if isinstance(catalog, RuleCatalog):
            rules = list(catalog.rules)
            catalog_name, catalog_version = catalog.name, catalog.version
        else:
            rules = list(catalog)
            catalog_name, catalog_version = "", ""

        context = EvaluationContext.from_settings(self._settings, datasets, now=self._now)
        cancel_event = self._cancel_event
        results: dict[int, EvaluationResult] = {}
        started: dict[int, float] = {}

        logger.info(
            "Starting evaluation",
            catalog=catalog_name,
            rules=len(rules),
            tables=sorted(datasets),
            max_workers=self._max_workers,
        )

        def task(index: int, rule: RuleDefinition) -> None:
            with self._lock:
                started[index] = time.monotonic()
            result = self.evaluate_rule(rule, datasets, context)
            with self._lock:
                # A timeout may already have claimed this slot
                results.setdefault(index, result)

        executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="dq-rule")
        in_flight: dict[Future, int] = {}
        next_index = 0
        try:
            while True:
                while (
                    not cancel_event.is_set()
                    and next_index < len(rules)
                    and len(in_flight) < self._max_workers
                ):
                    rule = rules[next_index]
                    if rule.target_table not in datasets:
                        with self._lock:
                            results[next_index] = self.evaluate_rule(rule, datasets, context)
                    else:
                        in_flight[executor.submit(task, next_index, rule)] = next_index
                    next_index += 1

                if not in_flight:
                    if cancel_event.is_set() or next_index >= len(rules):
                        break
                    continue

                done, _ = wait(in_flight, timeout=_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    in_flight.pop(future)

                if self._expire_stuck(rules, in_flight, started, results):
                    # The stuck thread keeps its worker; continue on a fresh pool
                    executor.shutdown(wait=False)
                    executor = ThreadPoolExecutor(
                        max_workers=self._max_workers, thread_name_prefix="dq-rule"
                    )
        finally:
            executor.shutdown(wait=False)
            # A cancellation only ever stops the run it was aimed at
            with self._lock:
                self._last_run_cancelled = cancel_event.is_set()
                self._cancel_event = threading.Event()

        cancelled = next_index < len(rules)
        ordered: list[EvaluationResult] = []
        with self._lock:
            for index, rule in enumerate(rules):
                result = results.get(index)
                if result is None:
                    result = EvaluationResult.error(rule, CANCELLED_MESSAGE)
                ordered.append(result)

        report = EvaluationReport(
            catalog_name=catalog_name,
            catalog_version=catalog_version,
            cancelled=cancelled,
            results=ordered,
        )
        logger.info(
            "Evaluation complete",
            report_id=report.report_id,
            overall_status=report.overall_status.value,
            passed=report.status_counts[RuleStatus.PASS.value],
            failed=report.status_counts[RuleStatus.FAIL.value],
            errors=report.status_counts[RuleStatus.ERROR.value],
            cancelled=cancelled,
        )
        return report

    def _expire_stuck(
        self,
        rules: list[RuleDefinition],
        in_flight: dict[Future, int],
        started: dict[int, float],
        results: dict[int, EvaluationResult],
    ) -> bool:
        """Turn rules running past their timeout into ERROR results."""
        expired = False
        now = time.monotonic()
        for future, index in list(in_flight.items()):
            rule = rules[index]
            timeout = self._timeout_for(rule)
            with self._lock:
                start = started.get(index)
                if start is None or now - start <= timeout:
                    continue
                error = RuleTimeoutError(rule.id, timeout)
                results.setdefault(
                    index,
                    EvaluationResult.error(rule, str(error), int(round((now - start) * 1000))),
                )
            logger.error("Rule timed out", rule_id=rule.id, timeout_seconds=timeout)
            in_flight.pop(future)
            expired = True
        return expired
