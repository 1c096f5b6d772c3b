"""Command-line interface for the data-quality rule engine.

Exit codes for ``run``: 0 when the overall status is PASS or
PASS_WITH_WARNINGS, 1 when it is FAIL, 2 when the catalog or the data
source cannot be loaded at all.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from dqengine.audit.run_log import RunLog
from dqengine.catalog.loader import load_catalog
from dqengine.config import get_settings
from dqengine.errors import CatalogError, DataSourceError
from dqengine.logger import setup_logging
from dqengine.models.report import OverallStatus
from dqengine.orchestration.pipeline import ValidationPipeline
from dqengine.reporting.writer import format_for_path, normalise_format, render_report, write_report

EXIT_OK = 0
EXIT_FAIL = 1
EXIT_LOAD_ERROR = 2

app = typer.Typer(
    help="Evaluate declarative data-quality rule catalogs against tabular data.",
    add_completion=False,
)


def _resolve_format(fmt: str | None, output: Path | None) -> str:
    if fmt:
        return normalise_format(fmt)
    if output is not None and output.suffix:
        return format_for_path(output)
    return "md"


@app.command()
def run(
    catalog: Path = typer.Option(..., "--catalog", "-c", help="Rule catalog (.json, .csv or .md)"),
    source: str = typer.Option(
        None, "--source", "-s", help="Data directory, csv/xlsx file or SQLAlchemy URL"
    ),
    output: Path = typer.Option(None, "--output", "-o", help="Report file or directory"),
    fmt: str = typer.Option(None, "--format", "-f", help="Report format: md, json or junit"),
    max_workers: int = typer.Option(None, "--max-workers", min=1, help="Parallel rule workers"),
    no_log: bool = typer.Option(False, "--no-log", help="Do not append the run to the run log"),
    user: str = typer.Option("cli", "--user", help="Recorded in the run log"),
):
    """Evaluate every rule of a catalog and print or write the report."""
    setup_logging(sys.stderr)

    try:
        report_format = _resolve_format(fmt, output)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(EXIT_LOAD_ERROR)

    pipeline = ValidationPipeline(max_workers=max_workers)
    try:
        report = pipeline.run(catalog, source=source, formats=(), user=user, log_run=not no_log)
    except (FileNotFoundError, CatalogError) as exc:
        typer.echo(f"Catalog error: {exc}", err=True)
        raise typer.Exit(EXIT_LOAD_ERROR)
    except DataSourceError as exc:
        typer.echo(f"Data source error: {exc}", err=True)
        raise typer.Exit(EXIT_LOAD_ERROR)

    if output is not None:
        path = write_report(report, output, report_format)
        typer.echo(f"Report written to {path}", err=True)
    else:
        typer.echo(render_report(report, report_format))

    typer.echo(
        f"Overall status: {report.overall_status.value} "
        f"({report.status_counts['FAIL']} failed, {report.status_counts['ERROR']} errors, "
        f"{len(report.results)} rules)",
        err=True,
    )
    if report.overall_status == OverallStatus.FAIL:
        raise typer.Exit(EXIT_FAIL)


@app.command("validate-catalog")
def validate_catalog(
    catalog: Path = typer.Option(..., "--catalog", "-c", help="Rule catalog to check"),
):
    """Load a catalog without evaluating it."""
    setup_logging(sys.stderr)
    try:
        loaded = load_catalog(catalog)
    except (FileNotFoundError, CatalogError) as exc:
        typer.echo(f"Invalid catalog: {exc}", err=True)
        raise typer.Exit(EXIT_LOAD_ERROR)
    typer.echo(
        f"Catalog '{loaded.name}' v{loaded.version}: {len(loaded.rules)} rules "
        f"over {len(loaded.tables)} tables"
    )


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of runs to show"),
):
    """Show the most recent runs from the run log."""
    setup_logging(sys.stderr)
    records = RunLog(get_settings().run_log_db_path).query_recent(limit)
    if not records:
        typer.echo("No runs logged yet.")
        return
    for r in records:
        typer.echo(
            f"{r['timestamp']}  {r['report_id']}  {r['overall_status']:<18}  "
            f"{r['catalog_name']}  pass={r['passed']} fail={r['failed']} error={r['errors']}"
        )


if __name__ == "__main__":
    app()
