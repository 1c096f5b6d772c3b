"""Format dispatch for report serializers (md | json | junit)."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

from dqengine.logger import get_logger
from dqengine.models.report import EvaluationReport
from dqengine.reporting.json_reporter import render_json
from dqengine.reporting.junit_reporter import render_junit
from dqengine.reporting.markdown_reporter import render_markdown

logger = get_logger(__name__)

RENDERERS: dict[str, Callable[[EvaluationReport], str]] = {
    "md": render_markdown,
    "json": render_json,
    "junit": render_junit,
}

EXTENSIONS = {"md": ".md", "json": ".json", "junit": ".xml"}

_ALIASES = {"markdown": "md", "xml": "junit"}


def normalise_format(fmt: str) -> str:
    key = fmt.strip().lower().lstrip(".")
    key = _ALIASES.get(key, key)
    if key not in RENDERERS:
        raise ValueError(f"Unsupported report format: {fmt!r} (use md, json or junit)")
    return key


def format_for_path(path: str | Path) -> str:
    """Infer the report format from an output file's extension."""
    return normalise_format(Path(path).suffix or "md")


def render_report(report: EvaluationReport, fmt: str = "md") -> str:
    return RENDERERS[normalise_format(fmt)](report)


def write_report(report: EvaluationReport, output: str | Path, fmt: str | None = None) -> Path:
    """Write one report file.

    ``output`` may be a directory (the file is named after the report id) or
    a file path; without ``fmt`` the format follows the file extension.
    """
    output = Path(output)
    if output.is_dir() or (not output.suffix and fmt is not None):
        fmt = normalise_format(fmt or "md")
        output.mkdir(parents=True, exist_ok=True)
        path = output / f"report_{report.report_id}{EXTENSIONS[fmt]}"
    else:
        fmt = normalise_format(fmt) if fmt else format_for_path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        path = output

    path.write_text(render_report(report, fmt), encoding="utf-8")
    logger.info("Report written", path=str(path), format=fmt)
    return path


def write_reports(
    report: EvaluationReport, output_dir: str | Path, formats: Iterable[str]
) -> dict[str, Path]:
    """Write the report once per format into ``output_dir``."""
    paths: dict[str, Path] = {}
    for fmt in formats:
        key = normalise_format(fmt)
        paths[key] = write_report(report, output_dir, key)
    return paths


def find_report(report_dir: str | Path, report_id: str, fmt: str = "json") -> Path | None:
    """Locate a previously written report file, if it exists."""
    key = normalise_format(fmt)
    path = Path(report_dir) / f"report_{report_id}{EXTENSIONS[key]}"
    return path if path.exists() else None
