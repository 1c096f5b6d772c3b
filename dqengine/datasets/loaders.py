"""Dataset loaders — route a source (file, directory or database URL) to Dataset objects."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError

from dqengine.datasets.dataset import Dataset
from dqengine.errors import DatasetError, DataSourceError
from dqengine.logger import get_logger

logger = get_logger(__name__)

KeyColumns = Mapping[str, Sequence[str]]

_SUPPORTED_SUFFIXES = (".csv", ".xlsx")


def _build_dataset(name: str, frame: pd.DataFrame, key_columns: Sequence[str] | None) -> Dataset:
    try:
        return Dataset(name, frame, key_columns=key_columns)
    except DatasetError as exc:
        raise DataSourceError(f"Cannot use key columns for {name!r}: {exc}") from exc


def detect_format(path: str | Path) -> str:
    """Detect the file format from its extension."""
    suffix = Path(path).suffix.lower()
    if suffix not in _SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported dataset format: {suffix or Path(path).name}")
    return suffix.lstrip(".")


def load_csv(
    path: str | Path,
    table: str | None = None,
    key_columns: Sequence[str] | None = None,
) -> Dataset:
    path = Path(path)
    name = table or path.stem
    try:
        frame = pd.read_csv(path)
    except (OSError, ValueError) as exc:
        raise DataSourceError(f"Cannot read CSV {path}: {exc}") from exc
    logger.info("CSV loaded", table=name, rows=len(frame), path=str(path))
    return _build_dataset(name, frame, key_columns)


def load_xlsx(
    path: str | Path,
    table: str | None = None,
    key_columns: KeyColumns | None = None,
) -> dict[str, Dataset]:
    """Load every sheet of a workbook; a single-sheet workbook is named after the file."""
    path = Path(path)
    key_columns = key_columns or {}
    try:
        sheets = pd.read_excel(path, sheet_name=None, engine="openpyxl")
    except Exception as exc:
        raise DataSourceError(f"Cannot read workbook {path}: {exc}") from exc

    datasets: dict[str, Dataset] = {}
    if len(sheets) == 1:
        frame = next(iter(sheets.values()))
        name = table or path.stem
        datasets[name] = _build_dataset(name, frame, key_columns.get(name))
    else:
        for sheet_name, frame in sheets.items():
            datasets[sheet_name] = _build_dataset(sheet_name, frame, key_columns.get(sheet_name))
    logger.info("Workbook loaded", path=str(path), tables=list(datasets))
    return datasets


def load_sql_tables(
    url: str,
    tables: Sequence[str] | None = None,
    key_columns: KeyColumns | None = None,
) -> dict[str, Dataset]:
    """Read whole tables through SQLAlchemy.

    Tables missing from the database are skipped with a warning so that only
    the rules targeting them end up as ERROR; an unreachable database is fatal.
    """
    key_columns = key_columns or {}
    try:
        engine = create_engine(url)
    except (SQLAlchemyError, ValueError) as exc:
        raise DataSourceError(f"Invalid database URL: {exc}") from exc

    datasets: dict[str, Dataset] = {}
    try:
        with engine.connect() as conn:
            inspector = inspect(conn)
            if tables is None:
                tables = inspector.get_table_names()
            for table in tables:
                schema, _, name = table.rpartition(".")
                if not inspector.has_table(name, schema=schema or None):
                    logger.warning("Table not found in database", table=table)
                    continue
                frame = pd.read_sql_table(name, conn, schema=schema or None)
                datasets[table] = _build_dataset(table, frame, key_columns.get(table))
                logger.info("Table loaded", table=table, rows=len(frame))
    except SQLAlchemyError as exc:
        raise DataSourceError(f"Cannot read from database: {exc}") from exc
    finally:
        engine.dispose()
    return datasets


def _load_file(path: Path, key_columns: KeyColumns) -> dict[str, Dataset]:
    fmt = detect_format(path)
    if fmt == "csv":
        return {path.stem: load_csv(path, key_columns=key_columns.get(path.stem))}
    return load_xlsx(path, key_columns=key_columns)


def load_source(
    source: str | Path,
    tables: Sequence[str] | None = None,
    key_columns: KeyColumns | None = None,
) -> dict[str, Dataset]:
    """Load datasets from a directory, a single file or a SQLAlchemy URL.

    When ``tables`` is given, only those tables are returned.
    """
    key_columns = key_columns or {}

    if "://" in str(source):
        return load_sql_tables(str(source), tables, key_columns)

    path = Path(source)
    if not path.exists():
        raise DataSourceError(f"Data source not found: {path}")

    datasets: dict[str, Dataset] = {}
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.suffix.lower() in _SUPPORTED_SUFFIXES)
        for file in files:
            if tables is not None and file.suffix.lower() == ".csv" and file.stem not in tables:
                continue
            for name, dataset in _load_file(file, key_columns).items():
                if name in datasets:
                    raise DataSourceError(f"Table {name!r} is defined by more than one file")
                datasets[name] = dataset
    else:
        try:
            datasets = _load_file(path, key_columns)
        except ValueError as exc:
            raise DataSourceError(str(exc)) from exc

    if tables is not None:
        datasets = {name: ds for name, ds in datasets.items() if name in tables}
    logger.info("Data source loaded", source=str(source), tables=list(datasets))
    return datasets
