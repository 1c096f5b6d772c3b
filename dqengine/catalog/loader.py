"""Rule catalog loader — turns JSON, CSV or markdown rule tables into RuleDefinitions.

A malformed catalog fails the whole load: rules are never silently dropped.
"""

from __future__ import annotations

import csv
import json
import re
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from dqengine.errors import (
    DuplicateRuleIdError,
    InvalidCatalogError,
    MissingParameterError,
    UnknownCategoryError,
)
from dqengine.logger import get_logger
from dqengine.models.rule import RuleCatalog, RuleCategory, RuleDefinition

logger = get_logger(__name__)

# Normalised header → RuleDefinition field
_FIELD_ALIASES: dict[str, str] = {
    "id": "id",
    "ruleid": "id",
    "category": "category",
    "ruletype": "category",
    "targettable": "target_table",
    "table": "target_table",
    "entity": "target_table",
    "targetcolumns": "target_columns",
    "targetcolumn": "target_columns",
    "columns": "target_columns",
    "element": "target_columns",
    "parameters": "parameters",
    "params": "parameters",
    "severity": "severity",
    "description": "description",
    "name": "name",
    "rulename": "name",
    "checkname": "name",
}

_MD_SEPARATOR = re.compile(r"^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?$")
_MD_CELL_SPLIT = re.compile(r"(?<!\\)\|")


def _header_key(header: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


def _normalise_row(row: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in row.items():
        field = _FIELD_ALIASES.get(_header_key(key))
        if field is not None:
            out[field] = value
    return out


def _parse_columns(value: Any, where: str) -> list[str]:
    if isinstance(value, str):
        columns = [c.strip() for c in value.split(",")]
    elif isinstance(value, (list, tuple)):
        columns = [str(c).strip() for c in value]
    else:
        columns = []
    columns = [c for c in columns if c]
    if not columns:
        raise InvalidCatalogError(f"{where}: targetColumns must name at least one column")
    return columns


def _parse_parameters(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    text = str(value).strip().strip("`").strip()
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidCatalogError(f"{where}: Parameters is not valid JSON ({exc})") from exc
    if not isinstance(parsed, dict):
        raise InvalidCatalogError(f"{where}: Parameters must be a JSON object")
    return parsed


def parse_rules(rows: Iterable[Mapping[str, Any]]) -> list[RuleDefinition]:
    """Build one RuleDefinition per input row, validating the catalog as a whole."""
    rules: list[RuleDefinition] = []
    seen: set[str] = set()

    for position, raw in enumerate(rows, start=1):
        if not isinstance(raw, Mapping):
            raise InvalidCatalogError(f"Row {position}: expected a mapping, got {type(raw).__name__}")
        row = _normalise_row(raw)

        rule_id = str(row.get("id") or "").strip()
        if not rule_id:
            raise InvalidCatalogError(f"Row {position}: missing rule id")
        where = f"Rule {rule_id!r}"

        raw_category = row.get("category")
        try:
            category = RuleCategory.parse(raw_category)
        except ValueError:
            raise UnknownCategoryError(rule_id, str(raw_category)) from None

        if rule_id in seen:
            raise DuplicateRuleIdError(rule_id)
        seen.add(rule_id)

        fields: dict[str, Any] = {
            "id": rule_id,
            "category": category,
            "target_table": str(row.get("target_table") or "").strip(),
            "target_columns": _parse_columns(row.get("target_columns"), where),
            "parameters": _parse_parameters(row.get("parameters"), where),
            "name": str(row.get("name") or "").strip(),
            "description": str(row.get("description") or "").strip(),
        }
        severity = row.get("severity")
        if severity not in (None, ""):
            fields["severity"] = severity

        try:
            rule = RuleDefinition(**fields)
        except ValidationError as exc:
            raise InvalidCatalogError(f"{where}: {exc}") from exc

        missing = rule.missing_parameters()
        if missing:
            raise MissingParameterError(rule_id, missing[0])

        rules.append(rule)

    return rules


# ── File formats ─────────────────────────────────────────────────────────────


def _split_md_row(line: str) -> list[str]:
    line = line.strip()
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|") and not line.endswith("\\|"):
        line = line[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _MD_CELL_SPLIT.split(line)]


def _markdown_rows(text: str) -> list[dict[str, str]]:
    """Collect rows from every pipe table whose header names a rule id and category."""
    rows: list[dict[str, str]] = []
    lines = text.splitlines()
    i = 0
    while i < len(lines) - 1:
        header_line, sep_line = lines[i].strip(), lines[i + 1].strip()
        if not (header_line.startswith("|") and _MD_SEPARATOR.match(sep_line)):
            i += 1
            continue

        header = _split_md_row(header_line)
        mapped = {_FIELD_ALIASES.get(_header_key(h)) for h in header}
        i += 2
        body: list[list[str]] = []
        while i < len(lines) and lines[i].strip().startswith("|"):
            body.append(_split_md_row(lines[i]))
            i += 1

        if not {"id", "category"} <= mapped:
            continue
        for cells in body:
            cells = cells + [""] * (len(header) - len(cells))
            rows.append(dict(zip(header, cells)))
    return rows


def _catalog_from_json(data: Any, default_name: str) -> RuleCatalog:
    if isinstance(data, list):
        return RuleCatalog(name=default_name, rules=parse_rules(data))
    if not isinstance(data, dict):
        raise InvalidCatalogError("JSON catalog must be an object or a list of rules")

    rules = parse_rules(data.get("rules") or [])
    key_columns = data.get("keyColumns", data.get("key_columns")) or {}
    try:
        return RuleCatalog(
            version=str(data.get("version", "1.0")),
            name=str(data.get("name", default_name)),
            description=str(data.get("description", "")),
            key_columns={
                table: _parse_columns(cols, f"keyColumns[{table!r}]")
                for table, cols in dict(key_columns).items()
            },
            rules=rules,
        )
    except (TypeError, ValueError) as exc:
        raise InvalidCatalogError(f"Invalid catalog header: {exc}") from exc


def load_catalog(path: str | Path) -> RuleCatalog:
    """Load a rule catalog from a .json, .csv or .md file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog not found: {path}")

    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8-sig")

    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidCatalogError(f"{path.name}: invalid JSON ({exc})") from exc
        catalog = _catalog_from_json(data, default_name=path.stem)
    elif suffix == ".csv":
        reader = csv.DictReader(text.splitlines())
        catalog = RuleCatalog(name=path.stem, rules=parse_rules(reader))
    elif suffix in (".md", ".markdown"):
        catalog = RuleCatalog(name=path.stem, rules=parse_rules(_markdown_rows(text)))
    else:
        raise InvalidCatalogError(f"Unsupported catalog format: {suffix or path.name}")

    logger.info(
        "Catalog loaded",
        path=str(path),
        catalog=catalog.name,
        version=catalog.version,
        rules=len(catalog.rules),
    )
    return catalog


def load(source: str | Path | Iterable[Mapping[str, Any]]) -> list[RuleDefinition]:
    """Load rule definitions from a catalog file or from in-memory rows."""
    if isinstance(source, (str, Path)):
        return load_catalog(source).rules
    return parse_rules(source)
