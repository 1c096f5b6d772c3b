"""Exception taxonomy for catalog loading, data access and rule evaluation.

Catalog and data-source errors abort a run before any rule is evaluated.
Everything raised while a single rule is being evaluated is caught by the
orchestrator and reported as an ERROR result for that rule only.
"""

from __future__ import annotations


class DQEngineError(Exception):
    """Base class for all engine errors."""


# ── Load-time (catalog) ──────────────────────────────────────────────────────


class CatalogError(DQEngineError):
    """The rule catalog is malformed; the whole load fails."""


class InvalidCatalogError(CatalogError):
    pass


class DuplicateRuleIdError(CatalogError):
    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Duplicate rule id in catalog: {rule_id!r}")


class MissingParameterError(CatalogError):
    def __init__(self, rule_id: str, parameter: str) -> None:
        self.rule_id = rule_id
        self.parameter = parameter
        super().__init__(f"Rule {rule_id!r} is missing required parameter {parameter!r}")


class UnknownCategoryError(CatalogError):
    def __init__(self, rule_id: str | None, category: str) -> None:
        self.rule_id = rule_id
        self.category = category
        if rule_id is None:
            super().__init__(f"Unknown rule category {category!r}")
        else:
            super().__init__(f"Rule {rule_id!r} has unknown category {category!r}")


# ── Data access ──────────────────────────────────────────────────────────────


class DatasetError(DQEngineError):
    pass


class TableNotFoundError(DatasetError):
    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Table not found: {table!r}")


class ColumnNotFoundError(DatasetError):
    def __init__(self, table: str, column: str) -> None:
        self.table = table
        self.column = column
        super().__init__(f"Column {column!r} not found in table {table!r}")


class DataSourceError(DQEngineError):
    """The underlying data source cannot be reached or read at all."""


# ── Per-rule evaluation ──────────────────────────────────────────────────────


class InvalidParameterError(DQEngineError):
    def __init__(self, rule_id: str, message: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Rule {rule_id!r}: {message}")


class RuleTimeoutError(DQEngineError):
    def __init__(self, rule_id: str, timeout_seconds: float) -> None:
        self.rule_id = rule_id
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Rule {rule_id!r} timed out after {timeout_seconds:g}s")
