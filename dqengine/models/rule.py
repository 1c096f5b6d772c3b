"""Pydantic models for data-quality rules and rule catalogs."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _normalise_tag(value: str) -> str:
    return re.sub(r"[\s_\-/]+", "", str(value)).lower()


class RuleCategory(str, Enum):
    COMPLETENESS = "Completeness"
    UNIQUENESS = "Uniqueness"
    RANGE = "Range"
    DOMAIN = "Domain"
    REFERENTIAL_INTEGRITY = "ReferentialIntegrity"
    FORMAT = "Format"
    CROSS_FIELD_CONSISTENCY = "CrossFieldConsistency"
    STATISTICAL_OUTLIER = "StatisticalOutlier"
    TEMPORAL = "Temporal"
    MATHEMATICAL_CONSISTENCY = "MathematicalConsistency"

    @classmethod
    def parse(cls, value: Any) -> "RuleCategory":
        """Parse a category tag, ignoring case, spaces, hyphens and underscores."""
        if isinstance(value, cls):
            return value
        key = _normalise_tag(value)
        for member in cls:
            if _normalise_tag(member.value) == key:
                return member
        # "Categorical" is the catalogs' other name for domain rules
        if key == "categorical":
            return cls.DOMAIN
        raise ValueError(f"Unknown rule category: {value!r}")


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown severity: {value!r}") from None


# Each inner tuple lists alternative keys; at least one of them must be present.
REQUIRED_PARAMETERS: dict[RuleCategory, list[tuple[str, ...]]] = {
    RuleCategory.COMPLETENESS: [],
    RuleCategory.UNIQUENESS: [],
    RuleCategory.RANGE: [("min", "max")],
    RuleCategory.DOMAIN: [("allowedValues", "allowedCombinations")],
    RuleCategory.REFERENTIAL_INTEGRITY: [("referenceTable",), ("referenceColumn",)],
    RuleCategory.FORMAT: [("pattern", "length", "minLength", "maxLength")],
    RuleCategory.CROSS_FIELD_CONSISTENCY: [("operator",)],
    RuleCategory.STATISTICAL_OUTLIER: [],
    RuleCategory.TEMPORAL: [],
    RuleCategory.MATHEMATICAL_CONSISTENCY: [],
}


class RuleDefinition(BaseModel):
    """A single declarative data-quality rule."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(min_length=1)
    category: RuleCategory
    target_table: str = Field(min_length=1)
    target_columns: list[str] = Field(min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)
    severity: Severity = Severity.HIGH
    name: str = ""
    description: str = ""

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, value: Any) -> RuleCategory:
        return RuleCategory.parse(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value: Any) -> Severity:
        return Severity.parse(value)

    @field_validator("target_columns")
    @classmethod
    def _strip_columns(cls, value: list[str]) -> list[str]:
        columns = [c.strip() for c in value]
        if any(not c for c in columns):
            raise ValueError("target column names must not be blank")
        return columns

    @property
    def check_name(self) -> str:
        return self.name or self.id

    def param(self, key: str, default: Any = None) -> Any:
        return self.parameters.get(key, default)

    def missing_parameters(self) -> list[str]:
        """Return the required parameter groups this rule does not satisfy."""
        missing = []
        for group in REQUIRED_PARAMETERS[self.category]:
            if not any(key in self.parameters for key in group):
                missing.append("|".join(group))
        return missing


class RuleCatalog(BaseModel):
    """A versioned set of rules, evaluated in declaration order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str = "1.0"
    name: str = "Default catalog"
    description: str = ""
    key_columns: dict[str, list[str]] = Field(default_factory=dict)
    rules: list[RuleDefinition] = Field(default_factory=list)

    @property
    def tables(self) -> list[str]:
        """Every table the catalog reads, reference tables included."""
        seen: dict[str, None] = {}
        for rule in self.rules:
            seen.setdefault(rule.target_table, None)
            ref = rule.param("referenceTable")
            if ref:
                seen.setdefault(str(ref), None)
        return list(seen)
