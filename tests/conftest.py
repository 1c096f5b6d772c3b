"""Test configuration and shared fixtures."""

import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

# Ensure the project root is on PYTHONPATH
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT))

# Set test environment variables before anything else imports config
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="dqengine-tests-"))
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REPORT_DIR", str(_TEST_DATA_DIR / "reports"))
os.environ.setdefault("CATALOG_DIR", str(_TEST_DATA_DIR / "catalogs"))
os.environ.setdefault("RUN_LOG_DB_PATH", str(_TEST_DATA_DIR / "run_log.db"))
os.environ.setdefault("RULE_TIMEOUT_SECONDS", "30")

from dqengine.datasets.dataset import Dataset  # noqa: E402
from dqengine.evaluation.base import EvaluationContext  # noqa: E402
from dqengine.logger import setup_logging  # noqa: E402
from dqengine.models.rule import RuleDefinition  # noqa: E402

SAMPLES_DIR = _PROJECT_ROOT / "data" / "samples"
CATALOG_PATH = _PROJECT_ROOT / "data" / "catalogs" / "compensation_survey.json"

# Fixed evaluation time so temporal checks on the sample data are stable
FIXED_NOW = datetime(2025, 6, 30, 12, 0, 0)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    # CLI tests point structlog at a stream the runner closes afterwards
    setup_logging()


def make_rule(
    category: str, columns, table: str = "t", rule_id: str = "R1", severity: str = "HIGH", **parameters
):
    """Build a rule with keyword parameters, e.g. ``make_rule("Range", ["x"], min=0)``."""
    if isinstance(columns, str):
        columns = [columns]
    return RuleDefinition(
        id=rule_id,
        category=category,
        target_table=table,
        target_columns=list(columns),
        parameters=parameters,
        severity=severity,
    )


@pytest.fixture
def context() -> EvaluationContext:
    return EvaluationContext(now=FIXED_NOW, sample_limit=20)


@pytest.fixture
def survey_dataset() -> Dataset:
    return Dataset.from_records(
        "survey",
        [
            {"survey_id": 1, "job_level": "Mid", "country": "US", "salary": 85000.0, "bonus": 5000.0},
            {"survey_id": 2, "job_level": "Senior", "country": "US", "salary": 120000.0, "bonus": 20000.0},
            {"survey_id": 3, "job_level": "Entry", "country": "GB", "salary": None, "bonus": 0.0},
            {"survey_id": 4, "job_level": "Wizard", "country": "", "salary": 60000.0, "bonus": 150000.0},
        ],
        key_columns=["survey_id"],
    )


@pytest.fixture
def samples_dir() -> Path:
    return SAMPLES_DIR


@pytest.fixture
def catalog_path() -> Path:
    return CATALOG_PATH
