"""Central configuration — loads from .env and environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=str(_BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Statistical outlier defaults ─────────────────────────────
    outlier_stddev_threshold: float = Field(default=3.0, gt=0)
    outlier_min_group_size: int = Field(default=10, ge=1)
    outlier_lower_percentile: float = Field(default=5.0, ge=0, le=100)
    outlier_upper_percentile: float = Field(default=95.0, ge=0, le=100)

    # ── Execution policy ─────────────────────────────────────────
    rule_timeout_seconds: float = Field(default=30.0, gt=0)
    max_workers: int = Field(default=4, ge=1)
    sample_limit: int = Field(default=20, ge=0)

    # ── Data sources ─────────────────────────────────────────────
    database_url: str = ""

    # ── Paths ────────────────────────────────────────────────────
    catalog_dir: str = str(_BASE_DIR / "data" / "catalogs")
    report_dir: str = str(_BASE_DIR / "data" / "reports")
    run_log_db_path: str = str(_BASE_DIR / "data" / "run_log.db")

    # ── API ──────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ── Helpers ──────────────────────────────────────────────────
    def ensure_dirs(self) -> None:
        """Create all required data directories."""
        for d in (
            self.catalog_dir,
            self.report_dir,
            str(Path(self.run_log_db_path).parent),
        ):
            Path(d).mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


if __name__ == "__main__":
    s = get_settings()
    s.ensure_dirs()
    print(f"Environment : {s.environment}")
    print(f"Outliers    : {s.outlier_stddev_threshold}σ, min group {s.outlier_min_group_size}")
    print(f"Execution   : {s.max_workers} workers, {s.rule_timeout_seconds}s per rule")
    print(f"Run log     : {s.run_log_db_path}")
    print("✓ Config loaded successfully")
