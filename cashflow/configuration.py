"""Mini README: Centralised configuration for the cashflow service.

Structure:
    * CashflowSettings - Pydantic settings model read from ``CASHFLOW_*``
      environment variables or a local ``.env`` file.
    * get_settings - cached accessor so validation runs once per process.

Usage:
    The CLI and the FastAPI factory call ``get_settings`` to locate the
    SQLite database, pick the bind address, and decide whether the default
    service price list should be seeded on startup.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class CashflowSettings(BaseSettings):
    """Runtime configuration for the cashflow ledger service."""

    environment: str = Field(
        "development",
        description="Environment label controlling auto-reload and logging levels.",
    )
    data_directory: Path = Field(
        Path("data"),
        description="Directory holding the SQLite database file.",
    )
    database_url: Optional[str] = Field(
        None,
        description=(
            "SQLAlchemy URL of the ledger database. Defaults to"
            " ``cashflow.sqlite3`` inside the data directory."
        ),
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface the web service binds to.",
    )
    interface_port: int = Field(
        3000,
        description="Port the web service exposes.",
        ge=1,
        le=65535,
    )
    default_tax_rate: str = Field(
        "6",
        description="Business tax withholding percentage seeded when absent.",
    )
    seed_on_startup: bool = Field(
        True,
        description="Create the default service price list and settings if missing.",
    )
    log_level: str = Field("INFO", description="Root logging level.")

    class Config:
        env_prefix = "CASHFLOW_"
        env_file = ".env"
        case_sensitive = False

    @validator("data_directory", pre=True)
    def _expand_path(cls, value: Optional[str | Path]) -> Path:
        """Expand user directories and make sure the directory exists."""

        path = Path(value).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def resolved_database_url(self) -> str:
        """Return the configured URL or the default SQLite file location."""

        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_directory / 'cashflow.sqlite3'}"


@lru_cache()
def get_settings() -> CashflowSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return CashflowSettings()
