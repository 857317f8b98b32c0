# src/app/settings.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Compute project root: repo/ (two levels up from this file: repo/src/app/settings.py)
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_DB_URL = f"sqlite:///{DATA_DIR / 'rfm_dashboard.db'}"
DEFAULT_EXPORT_DIR = DATA_DIR / "exports"


class Settings(BaseSettings):
    """
    Central application configuration.

    Sources (highest precedence first):
      1. Environment variables (prefixed with APP_, e.g. APP_DATABASE_URL)
      2. .env file at data/.env
      3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_file=str(DATA_DIR / ".env"),
        env_prefix="APP_",
        extra="ignore",
    )

    # App/server
    debug: bool = Field(default=False, description="Enable debug mode")
    host: str = Field(default="127.0.0.1", description="Server host to bind")
    port: int = Field(default=3000, description="Server port to bind")
    log_level: str = Field(default="INFO", description="Root log level")

    # Database
    database_url: str = Field(default=DEFAULT_DB_URL, description="SQLAlchemy database URL")
    db_pool_size: int = Field(default=10, ge=1, description="Max concurrent backend connections")
    db_pool_timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for a pooled connection")

    # Paging / export
    customer_page_size: int = Field(default=10, ge=1, description="Rows per customer listing page")
    product_page_size: int = Field(default=12, ge=1, description="Cards per product grid page")
    export_limit: int = Field(default=10000, ge=1, description="Row limit requested by CSV exports")
    export_bom: bool = Field(default=False, description="Prefix CSV exports with a UTF-8 BOM (Excel)")
    export_dir: Path = Field(default=DEFAULT_EXPORT_DIR, description="Where the export script writes files")

    # --- Validators / normalizers ---
    @field_validator("export_dir", mode="before")
    @classmethod
    def _expand_user_and_env(cls, v):
        if isinstance(v, str | Path):
            return Path(str(v)).expanduser()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    # --- Helpers ---
    @property
    def sqlite_path(self) -> Path | None:
        """Filesystem path of a file-backed sqlite URL, else None."""
        prefix = "sqlite:///"
        if not self.database_url.startswith(prefix):
            return None
        raw = self.database_url[len(prefix) :]
        if not raw or raw == ":memory:":
            return None
        return Path(raw).expanduser()

    def ensure_directories(self) -> None:
        """Create the export dir and the sqlite parent dir (idempotent)."""
        self.export_dir.mkdir(parents=True, exist_ok=True)
        if (db_path := self.sqlite_path) is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Singleton-style accessor so imports are cheap and consistent system-wide.
    Also ensures directories exist on first access.
    """
    s = Settings()
    s.ensure_directories()
    return s
