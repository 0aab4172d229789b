"""Pydantic models for database and backup configuration."""

from pydantic import BaseModel, Field


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # postgres | supabase
    api_key: str | None = None  # Supabase only; falls back to SUPABASE_KEY env var
    jsonb_columns: list[str] = Field(default_factory=list)  # Postgres only


class BackupSettings(BaseModel):
    """The ``[backup]`` section of db.toml."""

    page_size: int | None = Field(default=1000, gt=0)  # None reads each table in one call
    output_dir: str = "backups"
    include_tables: list[str] = Field(default_factory=list)
    exclude_tables: list[str] = Field(default_factory=list)


class DatabaseConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    backup: BackupSettings = Field(default_factory=BackupSettings)
