"""
Configuration Management for NeoBudget

Uses pydantic-settings for type-safe configuration from environment variables.

All tunables of the engine live here: ledger heuristics, feed sync limits,
statement import caps and storage locations. Each concern has its own
settings class and environment prefix.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


class LedgerSettings(BaseSettings):
    """Ledger and aggregation heuristics."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    default_category: str = Field(
        default="Uncategorized",
        min_length=1,
        description="Category assigned when a source provides none"
    )
    top_overspent_limit: int = Field(
        default=3,
        ge=1,
        le=50,
        description="How many overspent categories the budget-health view returns"
    )
    transfer_markers: str = Field(
        default="transfer to,transfer from,trf to,trf fr,overdraft transfer",
        description="Comma-separated description substrings that mark an expense as a transfer"
    )
    debt_category_keywords: str = Field(
        default="loan,debt",
        description="Comma-separated category substrings that turn a CSV debit into a debt payment"
    )

    @property
    def transfer_markers_list(self) -> list[str]:
        """Get transfer markers as a lower-cased list."""
        return _split_csv(self.transfer_markers)

    @property
    def debt_category_keywords_list(self) -> list[str]:
        """Get debt keywords as a lower-cased list."""
        return _split_csv(self.debt_category_keywords)


class SyncSettings(BaseSettings):
    """Bank-aggregation feed (SimpleFIN) sync configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SIMPLEFIN_",
        extra="ignore"
    )

    feed_name: str = Field(
        default="simplefin",
        description="Prefix used when building external ids for feed entries"
    )
    max_span_days: int = Field(
        default=60,
        ge=1,
        description="Maximum number of days one feed request may cover"
    )
    daily_request_cap: int = Field(
        default=24,
        ge=1,
        description="Maximum number of feed requests allowed in one day"
    )
    overlap_days: int = Field(
        default=2,
        ge=0,
        description="Days re-requested before the last sync to catch late postings"
    )
    default_days_back: int = Field(
        default=60,
        ge=1,
        description="Lookback used when the caller does not ask for one"
    )
    include_pending: bool = Field(
        default=False,
        description="Ask the feed to include pending transactions"
    )


class ImportSettings(BaseSettings):
    """Statement import (AI extraction) limits."""

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        extra="ignore"
    )

    max_file_size_mb: int = Field(
        default=12,
        ge=1,
        le=100,
        description="Files above this size are rejected before extraction"
    )
    max_files: int = Field(
        default=4,
        ge=1,
        le=20,
        description="Maximum number of files processed per import batch"
    )
    default_csv_model: str = Field(
        default="openai/gpt-4o-mini",
        description="Model hint passed to the extractor for text statements"
    )
    default_pdf_model: str = Field(
        default="openai/gpt-4o",
        description="Model hint passed to the extractor for PDF statements"
    )

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024


class StorageSettings(BaseSettings):
    """Profile storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    data_dir: str = Field(
        default="data",
        description="Directory holding one JSON document per user"
    )
    audit_log_name: str = Field(
        default="audit.jsonl",
        description="File name of the append-only audit log inside data_dir"
    )
    debounce_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Quiet period before a pending profile write is flushed"
    )

    @field_validator("data_dir")
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Reject a data_dir that points at an existing regular file."""
        if Path(v).is_file():
            raise ValueError(f"data_dir must be a directory, got file: {v}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def imports(self) -> ImportSettings:
        return ImportSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus `<name>_error` entries
    for the sections that failed. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "sync", "imports", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
