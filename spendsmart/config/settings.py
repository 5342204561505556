"""
Configuration Management for SpendSmart

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every tunable the flows and agents read (model name, upload limits,
advisor summary size, storage location) lives in one place and is
validated at startup.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
        description="Gemini API key (GEMINI_API_KEY or API_KEY)"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_output_tokens: int = Field(
        default=4096,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    use_search_grounding: bool = Field(
        default=False,
        description="Ask the advisor model to ground answers with Google Search"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per Gemini request before giving up"
    )


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SPENDSMART_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    path: str = Field(
        default=".spendsmart/local_storage.json",
        description="JSON file backing the local key-value store"
    )


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_mime_types: str = Field(
        default="image/*,application/pdf",
        description="Comma-separated list of accepted MIME types (image/* wildcard allowed)"
    )

    # Advisor and dashboard sizing
    advisor_max_transactions: int = Field(
        default=50,
        ge=1,
        le=500,
        description="How many recent transactions the advisor sees"
    )
    history_months: int = Field(
        default=6,
        ge=1,
        le=36,
        description="Months shown in the spending history chart"
    )
    recent_transactions_limit: int = Field(
        default=10,
        ge=1,
        description="Transactions listed on the dashboard"
    )

    default_theme: str = Field(
        default="light",
        description="Theme used when none has been saved"
    )

    @field_validator('default_theme')
    @classmethod
    def validate_theme(cls, v: str) -> str:
        """Only light and dark themes exist."""
        v = v.strip().lower()
        if v not in ("light", "dark"):
            raise ValueError(f"Unsupported theme: {v}. Allowed: light, dark")
        return v

    @property
    def supported_mime_types_list(self) -> list[str]:
        """Get supported MIME types as a list."""
        return [
            mime.strip().lower()
            for mime in self.supported_mime_types.split(",")
            if mime.strip()
        ]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    "<name>_error" entries for sections that failed to load.
    """
    results = {}
    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            section = getattr(settings, name)
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
            continue

        if name == "gemini" and not section.api_key:
            results[name] = False
            results[f"{name}_error"] = "GEMINI_API_KEY is not set"
        else:
            results[name] = True

    return results
