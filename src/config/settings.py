"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without export files.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like api_keys), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "ClimbingPill Metrics API"
    api_version: str = "v1"
    api_keys: str = Field(
        default="dev-key-1,dev-key-2",
        description="Comma-separated API keys. Using a list enables key rotation without downtime."
    )
    admin_emails: str = Field(
        default="",
        description="Comma-separated emails allowed to see every athlete. Others only see themselves."
    )

    # Record Source Configuration
    data_dir: str = Field(
        default="",
        description="Directory holding the CSV exports. Required unless in mock mode."
    )
    users_file: str = Field(
        default="users.csv",
        description="Users export filename"
    )
    training_files: str = Field(
        default="trainings.csv",
        description="Comma-separated training export filenames, concatenated in order"
    )
    assessments_file: str = Field(
        default="assessments.csv",
        description="Assessments export filename"
    )
    coaches_file: str = Field(
        default="coaches.csv",
        description="Coaches export filename"
    )
    plans_file: str = Field(
        default="plans.csv",
        description="Training plans export filename"
    )
    data_source_mock_mode: bool = Field(
        default=False,
        description="Serve a sample in-memory batch instead of reading exports. Enables local dev without data."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Parse comma-separated API keys into a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def admin_emails_list(self) -> list[str]:
        """Parse comma-separated admin emails into a normalized list."""
        return [email.strip().lower() for email in self.admin_emails.split(",") if email.strip()]

    @property
    def training_files_list(self) -> list[str]:
        return [name.strip() for name in self.training_files.split(",") if name.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.api_keys_list:
            missing.append("API_KEYS")

        # Exports only required if not in mock mode
        if not self.data_source_mock_mode:
            if not self.data_dir:
                missing.append("DATA_DIR")
            if not self.training_files_list:
                missing.append("TRAINING_FILES")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
