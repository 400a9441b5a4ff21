"""
RFM Customer Segmentation
Centralized Configuration Management

Configuration is loaded with Pydantic settings from environment variables
(and an optional .env file), validated, and cached for the process.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, model_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="e-commerce", alias="database", description="Database name")
    user: str = Field(default="shopx", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg, or the explicit URL when set"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class DataLakeSettings(BaseSettings):
    """File-based source and output locations"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Raw source files")
    curated_path: str = Field(default="./data/curated", description="Curated output files")
    default_format: str = Field(default="csv", description="Default source file format")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class RFMSettings(BaseSettings):
    """Scoring parameters for the RFM pipeline"""

    model_config = SettingsConfigDict(env_prefix="RFM_")

    lower_threshold: float = Field(default=0.25, description="Percentiles below this get label 1")
    upper_threshold: float = Field(default=0.75, description="Percentiles above this get label 3")
    rank_precision: int = Field(default=2, description="Decimal places kept on percentile ranks")
    monetary_precision: int = Field(default=2, description="Decimal places kept on monetary values")
    recency_sentinel_days: int = Field(default=9999, description="Recency written for customers without a qualifying order")
    recency_sentinel_label: int = Field(default=4, description="Recency label written for customers without a qualifying order")
    strict_validation: bool = Field(default=True, description="Refuse to write output that fails validation")

    @model_validator(mode="after")
    def validate_thresholds(self) -> "RFMSettings":
        """Thresholds must split [0, 1] into three ordered buckets"""
        if not 0.0 <= self.lower_threshold <= self.upper_threshold <= 1.0:
            raise ValueError(
                "Thresholds must satisfy 0 <= lower_threshold <= upper_threshold <= 1"
            )
        return self


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="rfm-segmentation", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    rfm: RFMSettings = Field(default_factory=RFMSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
