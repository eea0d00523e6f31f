"""
E-Commerce Profit Insights
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AIProviderSettings(BaseSettings):
    """Chat-completion provider configuration (OpenRouter-compatible)"""

    model_config = SettingsConfigDict(env_prefix="AI_")

    api_key: Optional[SecretStr] = Field(default=None, description="Provider API key")
    base_url: str = Field(default="https://openrouter.ai/api/v1", description="Provider base URL")
    default_model: str = Field(default="xiaomi/mimo-v2-flash:free", description="Default model")
    fallback_models: List[str] = Field(
        default=[
            "xiaomi/mimo-v2-flash:free",
            "qwen/qwen3-4b:free",
            "google/gemma-3-12b-it:free",
            "moonshotai/kimi-k2-instruct:free",
        ],
        description="Models substituted on transient provider errors",
    )
    max_retries: int = Field(default=3, description="Attempts per request")
    retry_delay_seconds: float = Field(default=1.0, description="Base delay between attempts")
    default_rate_limit_wait_seconds: float = Field(
        default=60.0,
        description="Wait used when a rate-limit response carries no retry delay",
    )
    request_timeout_seconds: float = Field(default=60.0, description="Per-request timeout")
    max_tool_iterations: int = Field(default=5, description="Tool-use loop round cap")
    app_title: str = Field(default="Profit Insights", description="X-Title header")
    app_referer: str = Field(default="https://localhost", description="HTTP-Referer header")

    @property
    def enabled(self) -> bool:
        """Whether an API key is configured"""
        return self.api_key is not None and bool(self.api_key.get_secret_value().strip())


class IngestionSettings(BaseSettings):
    """File ingestion and data quality configuration"""

    model_config = SettingsConfigDict(env_prefix="INGEST_")

    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, description="Upload size limit")
    large_file_warning_bytes: int = Field(default=5 * 1024 * 1024, description="Large file warning size")
    sample_size: int = Field(default=9, description="Rows sent to the assistant for mapping")
    max_rows: int = Field(default=50000, description="Row count above which a warning is attached")
    skip_warning_ratio: float = Field(default=0.30, description="Skipped-row ratio that triggers a warning")
    classification_batch_size: int = Field(default=50, description="Unknown labels per classification call")


class ForecastSettings(BaseSettings):
    """Inventory forecasting constants"""

    model_config = SettingsConfigDict(env_prefix="FORECAST_")

    default_lead_time_days: int = Field(default=14, description="Supplier lead time")
    safety_stock_days: int = Field(default=7, description="Safety buffer beyond lead time")
    coverage_days: int = Field(default=30, description="Days of demand a reorder should cover")
    trend_window_weeks: int = Field(default=2, description="Weeks compared on each side of the trend")
    trend_threshold_pct: float = Field(default=15.0, description="Change needed to call a trend")
    increasing_adjustment: float = Field(default=1.15, description="Sales multiplier for increasing trend")
    decreasing_adjustment: float = Field(default=0.90, description="Sales multiplier for decreasing trend")
    no_sales_days: int = Field(default=999, description="Days until stockout when nothing sells")
    stockout_horizon_cap_days: int = Field(default=365, description="Cap used for the summary average")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED", description="Expose /metrics")


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
    app_name: str = Field(default="profit-insights", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    ai: AIProviderSettings = Field(default_factory=AIProviderSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    forecast: ForecastSettings = Field(default_factory=ForecastSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
