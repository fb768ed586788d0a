"""Configuration management for MemoryFlow services."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ValidationSettings(BaseSettings):
    """Validation engine configuration."""

    # Decision thresholds
    auto_approve_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    auto_reject_threshold: float = Field(default=0.50, ge=0.0, le=1.0)

    # Confidence factor weights
    weight_claude_confidence: float = Field(default=0.30, ge=0.0)
    weight_emotional_coherence: float = Field(default=0.25, ge=0.0)
    weight_relationship_accuracy: float = Field(default=0.20, ge=0.0)
    weight_temporal_consistency: float = Field(default=0.15, ge=0.0)
    weight_content_quality: float = Field(default=0.10, ge=0.0)

    # Feedback loop
    min_accuracy_improvement: float = Field(default=0.01, ge=0.0)
    feedback_window: int = Field(default=1000, ge=1)
    batch_history_size: int = Field(default=100, ge=1)

    # Sampling and analytics
    coverage_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    target_throughput_per_minute: float = Field(default=60.0, gt=0.0)

    model_config = SettingsConfigDict(
        env_prefix="MEMORYFLOW_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class MonitoringSettings(BaseSettings):
    """Monitoring and observability configuration."""

    log_level: str = Field(default="info")
    log_format: str = Field(default="json")
    enable_metrics: bool = Field(default=True)
    prometheus_port: int = Field(default=9091)

    model_config = SettingsConfigDict(
        env_prefix="MEMORYFLOW_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # Service settings
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    model_config = SettingsConfigDict(
        env_prefix="MEMORYFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
