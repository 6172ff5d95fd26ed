"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from leaktrace.engine.parameters import (
    AnalysisConfig,
    CorrelationParameters,
    DriftParameters,
    RiskParameters,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Record source
    data_dir: str = Field(default="./data", description="Directory holding the JSON record files")

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_reload: bool = Field(default=True, description="Enable hot reload")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Analysis overrides
    drift_threshold: float = Field(
        default=3.0, gt=0.0, description="Drift factor above which a spike is declared"
    )
    recent_window_days: int = Field(
        default=3, ge=1, description="Number of most recent observed days in the current window"
    )
    max_lag_days: int = Field(
        default=3, ge=0, le=30, description="Maximum lag searched by the correlation engine"
    )
    recency_decay_days: float = Field(
        default=7.0, gt=0.0, description="Decay constant for deployment recency"
    )

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    def analysis_config(self) -> AnalysisConfig:
        """Build the analysis configuration with environment overrides applied."""
        return AnalysisConfig(
            drift=DriftParameters(
                spike_threshold=self.drift_threshold,
                recent_window_days=self.recent_window_days,
            ),
            correlation=CorrelationParameters(max_lag=self.max_lag_days),
            risk=RiskParameters(decay_constant_days=self.recency_decay_days),
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
