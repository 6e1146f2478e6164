"""
Configuration module using Pydantic Settings.
Holds the analysis windows, thresholds and logging options of the engine.
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings from environment variables (prefix ``INSIGHTS_``)."""

    model_config = SettingsConfigDict(
        env_prefix="INSIGHTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # App settings
    app_name: str = Field(default="predictive-insights", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="production", description="Environment name")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Render log events as JSON")

    # History windows
    prediction_window_months: int = Field(default=6, ge=1, le=36, description="Months of history for predictions and recommendations")
    anomaly_window_months: int = Field(default=3, ge=1, le=36, description="Months of history for anomaly detection")

    # Category prediction
    min_transactions_for_trend: int = Field(default=5, ge=2, description="Transactions needed before trend/seasonal adjustment")

    # Anomaly detection
    anomaly_min_transactions: int = Field(default=5, ge=3, description="Expense transactions a category needs to be scanned")
    anomaly_threshold: float = Field(default=2.0, gt=0, description="Deviation score above which a transaction is flagged")
    emit_placeholder_anomaly: bool = Field(
        default=False,
        description="Emit one labelled placeholder anomaly when nothing was flagged"
    )

    # Pattern analysis
    pattern_min_transactions: int = Field(default=10, ge=1, description="Transactions needed for pattern analysis")

    # Recommendation rules
    overspend_share_threshold: float = Field(default=0.15, gt=0, lt=1, description="Share of total expense that marks overspending")
    savings_rate_target: float = Field(default=20.0, description="Savings rate (%) below which saving more is advised")
    investment_savings_rate: float = Field(default=25.0, description="Savings rate (%) above which investing is advised")
    history_min_months: int = Field(default=3, ge=1, description="Distinct months of history considered sufficient")
    history_min_expense_transactions: int = Field(default=30, ge=1, description="Expense transactions considered sufficient")

    @validator("log_level")
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @validator("environment")
    def validate_environment(cls, v):
        """Validate environment."""
        valid_envs = ["development", "testing", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment. Must be one of: {valid_envs}")
        return v.lower()

    @validator("anomaly_window_months")
    def validate_anomaly_window(cls, v, values):
        """Anomaly window must fit inside the prediction window."""
        prediction_window = values.get("prediction_window_months")
        if prediction_window is not None and v > prediction_window:
            raise ValueError("Anomaly window cannot exceed the prediction window")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get settings instance. Useful for dependency injection."""
    return settings
