"""
Configuration management for the AdPilot judgment core
"""
from functools import lru_cache
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "AdPilot Judgment Core"
    environment: str = "development"
    log_level: str = "INFO"
    log_dir: Optional[str] = None  # None = console only

    # Calendar day used for override expiry
    reference_timezone: str = "Asia/Tokyo"

    # Judgment
    creative_refresh_marker: str = "_Re"
    judgment_window_days: int = 7
    judgment_max_workers: int = 4
    stop_re_consecutive_loss_days: int = 2
    replace_no_re_consecutive_loss_days: int = 3
    loss_threshold_7days: float = 40000
    roas_threshold_stop: float = 105
    roas_threshold_continue: float = 110

    # Anomaly detection
    anomaly_z_score_threshold: float = 2.5
    anomaly_change_threshold: float = 50
    anomaly_min_data_points: int = 3
    anomaly_moving_average_window: int = 7
    anomaly_profit_z_score_threshold: float = 2
    anomaly_profit_change_threshold: float = 30

    # Overrides
    override_history_limit: int = 100


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class JudgmentConfig(BaseModel):
    """
    Thresholds shared by every campaign in a run.

    Accepts the stored camelCase setting keys as aliases so a settings table
    (string values included) validates directly.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    stop_re_consecutive_loss_days: int = Field(alias="stopReConsecutiveLossDays", ge=0)
    replace_no_re_consecutive_loss_days: int = Field(alias="replaceNoReConsecutiveLossDays", ge=0)
    loss_threshold_7days: float = Field(alias="lossThreshold7Days", ge=0, allow_inf_nan=False)
    roas_threshold_stop: float = Field(alias="roasThresholdStop", ge=0, allow_inf_nan=False)
    roas_threshold_continue: float = Field(alias="roasThresholdContinue", ge=0, allow_inf_nan=False)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "JudgmentConfig":
        """Build the default config from application settings."""
        settings = settings or get_settings()
        return cls(
            stop_re_consecutive_loss_days=settings.stop_re_consecutive_loss_days,
            replace_no_re_consecutive_loss_days=settings.replace_no_re_consecutive_loss_days,
            loss_threshold_7days=settings.loss_threshold_7days,
            roas_threshold_stop=settings.roas_threshold_stop,
            roas_threshold_continue=settings.roas_threshold_continue,
        )


_CONFIG_KEYS = {field.alias for field in JudgmentConfig.model_fields.values()}


def load_judgment_config(
    stored: Mapping[str, object],
    settings: Optional[Settings] = None,
) -> JudgmentConfig:
    """
    Overlay a stored settings mapping (key -> value) on the defaults.

    Keys unrelated to judgment (chat tokens, sheet ids, ...) are ignored.

    Raises:
        pydantic.ValidationError: If a threshold is null, negative or not numeric
    """
    base = JudgmentConfig.from_settings(settings).model_dump(by_alias=True)
    overlay = {key: value for key, value in stored.items() if key in _CONFIG_KEYS}
    return JudgmentConfig.model_validate({**base, **overlay})
