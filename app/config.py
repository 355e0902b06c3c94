"""Application settings."""

from typing import Optional
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """General service configuration settings."""

    app_name: str = "ResumeForge API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    # Quiet period before a live-editor change is persisted as a draft
    autosave_quiet_period: float = 1.2
    default_template_id: str = "classic_pro"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """
    Get or create the application settings singleton.

    Returns:
        AppSettings: The settings instance
    """
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings
