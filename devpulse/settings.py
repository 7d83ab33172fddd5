from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_port: int = Field(default=8080, alias="APP_PORT")
    database_url: str = Field(default="sqlite:///./devpulse.db", alias="DATABASE_URL")

    github_api_base_url: str = Field(default="https://api.github.com", alias="GITHUB_API_BASE_URL")
    github_token: str | None = Field(default=None, alias="GITHUB_TOKEN")
    github_sync_days: int = Field(default=30, alias="GITHUB_SYNC_DAYS")

    burnout_window_days: int = Field(default=30, alias="BURNOUT_WINDOW_DAYS")
    aggregation_lookback_days: int = Field(default=30, alias="AGGREGATION_LOOKBACK_DAYS")

    sync_interval_minutes: int = Field(default=60, alias="SYNC_INTERVAL_MINUTES")
    metrics_daily_hour: int = Field(default=2, alias="METRICS_DAILY_HOUR")
    metrics_daily_minute: int = Field(default=0, alias="METRICS_DAILY_MINUTE")

    log_timezone: str = Field(default="UTC", alias="LOG_TIMEZONE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

settings = Settings()
