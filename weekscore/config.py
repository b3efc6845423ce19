from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/weekscore"
    default_tz: str = "UTC"
    api_key: str | None = None
    log_level: str = "INFO"
    create_schema: bool = False  # create missing tables on startup

    # Week-selection carry-forward: requested week plus 11 prior weeks
    selection_lookback_weeks: int = 12

    # 12 weeks; quarter end = start + (length - 1) days
    quarter_length_days: int = 84

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
