from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    api_key: str = "dev-key"
    database_url: str = "sqlite:///scorecard.db"
    log_level: str = "INFO"

    # stale writes on one assignment are retried this many times before a 409
    progress_write_retries: int = 3
    # decimal places for equal-split suggestions
    target_precision: int = 2
    default_page_size: int = 10

    # load .env, ignore unknown keys so new vars don't break boot
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()
