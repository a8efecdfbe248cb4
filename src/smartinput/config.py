from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    user_timezone: str = "UTC"
    log_level: str = "INFO"

    # Sentry error tracking
    sentry_dsn: str = ""
    sentry_environment: str = "production"

    # Live parsing (keystroke binding)
    parser_debounce_ms: int = 100
    parser_min_length: int = 2
    parser_infer_categories: bool = False
    parser_infer_venues: bool = False

    @property
    def has_sentry(self) -> bool:
        return bool(self.sentry_dsn)


settings = Settings()
