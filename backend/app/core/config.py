from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Ledger Backend"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DOMAIN: str = "example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/ledger.db"
    LOG_LEVEL: str = "INFO"

    # Single currency, no conversion
    DEFAULT_CURRENCY: str = "EGP"

    # Ledger transactions
    LEDGER_MAX_RETRIES: int = 3
    LEDGER_RETRY_BACKOFF_SECONDS: float = 0.05

    # Actor recorded on audit rows when the caller supplies none
    SYSTEM_ACTOR_ID: str = "system"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"


settings = Settings()
