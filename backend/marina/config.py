from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    MARINA_NAME: str = "Marina"
    DATABASE_URL: str = "sqlite:///./marina.db"
    BERTHS_CONFIG: str = "config/berths.yaml"
    LOG_LEVEL: str = "INFO"
    # Query limits
    MAX_QUERY_LIMIT: int = 500
    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    # API key gate (if unset, all requests pass (local dev))
    MARINA_API_KEY: str | None = None
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:3000"
    # Transit pricing defaults
    DEFAULT_DAILY_RATE: float = 50.0
    DEFAULT_TAX_PERCENT: float = 0.0
    # Change feed replay buffer (events kept for polling clients)
    CHANGE_FEED_BUFFER: int = 1000


settings = Settings()
