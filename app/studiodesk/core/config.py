from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "StudioDesk"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./studiodesk.db"
    SEARCH_DEBOUNCE_MS: int = 300
    LIST_DEFAULT_PAGE_SIZE: int = 50
    LIST_MAX_PAGE_SIZE: int = 200
    ELEVATED_ROLES: list[str] = ["Admin"]
    REALTIME_ENABLED: bool = True
    METRICS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
