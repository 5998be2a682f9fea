from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Storage
    CATALOG_DATABASE_URL: str = "sqlite+aiosqlite:///./catalog.db"
    CATALOG_STORAGE_BACKEND: Literal["sql", "memory"] = "sql"
    CATALOG_ECHO_SQL: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # HTTP
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8085
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
