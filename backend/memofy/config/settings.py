"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "memofy_dev"

    # Session tokens (issued by the portal's auth service, HS256)
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    # HTTP server (memofy-api console script)
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_reload: bool = False

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Edit locks (used until an admin stores a value in system_settings)
    default_lock_minutes: int = 1
    default_lock_seconds: int = 50

    # Activity log
    activity_log_page_size: int = 50

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
