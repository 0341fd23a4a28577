"""
Potato Timer - Configuration
Settings are read from the environment (or a local .env file).
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ==========================================
    # CORE SETTINGS
    # ==========================================
    env: str = "dev"  # dev | prod
    db_url: str = "sqlite+aiosqlite:///./potato_timer.db"
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 30 * 24 * 60  # 30 days
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # ==========================================
    # STORE
    # ==========================================
    db_pool_size: int = 10
    db_pool_timeout: float = 30.0  # seconds to wait for a pooled connection
    db_echo: bool = False

    # ==========================================
    # LISTS & AGGREGATES
    # ==========================================
    default_page_limit: int = 20
    max_page_limit: int = 100
    recent_completions_limit: int = 30
    completion_max_attempts: int = 5  # compare-and-set retries per completion

    class Config:
        env_file = ".env"


# Global settings instance
settings = Settings()


@lru_cache()
def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings
