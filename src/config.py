"""Configuration management"""

import sys
from functools import lru_cache
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # LLM API Keys
    gemini_api_key: str = ""
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Assistant
    chat_history_limit: int = 20
    thinking_budget: int = 32768
    chat_max_tokens: int = 1024
    chat_session_timeout: int = 3600  # seconds of inactivity before a session is dropped

    # Storage (one JSON file per bucket)
    project_root: Path = Path(__file__).parent.parent
    storage_dir: Path = project_root / "data" / "store"

    # Admin dashboard
    admin_pin: str = "12345"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Logging
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Cached settings loaded from the environment / .env"""
    return Settings()


def configure_logging(level: str = "INFO"):
    """Route loguru output to stderr at the given level"""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
